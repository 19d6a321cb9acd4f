"""Queue watcher entry point.

Connects to the queue server, keeps a local view in sync and logs each
queue's fill state whenever it changes. Stop with Ctrl-C.
"""

import asyncio

from queuesync.config import Settings, get_settings
from queuesync.logging_config import configure_logging, get_logger
from queuesync.schemas.queue import Queue
from queuesync.services.partition import filled_count, partition_queue, players_needed
from queuesync.sync.connection import ConnectionHealth
from queuesync.sync.coordinator import open_queue_sync

logger = get_logger(__name__)


def log_queues(queues: tuple[Queue, ...], health: ConnectionHealth | None = None) -> None:
    if health is not None:
        logger.info("sync_state", queues=len(queues), **health.to_dict())
    for queue in queues:
        split = partition_queue(queue)
        logger.info(
            "queue_state",
            queue_id=queue.id,
            format=f"{queue.team_size}v{queue.team_size}",
            filled=f"{filled_count(queue)}/{queue.required_players}",
            waitlist=len(split.waitlist),
            needed=players_needed(queue),
        )


async def watch(settings: Settings) -> None:
    async with open_queue_sync(settings) as sync:
        sync.subscribe(lambda queues: log_queues(queues, sync.health))
        await asyncio.Event().wait()


def main() -> None:
    settings = get_settings()
    configure_logging(settings)
    logger.info(
        "watcher_starting",
        events_url=settings.events_url,
        queues_url=settings.queues_url,
    )
    try:
        asyncio.run(watch(settings))
    except KeyboardInterrupt:
        logger.info("watcher_stopped")


if __name__ == "__main__":
    main()
