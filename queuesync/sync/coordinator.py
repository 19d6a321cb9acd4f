"""Sync coordinator.

Owns the queue store and every moving part around it. Stream readers,
timers, poll fetches and visibility changes only post events; one loop
consumes them in order and is the only place sync state changes. Local
join/leave calls mutate the store directly from the caller's task, which is
safe because everything shares a single event loop.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from queuesync.client.queue_api import QueueApiClient
from queuesync.config import Settings, get_settings
from queuesync.logging_config import get_logger
from queuesync.schemas.common import CommandResult, LaunchResult
from queuesync.schemas.queue import Queue, QueueSnapshot, SnapshotSource
from queuesync.services.optimistic import (
    MutationResult,
    OptimisticMutationController,
    PlayerIdentity,
)
from queuesync.services.partition import Partition, partition_queue
from queuesync.services.pending_guard import PendingOperationGuard
from queuesync.sync.connection import ConnectionHealth
from queuesync.sync.events import (
    HeartbeatCheckDue,
    HeartbeatReceived,
    MessageReceived,
    PollTick,
    ReconnectDue,
    SnapshotReceived,
    SyncEvent,
    TransportError,
    TransportOpened,
    VisibilityChanged,
)
from queuesync.sync.heartbeat import HeartbeatMonitor
from queuesync.sync.messages import (
    ErrorMessage,
    HeartbeatMessage,
    SnapshotMessage,
    parse_push_message,
)
from queuesync.sync.polling import PollingFallback
from queuesync.sync.scheduler import TimerScheduler
from queuesync.sync.store import QueueStore, StoreListener
from queuesync.sync.stream import SseStreamSource, StreamSource
from queuesync.sync.transport import StreamTransport, TransportState
from queuesync.sync.visibility import VisibilitySignal, VisibilityState
from queuesync.utils.async_utils import cancel_task_safe, create_safe_task
from queuesync.utils.errors import MessageParseError
from queuesync.utils.http_client import AsyncHttpClient

logger = get_logger(__name__)


class SyncCoordinator:
    """Keeps a local queue view in sync with the server.

    Usage:
        async with SyncCoordinator(api, source) as sync:
            sync.subscribe(render)
            await sync.join(queue_id, PlayerIdentity("123", "me"))
    """

    def __init__(
        self,
        api: QueueApiClient,
        source: StreamSource,
        *,
        settings: Settings | None = None,
        scheduler: TimerScheduler | None = None,
        visibility: VisibilitySignal | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        settings = settings if settings is not None else get_settings()
        self._clock = clock
        self._events: asyncio.Queue[SyncEvent] = asyncio.Queue()
        self._loop_task: asyncio.Task | None = None
        self._alive = False
        self._started = False

        self.store = QueueStore()
        self.health = ConnectionHealth()
        self.scheduler = scheduler if scheduler is not None else TimerScheduler()
        self.visibility = visibility if visibility is not None else VisibilityState()
        self.guard = PendingOperationGuard(
            debounce_seconds=settings.debounce_seconds,
            release_delay=settings.guard_release_delay_seconds,
        )
        self.monitor = HeartbeatMonitor(
            self.health,
            timeout=settings.heartbeat_timeout_seconds,
            check_interval=settings.heartbeat_check_interval_seconds,
        )
        self.transport = StreamTransport(
            source,
            self.health,
            self.scheduler,
            self.post,
            base_delay=settings.reconnect_base_delay_seconds,
            max_delay=settings.reconnect_max_delay_seconds,
            max_attempts=settings.max_reconnect_attempts,
            fallback_threshold=settings.fallback_failure_threshold,
        )
        self.polling = PollingFallback(
            self.scheduler,
            self.post,
            self.visibility,
            api.fetch_queues,
            interval=settings.poll_interval_seconds,
            clock=clock,
        )
        self.controller = OptimisticMutationController(
            self.store,
            api,
            self.guard,
            self.scheduler,
            clock=clock,
            is_alive=lambda: self._alive,
        )

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def queues(self) -> tuple[Queue, ...]:
        return self.store.queues

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Open the stream, start heartbeat checks and the event loop."""
        if self._started:
            return
        self._started = True
        self._alive = True

        self.visibility.add_listener(self._on_visibility_change)
        self.monitor.start(self.scheduler, self.post)
        self.transport.open(self._clock())
        self._loop_task = create_safe_task(self._run(), name="queue-sync-loop")
        logger.info("sync_started")

    async def teardown(self) -> None:
        """Stop everything. In-flight commands finish but are discarded."""
        if not self._alive:
            return
        self._alive = False

        self.transport.close()
        self.polling.stop()
        self.scheduler.cancel_all()
        self.visibility.remove_listener(self._on_visibility_change)

        loop_task, self._loop_task = self._loop_task, None
        await cancel_task_safe(loop_task)
        await self.transport.wait_closed()
        await self.polling.aclose()
        logger.info("sync_stopped", version=self.store.version)

    async def __aenter__(self) -> "SyncCoordinator":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.teardown()

    def restart_stream(self) -> None:
        """Start a fresh connect cycle after the transport gave up."""
        if self._alive:
            self.transport.restart(self._clock())

    # =========================================================================
    # Event channel
    # =========================================================================

    def post(self, event: SyncEvent) -> None:
        """Queue an event for the loop. Dropped after teardown."""
        if self._alive:
            self._events.put_nowait(event)

    async def _run(self) -> None:
        while True:
            event = await self._events.get()
            try:
                self.handle_event(event)
            except Exception:
                logger.exception("event_handler_failed", event=type(event).__name__)

    def handle_event(self, event: SyncEvent) -> None:
        now = self._clock()
        match event:
            case TransportOpened(generation=generation):
                if not self.transport.is_current(generation):
                    return
                self.transport.handle_opened(now)
                self.monitor.record_heartbeat(now)
                self.polling.stop()

            case MessageReceived(generation=generation, data=data):
                if self.transport.is_current(generation):
                    self._handle_message(data, now)

            case HeartbeatReceived(generation=generation):
                if self.transport.is_current(generation):
                    self._record_liveness(now)

            case TransportError(generation=generation, error=error):
                if not self.transport.is_current(generation):
                    return
                outcome = self.transport.handle_failure(error, now)
                if outcome.start_polling:
                    self.polling.start()

            case ReconnectDue():
                self.transport.handle_reconnect_due(now)

            case HeartbeatCheckDue():
                if self.monitor.check(now):
                    self.polling.start()

            case PollTick():
                self.polling.on_tick()

            case SnapshotReceived(snapshot=snapshot):
                self.apply_snapshot(snapshot)

            case VisibilityChanged(visible=visible):
                if visible and self.polling.running:
                    self.polling.on_tick()

    def _handle_message(self, data: str, now: float) -> None:
        try:
            message = parse_push_message(data)
        except MessageParseError as e:
            logger.warning("push_message_dropped", error=e.message)
            return

        # Any well-formed frame proves the channel is alive
        self._record_liveness(now)

        match message:
            case HeartbeatMessage():
                pass
            case ErrorMessage(message=text):
                logger.warning("push_error_reported", message=text)
            case SnapshotMessage(queues=queues):
                self.apply_snapshot(
                    QueueSnapshot(queues=queues, received_at=now, source=SnapshotSource.STREAM)
                )

    def _record_liveness(self, now: float) -> None:
        self.monitor.record_heartbeat(now)
        if self.transport.state == TransportState.CONNECTED and self.monitor.recover(now):
            self.polling.stop()

    def _on_visibility_change(self, visible: bool) -> None:
        self.post(VisibilityChanged(visible))

    def apply_snapshot(self, snapshot: QueueSnapshot) -> bool:
        """Replace the whole store with ``snapshot``. Last snapshot wins."""
        changed = self.store.commit(snapshot.queues, reason=f"snapshot_{snapshot.source.value}")
        if changed:
            logger.debug(
                "snapshot_applied",
                source=snapshot.source.value,
                queues=len(snapshot.queues),
            )
        return changed

    # =========================================================================
    # Facade
    # =========================================================================

    async def join(self, queue_id: str, player: PlayerIdentity) -> MutationResult:
        return await self.controller.join(queue_id, player)

    async def leave(self, queue_id: str, player_id: str) -> MutationResult:
        return await self.controller.leave(queue_id, player_id)

    async def fill(self, queue_id: str, reshuffle: bool = False) -> CommandResult:
        return await self.controller.fill(queue_id, reshuffle=reshuffle)

    async def clear(self, queue_id: str) -> CommandResult:
        return await self.controller.clear(queue_id)

    async def launch(self, queue_id: str) -> LaunchResult:
        return await self.controller.launch(queue_id)

    def partition(self, queue_id: str) -> Partition | None:
        """Active/waitlist split of a queue, derived from current state."""
        queue = self.store.get(queue_id)
        return partition_queue(queue) if queue is not None else None

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        return self.store.subscribe(listener)


@asynccontextmanager
async def open_queue_sync(
    settings: Settings | None = None,
    *,
    visibility: VisibilitySignal | None = None,
) -> AsyncIterator[SyncCoordinator]:
    """Build an HTTP-backed coordinator from settings and run it."""
    settings = settings if settings is not None else get_settings()
    http = AsyncHttpClient(
        base_url=settings.base_url,
        timeout=settings.request_timeout_seconds,
        connect_timeout=settings.connect_timeout_seconds,
    )
    async with http:
        api = QueueApiClient(http, queues_path=settings.queues_path)
        source = SseStreamSource(http, settings.events_path)
        async with SyncCoordinator(
            api, source, settings=settings, visibility=visibility
        ) as coordinator:
            yield coordinator
