"""Periodic snapshot fetches while the push channel is unhealthy."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Sequence

from queuesync.logging_config import get_logger
from queuesync.schemas.queue import Queue, QueueSnapshot, SnapshotSource
from queuesync.sync.events import EventSink, PollTick, SnapshotReceived
from queuesync.sync.scheduler import TimerScheduler
from queuesync.sync.visibility import VisibilitySignal
from queuesync.utils.async_utils import cancel_task_safe, create_safe_task
from queuesync.utils.errors import RateLimitedError, SyncError

logger = get_logger(__name__)

POLL_INTERVAL = 10.0  # seconds
POLL_TIMER = "poll"

FetchQueues = Callable[[], Awaitable[Sequence[Queue]]]


class PollingFallback:
    """Fetches full snapshots on a fixed interval.

    Ticks arrive as ``PollTick`` events; the coordinator hands each one to
    ``on_tick``, which starts at most one fetch at a time. Fetched snapshots
    go back through the event channel as ``SnapshotReceived``.
    """

    def __init__(
        self,
        scheduler: TimerScheduler,
        post: EventSink,
        visibility: VisibilitySignal,
        fetch_queues: FetchQueues,
        *,
        interval: float = POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._scheduler = scheduler
        self._post = post
        self._visibility = visibility
        self._fetch_queues = fetch_queues
        self.interval = interval
        self._clock = clock

        self._running = False
        self._inflight: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def fetch_in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def start(self) -> bool:
        """Begin polling with an immediate tick. Returns False if already running."""
        if self._running:
            return False
        self._running = True
        self._scheduler.call_every(POLL_TIMER, self.interval, lambda: self._post(PollTick()))
        self._post(PollTick())
        logger.info("polling_started", interval=self.interval)
        return True

    def stop(self) -> bool:
        """Stop ticking. A fetch already in flight is left to finish."""
        if not self._running:
            return False
        self._running = False
        self._scheduler.cancel(POLL_TIMER)
        logger.info("polling_stopped")
        return True

    def on_tick(self) -> bool:
        """Handle one tick. Returns True if a fetch was started."""
        if not self._running:
            return False
        if not self._visibility.is_visible():
            logger.debug("poll_skipped", reason="hidden")
            return False
        if self.fetch_in_flight:
            logger.debug("poll_skipped", reason="in_flight")
            return False

        self._inflight = create_safe_task(self._fetch(), name="queue-poll")
        return True

    async def _fetch(self) -> None:
        try:
            queues = await self._fetch_queues()
        except RateLimitedError as e:
            logger.debug("poll_skipped", reason="rate_limited", retry_after=e.retry_after)
            return
        except SyncError as e:
            logger.warning("poll_failed", error=e.message, code=e.code)
            return

        snapshot = QueueSnapshot(
            queues=tuple(queues),
            received_at=self._clock(),
            source=SnapshotSource.POLL,
        )
        self._post(SnapshotReceived(snapshot))

    async def aclose(self) -> None:
        """Stop polling and cancel any fetch in flight."""
        self.stop()
        inflight, self._inflight = self._inflight, None
        await cancel_task_safe(inflight)
