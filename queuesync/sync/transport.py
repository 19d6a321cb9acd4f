"""Push stream lifecycle with capped exponential backoff.

    idle -> connecting -> connected -> reconnecting -> connecting -> ...
                                     \\-> exhausted (after the last attempt)
    any -> closed (teardown)

Every connection gets a new generation number. The reader task tags the
events it posts with it, and the coordinator drops events whose generation
is no longer current, so a superseded connection can never touch state.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum

import httpx

from queuesync.logging_config import get_logger
from queuesync.sync.connection import ConnectionHealth, HealthState
from queuesync.sync.events import (
    EventSink,
    HeartbeatReceived,
    MessageReceived,
    ReconnectDue,
    TransportError,
    TransportOpened,
)
from queuesync.sync.scheduler import TimerScheduler
from queuesync.sync.stream import StreamSource
from queuesync.utils.async_utils import cancel_task_safe, create_safe_task
from queuesync.utils.errors import StreamClosedError, SyncError

logger = get_logger(__name__)

RECONNECT_BASE_DELAY = 2.0  # seconds
RECONNECT_MAX_DELAY = 30.0  # seconds
MAX_RECONNECT_ATTEMPTS = 5
FALLBACK_FAILURE_THRESHOLD = 2
RECONNECT_TIMER = "reconnect"


class TransportState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    EXHAUSTED = "exhausted"
    CLOSED = "closed"


@dataclass(frozen=True)
class FailureOutcome:
    """What the coordinator should do after a stream failure."""

    start_polling: bool
    reconnect_delay: float | None = None

    @property
    def exhausted(self) -> bool:
        return self.reconnect_delay is None


def backoff_delay(
    attempt: int,
    base: float = RECONNECT_BASE_DELAY,
    max_delay: float = RECONNECT_MAX_DELAY,
) -> float:
    """Delay before reconnect number ``attempt`` (0-based): 2, 4, 8, 16, 30."""
    return min(max_delay, base * 2**attempt)


class StreamTransport:
    """Opens the push stream and schedules reconnects after failures."""

    def __init__(
        self,
        source: StreamSource,
        health: ConnectionHealth,
        scheduler: TimerScheduler,
        post: EventSink,
        *,
        base_delay: float = RECONNECT_BASE_DELAY,
        max_delay: float = RECONNECT_MAX_DELAY,
        max_attempts: int = MAX_RECONNECT_ATTEMPTS,
        fallback_threshold: int = FALLBACK_FAILURE_THRESHOLD,
    ):
        self._source = source
        self.health = health
        self._scheduler = scheduler
        self._post = post
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.max_attempts = max_attempts
        self.fallback_threshold = fallback_threshold

        self.state = TransportState.IDLE
        self._generation = 0
        self._reader: asyncio.Task | None = None

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        """Whether events from ``generation`` may still be applied."""
        return generation == self._generation and self.state != TransportState.CLOSED

    def open(self, now: float) -> int:
        """Start a new connection attempt. Returns its generation."""
        if self.state == TransportState.CLOSED:
            raise RuntimeError("Transport is closed")

        self._cancel_reader()
        self._generation += 1
        self.state = TransportState.CONNECTING
        self.health.transition(HealthState.CONNECTING, now)

        generation = self._generation
        self._reader = create_safe_task(
            self._read(generation),
            name=f"queue-stream-{generation}",
            on_error=lambda exc: self._post(TransportError(generation, exc)),
        )
        logger.info(
            "stream_connecting",
            url=self._source.url,
            generation=generation,
            attempt=self.health.reconnect_attempt,
        )
        return generation

    async def _read(self, generation: int) -> None:
        # Anything unexpected crashes the task and reaches on_error
        try:
            async with self._source.connect() as events:
                self._post(TransportOpened(generation))
                async for event in events:
                    if event.is_keepalive:
                        self._post(HeartbeatReceived(generation))
                    else:
                        self._post(MessageReceived(generation, event.data))
            raise StreamClosedError(self._source.url)
        except (SyncError, httpx.HTTPError, OSError) as e:
            self._post(TransportError(generation, e))

    def handle_opened(self, now: float) -> None:
        self.state = TransportState.CONNECTED
        self.health.reset_failures()
        self.health.transition(HealthState.CONNECTED, now)
        logger.info("stream_opened", generation=self._generation)

    def handle_failure(self, error: BaseException, now: float) -> FailureOutcome:
        """Record a failure of the current connection and plan recovery."""
        self._cancel_reader()
        health = self.health
        health.consecutive_failures += 1
        start_polling = health.consecutive_failures >= self.fallback_threshold

        if health.reconnect_attempt >= self.max_attempts:
            self.state = TransportState.EXHAUSTED
            self._scheduler.cancel(RECONNECT_TIMER)
            health.transition(HealthState.DEAD, now)
            logger.error(
                "stream_exhausted",
                attempts=health.reconnect_attempt,
                error=str(error),
            )
            return FailureOutcome(start_polling=True)

        health.transition(HealthState.DEGRADED, now)
        delay = backoff_delay(health.reconnect_attempt, self.base_delay, self.max_delay)
        health.reconnect_attempt += 1
        self.state = TransportState.RECONNECTING
        self._scheduler.call_later(
            RECONNECT_TIMER, delay, lambda: self._post(ReconnectDue())
        )
        logger.warning(
            "reconnect_scheduled",
            attempt=health.reconnect_attempt,
            delay=delay,
            failures=health.consecutive_failures,
            error=str(error),
        )
        return FailureOutcome(start_polling=start_polling, reconnect_delay=delay)

    def handle_reconnect_due(self, now: float) -> bool:
        """Open the next connection if a reconnect is still wanted."""
        if self.state != TransportState.RECONNECTING:
            return False
        self.open(now)
        return True

    def restart(self, now: float) -> int:
        """Begin a fresh connect cycle, e.g. after exhaustion."""
        self._scheduler.cancel(RECONNECT_TIMER)
        self.health.reset_failures()
        self.state = TransportState.IDLE
        return self.open(now)

    def close(self) -> None:
        """Stop the stream and any pending reconnect. Final."""
        self.state = TransportState.CLOSED
        self._scheduler.cancel(RECONNECT_TIMER)
        self._cancel_reader()
        logger.info("stream_closed", generation=self._generation)

    async def wait_closed(self) -> None:
        reader, self._reader = self._reader, None
        await cancel_task_safe(reader)

    def _cancel_reader(self) -> None:
        if self._reader is not None and not self._reader.done():
            self._reader.cancel()
