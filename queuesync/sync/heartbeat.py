"""Push channel liveness detection.

A stream that dies silently never reports an error, so liveness is judged
from the age of the last heartbeat. When it goes stale the channel is marked
degraded and the coordinator switches on polling. The stream itself is left
alone: the next frame on the same connection restores it, and so does a
successful reconnect.
"""

from __future__ import annotations

from queuesync.logging_config import get_logger
from queuesync.sync.connection import ConnectionHealth, HealthState
from queuesync.sync.events import EventSink, HeartbeatCheckDue
from queuesync.sync.scheduler import TimerScheduler

logger = get_logger(__name__)

HEARTBEAT_TIMEOUT = 30.0  # seconds
HEARTBEAT_CHECK_INTERVAL = 10.0  # seconds
HEARTBEAT_TIMER = "heartbeat_check"


class HeartbeatMonitor:
    """Tracks the last liveness signal and flags stale channels."""

    def __init__(
        self,
        health: ConnectionHealth,
        *,
        timeout: float = HEARTBEAT_TIMEOUT,
        check_interval: float = HEARTBEAT_CHECK_INTERVAL,
    ):
        self.health = health
        self.timeout = timeout
        self.check_interval = check_interval

    def record_heartbeat(self, now: float) -> None:
        self.health.record_heartbeat(now)

    def check(self, now: float) -> bool:
        """Run one staleness check.

        Returns:
            True if the channel was just marked degraded and polling
            should start
        """
        if self.health.state != HealthState.CONNECTED:
            return False

        age = self.health.heartbeat_age(now)
        if age is None or age <= self.timeout:
            return False

        self.health.transition(HealthState.DEGRADED, now)
        logger.warning("heartbeat_timeout", age=round(age, 1), timeout=self.timeout)
        return True

    def recover(self, now: float) -> bool:
        """Undo a silence degradation once the open stream speaks again.

        Only call this while the transport holds a live connection.

        Returns:
            True if health went back to connected and polling should stop
        """
        if self.health.state != HealthState.DEGRADED:
            return False
        self.health.transition(HealthState.CONNECTED, now)
        logger.info("heartbeat_recovered")
        return True

    def start(self, scheduler: TimerScheduler, post: EventSink) -> None:
        """Post a ``HeartbeatCheckDue`` every ``check_interval`` seconds."""
        scheduler.call_every(
            HEARTBEAT_TIMER, self.check_interval, lambda: post(HeartbeatCheckDue())
        )

    def stop(self, scheduler: TimerScheduler) -> None:
        scheduler.cancel(HEARTBEAT_TIMER)
