"""Push channel health model."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from queuesync.logging_config import get_logger

logger = get_logger(__name__)


class HealthState(str, Enum):
    """Health of the server-push channel."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DEGRADED = "degraded"
    DEAD = "dead"


@dataclass
class ConnectionHealth:
    """Shared view of push channel health.

    Written by the stream transport (open/failure) and the heartbeat monitor
    (silence); read by the coordinator to decide whether to poll.
    """

    state: HealthState = HealthState.CONNECTING
    last_heartbeat_at: float | None = None
    reconnect_attempt: int = 0
    consecutive_failures: int = 0
    changed_at: float | None = None

    def transition(self, new_state: HealthState, now: float) -> bool:
        """Move to ``new_state``. Returns False if already there."""
        old_state = self.state
        if old_state == new_state:
            return False

        self.state = new_state
        self.changed_at = now
        logger.info("health_changed", old=old_state.value, new=new_state.value)
        return True

    def record_heartbeat(self, now: float) -> None:
        self.last_heartbeat_at = now

    def heartbeat_age(self, now: float) -> float | None:
        """Seconds since the last liveness signal, None if never seen."""
        if self.last_heartbeat_at is None:
            return None
        return now - self.last_heartbeat_at

    def reset_failures(self) -> None:
        self.reconnect_attempt = 0
        self.consecutive_failures = 0

    @property
    def is_connected(self) -> bool:
        return self.state == HealthState.CONNECTED

    def to_dict(self) -> dict[str, object]:
        return {
            "health": self.state.value,
            "health_changed_at": self.changed_at,
            "last_heartbeat_at": self.last_heartbeat_at,
            "reconnect_attempt": self.reconnect_attempt,
            "consecutive_failures": self.consecutive_failures,
        }
