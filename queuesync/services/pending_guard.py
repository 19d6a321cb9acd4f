"""Per-queue pending operation guard.

At most one join/leave may be in flight per queue, and actions on the same
queue closer together than the debounce window are dropped. Other queues are
unaffected: this is a per-queue logical mutex, not a global lock.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from queuesync.logging_config import get_logger

logger = get_logger(__name__)

DEBOUNCE_SECONDS = 0.5
RELEASE_DELAY_SECONDS = 0.5


class OperationKind(str, Enum):
    JOIN = "join"
    LEAVE = "leave"


class GuardRejection(str, Enum):
    """Why an action was refused."""

    IN_PROGRESS = "operation_in_progress"
    TOO_SOON = "too_soon"


@dataclass(frozen=True)
class PendingOperation:
    queue_id: str
    kind: OperationKind
    issued_at: float


@dataclass(frozen=True)
class GuardDecision:
    """Outcome of ``try_begin``."""

    accepted: bool
    reason: GuardRejection | None = None
    operation: PendingOperation | None = None

    def __bool__(self) -> bool:
        return self.accepted


class PendingOperationGuard:
    """Tracks in-flight operations and last action time per queue.

    Callers must call ``end(queue_id)`` once the command has settled
    (after ``release_delay`` seconds, success or failure), otherwise the
    queue stays locked.
    """

    def __init__(
        self,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        release_delay: float = RELEASE_DELAY_SECONDS,
    ):
        self.debounce_seconds = debounce_seconds
        self.release_delay = release_delay
        self._pending: dict[str, PendingOperation] = {}
        self._last_action_at: dict[str, float] = {}

    def try_begin(self, queue_id: str, kind: OperationKind, now: float) -> GuardDecision:
        """Claim the queue for one operation.

        Args:
            queue_id: Queue the action targets
            kind: Join or leave
            now: Current monotonic time in seconds

        Returns:
            Accepted decision carrying the recorded operation, or a rejection
        """
        existing = self._pending.get(queue_id)
        if existing is not None:
            logger.debug(
                "guard_rejected",
                queue_id=queue_id,
                kind=kind.value,
                reason=GuardRejection.IN_PROGRESS.value,
                pending=existing.kind.value,
            )
            return GuardDecision(accepted=False, reason=GuardRejection.IN_PROGRESS)

        last = self._last_action_at.get(queue_id)
        if last is not None and now - last < self.debounce_seconds:
            logger.debug(
                "guard_rejected",
                queue_id=queue_id,
                kind=kind.value,
                reason=GuardRejection.TOO_SOON.value,
            )
            return GuardDecision(accepted=False, reason=GuardRejection.TOO_SOON)

        operation = PendingOperation(queue_id=queue_id, kind=kind, issued_at=now)
        self._pending[queue_id] = operation
        self._last_action_at[queue_id] = now
        return GuardDecision(accepted=True, operation=operation)

    def end(self, queue_id: str) -> None:
        """Release the queue. Releasing an idle queue is a no-op."""
        self._pending.pop(queue_id, None)

    def pending(self, queue_id: str) -> PendingOperation | None:
        return self._pending.get(queue_id)

    def is_pending(self, queue_id: str) -> bool:
        return queue_id in self._pending

    def clear(self) -> None:
        """Forget every pending operation and timestamp."""
        self._pending.clear()
        self._last_action_at.clear()
