"""Pydantic schemas for server payloads."""

from queuesync.schemas.common import (
    BaseSchema,
    CommandResult,
    ErrorBody,
    LaunchResult,
)
from queuesync.schemas.queue import (
    QUEUE_LIST_ADAPTER,
    Queue,
    QueuePlayer,
    QueueSnapshot,
    QueueStatus,
    SnapshotSource,
)

__all__ = [
    # Common
    "BaseSchema",
    "CommandResult",
    "ErrorBody",
    "LaunchResult",
    # Queues
    "QUEUE_LIST_ADAPTER",
    "Queue",
    "QueuePlayer",
    "QueueSnapshot",
    "QueueStatus",
    "SnapshotSource",
]
