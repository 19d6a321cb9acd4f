"""Queue services: partitioning, pending operation guard, optimistic mutations."""

from queuesync.services.optimistic import (
    MutationResult,
    MutationStatus,
    OptimisticMutationController,
    PlayerIdentity,
)
from queuesync.services.partition import (
    Partition,
    can_launch,
    estimate_wait_seconds,
    filled_count,
    is_player_in_queue,
    partition,
    partition_queue,
    players_needed,
    queues_for_team_size,
)
from queuesync.services.pending_guard import (
    GuardDecision,
    GuardRejection,
    OperationKind,
    PendingOperation,
    PendingOperationGuard,
)

__all__ = [
    # Partition
    "Partition",
    "partition",
    "partition_queue",
    "filled_count",
    "players_needed",
    "can_launch",
    "is_player_in_queue",
    "queues_for_team_size",
    "estimate_wait_seconds",
    # Guard
    "GuardDecision",
    "GuardRejection",
    "OperationKind",
    "PendingOperation",
    "PendingOperationGuard",
    # Optimistic mutations
    "MutationResult",
    "MutationStatus",
    "OptimisticMutationController",
    "PlayerIdentity",
]
