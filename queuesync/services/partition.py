"""Queue partitioning and derived queue views.

Splits a queue's players into the active set (drafted into the next match)
and the waitlist, first-come-first-served by join time. Everything here is a
pure function of its inputs; nothing is stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from queuesync.schemas.queue import Queue, QueuePlayer


@dataclass(frozen=True)
class Partition:
    """Active players and waitlist for one queue, both in join order."""

    active: tuple[QueuePlayer, ...]
    waitlist: tuple[QueuePlayer, ...]

    @property
    def total(self) -> int:
        return len(self.active) + len(self.waitlist)


def partition(players: Sequence[QueuePlayer], team_size: int) -> Partition:
    """Split players into active and waitlist sets.

    The first ``team_size * 2`` players by join time are active; the rest
    wait, in the same order. Players with identical join timestamps keep
    their original list order (the sort is stable and uses no other key).

    Args:
        players: Queue members, normally already in join order
        team_size: Players per team (>= 1)

    Returns:
        Partition of the players

    Raises:
        ValueError: If team_size is less than 1
    """
    if team_size < 1:
        raise ValueError(f"team_size must be >= 1, got {team_size}")

    ordered = sorted(players, key=lambda p: p.joined_at)
    cutoff = team_size * 2
    return Partition(active=tuple(ordered[:cutoff]), waitlist=tuple(ordered[cutoff:]))


def partition_queue(queue: Queue) -> Partition:
    """Partition a queue by its own team size."""
    return partition(queue.players, queue.team_size)


def filled_count(queue: Queue) -> int:
    """Active slots taken, as shown in the "filled/required" counter."""
    return min(len(queue.players), queue.required_players)


def players_needed(queue: Queue) -> int:
    """How many more players must join before a match can launch."""
    return max(0, queue.required_players - len(queue.players))


def can_launch(queue: Queue) -> bool:
    """Whether the active set is complete."""
    return len(queue.players) >= queue.required_players


def is_player_in_queue(queue: Queue, player_id: str) -> bool:
    return queue.has_player(player_id)


def queues_for_team_size(queues: Iterable[Queue], team_size: int) -> list[Queue]:
    """Queues of one format (e.g. team_size=4 for the 4v4 tab), order kept."""
    return [q for q in queues if q.team_size == team_size]


def estimate_wait_seconds(queue: Queue, average_fill_seconds: float | None) -> float | None:
    """Estimate the remaining wait until the queue fills.

    Scales the historical average time to fill a whole queue by the share
    of slots still open.

    Args:
        queue: Queue to estimate for
        average_fill_seconds: Average time recent matches of this queue type
            took to fill, or None when there is no history

    Returns:
        Estimated seconds, 0.0 when already full, None without history
    """
    if average_fill_seconds is None:
        return None
    remaining = players_needed(queue)
    return average_fill_seconds * remaining / queue.required_players
