"""Optimistic join/leave with rollback.

A join or leave is applied to the local store before the server answers, so
the display reacts at once. Each local mutation hands back an undo closure
built from the state it saw; if the command fails, the undo runs and the
error is re-raised to the caller.

Undo closures target records by id, never by position: a snapshot may have
reshuffled the queue while the command was in flight.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Protocol

from queuesync.logging_config import get_logger
from queuesync.schemas.common import CommandResult, LaunchResult
from queuesync.schemas.queue import Queue, QueuePlayer
from queuesync.services.pending_guard import OperationKind, PendingOperationGuard
from queuesync.sync.scheduler import TimerScheduler
from queuesync.sync.store import QueueStore

logger = get_logger(__name__)

Undo = Callable[[], bool]


class QueueCommands(Protocol):
    async def join(self, queue_id: str) -> CommandResult: ...

    async def leave(self, queue_id: str) -> CommandResult: ...

    async def fill(self, queue_id: str, reshuffle: bool = False) -> CommandResult: ...

    async def clear(self, queue_id: str) -> CommandResult: ...

    async def launch(self, queue_id: str) -> LaunchResult: ...


class MutationStatus(str, Enum):
    APPLIED = "applied"
    NOOP = "noop"
    REJECTED = "rejected"
    # Owner torn down before the server answered
    DISCARDED = "discarded"


@dataclass(frozen=True)
class MutationResult:
    status: MutationStatus
    queue_id: str
    reason: str | None = None

    @property
    def applied(self) -> bool:
        return self.status == MutationStatus.APPLIED


@dataclass(frozen=True)
class PlayerIdentity:
    """The local user, as needed to fake their queue entry."""

    player_id: str
    display_name: str = ""


def apply_join(store: QueueStore, queue_id: str, player: QueuePlayer) -> Undo:
    """Append ``player`` to the queue; the undo removes it again by id."""
    store.update_queue(
        queue_id,
        lambda q: q.with_players((*q.players, player)),
        reason="optimistic_join",
    )

    def undo() -> bool:
        return store.update_queue(
            queue_id,
            lambda q: q.with_players(p for p in q.players if p.player_id != player.player_id),
            reason="join_rollback",
        )

    return undo


def apply_leave(store: QueueStore, queue: Queue, player_id: str) -> Undo:
    """Drop ``player_id`` from ``queue``; the undo restores ``queue`` as given."""
    store.replace_queue(
        queue.with_players(p for p in queue.players if p.player_id != player_id),
        reason="optimistic_leave",
    )

    def undo() -> bool:
        return store.replace_queue(queue, reason="leave_rollback")

    return undo


def _wall_clock_ms() -> float:
    return time.time() * 1000


class OptimisticMutationController:
    """Runs guarded, optimistically applied queue commands."""

    def __init__(
        self,
        store: QueueStore,
        api: QueueCommands,
        guard: PendingOperationGuard,
        scheduler: TimerScheduler,
        *,
        clock: Callable[[], float] = time.monotonic,
        wall_clock_ms: Callable[[], float] = _wall_clock_ms,
        is_alive: Callable[[], bool] = lambda: True,
    ):
        self.store = store
        self.api = api
        self.guard = guard
        self._scheduler = scheduler
        self._clock = clock
        self._wall_clock_ms = wall_clock_ms
        self._is_alive = is_alive

    async def join(self, queue_id: str, player: PlayerIdentity) -> MutationResult:
        """Join a queue, showing the local player in it right away.

        Raises:
            CommandError: The server refused or could not be reached; the
                provisional entry has been removed
        """
        queue = self.store.get(queue_id)
        if queue is None:
            return MutationResult(MutationStatus.REJECTED, queue_id, "queue_not_found")
        if queue.has_player(player.player_id):
            return MutationResult(MutationStatus.NOOP, queue_id, "already_in_queue")

        provisional = QueuePlayer(
            player_id=player.player_id,
            display_name=player.display_name,
            rating=None,
            joined_at=self._wall_clock_ms(),
        )
        return await self._run(
            OperationKind.JOIN,
            queue_id,
            lambda: apply_join(self.store, queue_id, provisional),
            lambda: self.api.join(queue_id),
        )

    async def leave(self, queue_id: str, player_id: str) -> MutationResult:
        """Leave a queue, removing the local player right away.

        Raises:
            CommandError: The server refused or could not be reached; the
                queue has been restored
        """
        queue = self.store.get(queue_id)
        if queue is None:
            return MutationResult(MutationStatus.REJECTED, queue_id, "queue_not_found")
        if not queue.has_player(player_id):
            return MutationResult(MutationStatus.NOOP, queue_id, "not_in_queue")

        return await self._run(
            OperationKind.LEAVE,
            queue_id,
            # Re-read at apply time; the guard check does not yield
            lambda: apply_leave(self.store, self.store.get(queue_id) or queue, player_id),
            lambda: self.api.leave(queue_id),
        )

    async def fill(self, queue_id: str, reshuffle: bool = False) -> CommandResult:
        return await self.api.fill(queue_id, reshuffle=reshuffle)

    async def clear(self, queue_id: str) -> CommandResult:
        return await self.api.clear(queue_id)

    async def launch(self, queue_id: str) -> LaunchResult:
        return await self.api.launch(queue_id)

    async def _run(
        self,
        kind: OperationKind,
        queue_id: str,
        mutate: Callable[[], Undo],
        command: Callable[[], Awaitable[CommandResult]],
    ) -> MutationResult:
        decision = self.guard.try_begin(queue_id, kind, self._clock())
        if not decision:
            return MutationResult(MutationStatus.REJECTED, queue_id, decision.reason.value)

        undo = mutate()
        try:
            await command()
        except Exception as e:
            if not self._is_alive():
                logger.info("mutation_discarded", kind=kind.value, queue_id=queue_id)
                return MutationResult(MutationStatus.DISCARDED, queue_id, "torn_down")
            undo()
            logger.warning(
                "mutation_rolled_back",
                kind=kind.value,
                queue_id=queue_id,
                error=str(e),
            )
            raise
        finally:
            self._schedule_release(queue_id)

        if not self._is_alive():
            return MutationResult(MutationStatus.DISCARDED, queue_id, "torn_down")
        logger.debug("mutation_confirmed", kind=kind.value, queue_id=queue_id)
        return MutationResult(MutationStatus.APPLIED, queue_id)

    def _schedule_release(self, queue_id: str) -> None:
        if not self._is_alive():
            self.guard.end(queue_id)
            return
        self._scheduler.call_later(
            f"guard_release:{queue_id}",
            self.guard.release_delay,
            lambda: self.guard.end(queue_id),
        )
