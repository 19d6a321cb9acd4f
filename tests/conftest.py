"""Shared test doubles and factories."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable
from unittest.mock import AsyncMock, MagicMock

import orjson
import pytest

from queuesync.client.queue_api import QueueApiClient
from queuesync.config import Settings
from queuesync.schemas.common import CommandResult, LaunchResult
from queuesync.schemas.queue import Queue, QueuePlayer
from queuesync.sync.stream import SseEvent

BASE_JOINED_AT = 1_700_000_000_000.0


# =============================================================================
# Factories
# =============================================================================


def make_player(
    player_id: str,
    joined_at: float = BASE_JOINED_AT,
    display_name: str | None = None,
    rating: int | None = 1000,
) -> QueuePlayer:
    return QueuePlayer(
        player_id=player_id,
        display_name=display_name if display_name is not None else f"Player {player_id}",
        rating=rating,
        joined_at=joined_at,
    )


def make_players(count: int, prefix: str = "P", start: int = 1) -> tuple[QueuePlayer, ...]:
    """Players P1..Pn with strictly increasing join times."""
    return tuple(
        make_player(f"{prefix}{i}", joined_at=BASE_JOINED_AT + i * 1000)
        for i in range(start, start + count)
    )


def make_queue(
    queue_id: str = "q1",
    team_size: int = 4,
    players: tuple[QueuePlayer, ...] = (),
    **overrides: Any,
) -> Queue:
    return Queue(id=queue_id, team_size=team_size, players=players, **overrides)


def queue_payload(queue: Queue) -> dict[str, Any]:
    """Wire (camelCase) form of a queue."""
    return queue.model_dump(mode="json", by_alias=True)


def to_json(data: Any) -> str:
    return orjson.dumps(data).decode()


def make_settings(**overrides: Any) -> Settings:
    return Settings(_env_file=None, **overrides)


# =============================================================================
# Time
# =============================================================================


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeScheduler:
    """TimerScheduler double driven by a FakeClock.

    ``history`` records every registration as ``(name, delay)``.
    """

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self._timers: dict[str, tuple[float, float | None, Callable[[], None]]] = {}
        self.history: list[tuple[str, float]] = []

    def call_later(self, name: str, delay: float, callback: Callable[[], None]) -> None:
        self._timers[name] = (self.clock.now + delay, None, callback)
        self.history.append((name, delay))

    def call_every(self, name: str, interval: float, callback: Callable[[], None]) -> None:
        self._timers[name] = (self.clock.now + interval, interval, callback)
        self.history.append((name, interval))

    def cancel(self, name: str) -> bool:
        return self._timers.pop(name, None) is not None

    def cancel_all(self) -> int:
        count = len(self._timers)
        self._timers.clear()
        return count

    def is_scheduled(self, name: str) -> bool:
        return name in self._timers

    @property
    def names(self) -> set[str]:
        return set(self._timers)

    def __len__(self) -> int:
        return len(self._timers)

    def delays(self, name: str) -> list[float]:
        return [delay for timer, delay in self.history if timer == name]

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in order."""
        target = self.clock.now + seconds
        while True:
            due = [(t[0], name) for name, t in self._timers.items() if t[0] <= target]
            if not due:
                break
            when, name = min(due)
            self.clock.now = max(self.clock.now, when)
            _, interval, callback = self._timers.pop(name)
            if interval is not None:
                self._timers[name] = (when + interval, interval, callback)
            callback()
        self.clock.now = target

    def fire(self, name: str) -> None:
        """Run a timer now, regardless of its due time."""
        _, interval, callback = self._timers.pop(name)
        if interval is not None:
            self._timers[name] = (self.clock.now + interval, interval, callback)
        callback()


# =============================================================================
# Stream sources
# =============================================================================


class IdleStreamSource:
    """Stream source whose connections never open or fail on their own."""

    url = "http://queues.test/api/queues/events"

    def __init__(self):
        self.connect_calls = 0

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncIterator[SseEvent]]:
        self.connect_calls += 1
        await asyncio.Event().wait()
        yield _no_events()


class ScriptedStreamSource:
    """Stream source that replays ``events`` and then ends the stream.

    ``error`` makes ``connect`` raise instead.
    """

    url = "http://queues.test/api/queues/events"

    def __init__(self, events: list[SseEvent] | None = None, error: Exception | None = None):
        self.events = events or []
        self.error = error
        self.connect_calls = 0

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncIterator[SseEvent]]:
        self.connect_calls += 1
        if self.error is not None:
            raise self.error
        yield _replay(self.events)


async def _no_events() -> AsyncIterator[SseEvent]:
    return
    yield  # pragma: no cover


async def _replay(events: list[SseEvent]) -> AsyncIterator[SseEvent]:
    for event in events:
        yield event


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock: FakeClock) -> FakeScheduler:
    return FakeScheduler(clock)


@pytest.fixture
def mock_api() -> MagicMock:
    """QueueApiClient double whose commands succeed."""
    api = MagicMock(spec=QueueApiClient)
    api.fetch_queues = AsyncMock(return_value=[])
    api.join = AsyncMock(return_value=CommandResult(message="Joined queue"))
    api.leave = AsyncMock(return_value=CommandResult(message="Left queue"))
    api.fill = AsyncMock(return_value=CommandResult(message="Filled", added_players=8))
    api.clear = AsyncMock(return_value=CommandResult(message="Cleared"))
    api.launch = AsyncMock(return_value=LaunchResult(message="Launched", match_id="m1"))
    return api
