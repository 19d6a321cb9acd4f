"""Internal sync events.

Stream readers, timers, poll fetches and the visibility signal never touch
state directly; they post one of these tagged events to the coordinator's
channel, and the coordinator loop consumes them one at a time.

Events tagged with a ``generation`` belong to one stream connection; once
the transport has moved on to a newer connection they are stale and ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, TypeAlias

from queuesync.schemas.queue import QueueSnapshot


@dataclass(frozen=True)
class TransportOpened:
    generation: int


@dataclass(frozen=True)
class MessageReceived:
    """A ``data:`` frame from the push stream, not yet parsed."""

    generation: int
    data: str


@dataclass(frozen=True)
class HeartbeatReceived:
    """A keep-alive comment frame from the push stream."""

    generation: int


@dataclass(frozen=True)
class TransportError:
    generation: int
    error: BaseException


@dataclass(frozen=True)
class ReconnectDue:
    pass


@dataclass(frozen=True)
class HeartbeatCheckDue:
    pass


@dataclass(frozen=True)
class PollTick:
    pass


@dataclass(frozen=True)
class SnapshotReceived:
    """A snapshot fetched by the poller."""

    snapshot: QueueSnapshot


@dataclass(frozen=True)
class VisibilityChanged:
    visible: bool


SyncEvent: TypeAlias = (
    TransportOpened
    | MessageReceived
    | HeartbeatReceived
    | TransportError
    | ReconnectDue
    | HeartbeatCheckDue
    | PollTick
    | SnapshotReceived
    | VisibilityChanged
)

EventSink = Callable[[SyncEvent], None]
