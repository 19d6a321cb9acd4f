"""Push stream payload parsing.

A ``data:`` frame carries one of three shapes:

    {"type": "heartbeat"}
    {"type": "error", "message": "..."}
    [ {queue}, {queue}, ... ]        full queue list
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

from pydantic import ValidationError

from queuesync.schemas.queue import QUEUE_LIST_ADAPTER, Queue
from queuesync.utils.errors import MessageParseError
from queuesync.utils.json_utils import json_loads


@dataclass(frozen=True)
class HeartbeatMessage:
    pass


@dataclass(frozen=True)
class ErrorMessage:
    message: str


@dataclass(frozen=True)
class SnapshotMessage:
    queues: tuple[Queue, ...]


PushMessage: TypeAlias = HeartbeatMessage | ErrorMessage | SnapshotMessage


def parse_push_message(raw: str | bytes) -> PushMessage:
    """Decode one push payload.

    Raises:
        MessageParseError: Bad JSON, unknown type, or an invalid queue list
    """
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    try:
        data = json_loads(raw)
    except ValueError as e:
        raise MessageParseError(f"invalid JSON ({e})", text) from e

    if isinstance(data, list):
        try:
            queues = QUEUE_LIST_ADAPTER.validate_python(data)
        except ValidationError as e:
            raise MessageParseError(
                f"invalid queue list ({e.error_count()} errors)", text
            ) from e
        return SnapshotMessage(queues=tuple(queues))

    if isinstance(data, dict):
        match data.get("type"):
            case "heartbeat":
                return HeartbeatMessage()
            case "error":
                return ErrorMessage(message=str(data.get("message") or "unknown error"))
            case other:
                raise MessageParseError(f"unknown message type {other!r}", text)

    raise MessageParseError(f"unexpected payload of type {type(data).__name__}", text)
