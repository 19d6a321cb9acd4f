"""Queue wire models and snapshot container."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable

from pydantic import AliasChoices, Field, TypeAdapter, field_validator, model_validator

from queuesync.schemas.common import BaseSchema


class QueueStatus(str, Enum):
    """Queue status."""

    ACTIVE = "active"
    INACTIVE = "inactive"


# Older server builds report open/full/closed
_LEGACY_STATUS = {
    "open": QueueStatus.ACTIVE,
    "full": QueueStatus.ACTIVE,
    "closed": QueueStatus.INACTIVE,
}


def _to_epoch_ms(value: Any) -> Any:
    """Normalise a join timestamp to float epoch milliseconds."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp() * 1000
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            pass
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return _to_epoch_ms(parsed)
    return value


class QueuePlayer(BaseSchema):
    """A player waiting in a queue.

    ``rating`` is None for provisional entries created by an optimistic
    join; the next snapshot carries the real value.
    """

    player_id: str = Field(
        ...,
        validation_alias=AliasChoices("player_id", "discordId", "playerId"),
        serialization_alias="discordId",
    )
    display_name: str = Field(
        default="",
        validation_alias=AliasChoices(
            "display_name", "discordNickname", "discordUsername", "displayName"
        ),
        serialization_alias="discordNickname",
    )
    rating: int | None = Field(
        default=None,
        validation_alias=AliasChoices("rating", "elo"),
        serialization_alias="elo",
    )
    joined_at: float = Field(
        ...,
        validation_alias=AliasChoices("joined_at", "joinedAt"),
        serialization_alias="joinedAt",
    )

    @field_validator("player_id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("rating", mode="before")
    @classmethod
    def round_rating(cls, v: Any) -> Any:
        return round(v) if isinstance(v, float) else v

    @field_validator("joined_at", mode="before")
    @classmethod
    def parse_joined_at(cls, v: Any) -> Any:
        return _to_epoch_ms(v)


class Queue(BaseSchema):
    """A matchmaking queue as reported by the server."""

    id: str = Field(
        ...,
        validation_alias=AliasChoices("id", "_id", "queueId"),
        serialization_alias="_id",
    )
    game_type: str | None = Field(
        default=None,
        validation_alias=AliasChoices("game_type", "gameType"),
        serialization_alias="gameType",
    )
    team_size: int = Field(
        ...,
        ge=1,
        validation_alias=AliasChoices("team_size", "teamSize"),
        serialization_alias="teamSize",
    )
    elo_tier: str | None = Field(
        default=None,
        validation_alias=AliasChoices("elo_tier", "eloTier"),
        serialization_alias="eloTier",
    )
    min_elo: int | None = Field(
        default=None,
        validation_alias=AliasChoices("min_elo", "minElo"),
        serialization_alias="minElo",
    )
    max_elo: int | None = Field(
        default=None,
        validation_alias=AliasChoices("max_elo", "maxElo"),
        serialization_alias="maxElo",
    )
    status: QueueStatus = QueueStatus.ACTIVE
    players: tuple[QueuePlayer, ...] = ()

    @field_validator("status", mode="before")
    @classmethod
    def map_legacy_status(cls, v: Any) -> Any:
        if isinstance(v, str):
            return _LEGACY_STATUS.get(v.lower(), v.lower())
        return v

    @model_validator(mode="before")
    @classmethod
    def unpack_elo_range(cls, data: Any) -> Any:
        # Some payloads nest the bounds as eloRange: {min, max}
        if isinstance(data, dict) and isinstance(data.get("eloRange"), dict):
            data = dict(data)
            elo_range = data.pop("eloRange")
            data.setdefault("minElo", elo_range.get("min"))
            data.setdefault("maxElo", elo_range.get("max"))
        return data

    @model_validator(mode="after")
    def check_unique_players(self) -> "Queue":
        seen: set[str] = set()
        for player in self.players:
            if player.player_id in seen:
                raise ValueError(f"duplicate player {player.player_id} in queue {self.id}")
            seen.add(player.player_id)
        return self

    @property
    def required_players(self) -> int:
        """Players needed to draft one match (two full teams)."""
        return self.team_size * 2

    def has_player(self, player_id: str) -> bool:
        return any(p.player_id == player_id for p in self.players)

    def with_players(self, players: Iterable[QueuePlayer]) -> "Queue":
        """Copy of this queue with a different player list."""
        return self.model_copy(update={"players": tuple(players)})


QUEUE_LIST_ADAPTER: TypeAdapter[list[Queue]] = TypeAdapter(list[Queue])


class SnapshotSource(str, Enum):
    """Where a snapshot came from."""

    STREAM = "stream"
    POLL = "poll"


@dataclass(frozen=True)
class QueueSnapshot:
    """A complete, timestamped replacement of every known queue."""

    queues: tuple[Queue, ...]
    received_at: float
    source: SnapshotSource = SnapshotSource.STREAM
