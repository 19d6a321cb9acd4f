"""Tests for push payload parsing."""

from __future__ import annotations

import pytest

from queuesync.sync.messages import (
    ErrorMessage,
    HeartbeatMessage,
    SnapshotMessage,
    parse_push_message,
)
from queuesync.utils.errors import ErrorCode, MessageParseError
from tests.conftest import make_players, make_queue, queue_payload, to_json


class TestParsePushMessage:
    def test_heartbeat(self):
        assert parse_push_message('{"type": "heartbeat"}') == HeartbeatMessage()

    def test_error_marker(self):
        message = parse_push_message(b'{"type": "error", "message": "db down"}')
        assert message == ErrorMessage(message="db down")

    def test_queue_list(self):
        queue = make_queue("q1", players=make_players(2))
        message = parse_push_message(to_json([queue_payload(queue)]))

        assert isinstance(message, SnapshotMessage)
        assert message.queues == (queue,)

    def test_wire_shape(self):
        raw = """[{
            "_id": "abc",
            "gameType": "5v5",
            "teamSize": 5,
            "eloTier": "gold",
            "status": "open",
            "players": [
                {"discordId": "1", "discordUsername": "one", "elo": 1510.4,
                 "joinedAt": "2026-01-01T00:00:00Z"}
            ]
        }]"""
        (queue,) = parse_push_message(raw).queues

        assert queue.id == "abc"
        assert queue.team_size == 5
        assert queue.status.value == "active"
        player = queue.players[0]
        assert player.display_name == "one"
        assert player.rating == 1510
        assert player.joined_at == 1767225600000.0

    def test_empty_list(self):
        assert parse_push_message("[]") == SnapshotMessage(queues=())

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            '{"type": "mystery"}',
            "42",
            '[{"_id": "q1"}]',
            '[{"_id": "q1", "teamSize": 0}]',
        ],
    )
    def test_malformed_payloads_raise(self, raw):
        with pytest.raises(MessageParseError) as exc_info:
            parse_push_message(raw)
        assert exc_info.value.code == ErrorCode.INVALID_PAYLOAD.value

    def test_duplicate_players_rejected(self):
        queue = queue_payload(make_queue("q1", players=make_players(1)))
        queue["players"] = queue["players"] * 2

        with pytest.raises(MessageParseError):
            parse_push_message(to_json([queue]))
