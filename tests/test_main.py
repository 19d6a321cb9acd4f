"""Tests for the queue watcher."""

from unittest.mock import patch

from queuesync.main import log_queues
from queuesync.sync.connection import ConnectionHealth, HealthState
from tests.conftest import make_players, make_queue


class TestLogQueues:
    def test_logs_fill_state_per_queue(self):
        queues = (
            make_queue("q1", team_size=4, players=make_players(10)),
            make_queue("q2", team_size=2, players=make_players(1)),
        )

        with patch("queuesync.main.logger") as logger:
            log_queues(queues)

        first, second = [c.kwargs for c in logger.info.call_args_list]
        assert first["queue_id"] == "q1"
        assert first["format"] == "4v4"
        assert first["filled"] == "8/8"
        assert first["waitlist"] == 2
        assert first["needed"] == 0
        assert second["filled"] == "1/4"
        assert second["needed"] == 3

    def test_includes_health_snapshot(self):
        health = ConnectionHealth()
        health.transition(HealthState.CONNECTED, 12.0)
        health.record_heartbeat(15.0)

        with patch("queuesync.main.logger") as logger:
            log_queues((), health)

        logger.info.assert_called_once_with(
            "sync_state",
            queues=0,
            health="connected",
            health_changed_at=12.0,
            last_heartbeat_at=15.0,
            reconnect_attempt=0,
            consecutive_failures=0,
        )
