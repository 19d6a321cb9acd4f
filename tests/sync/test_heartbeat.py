"""Tests for the heartbeat monitor."""

from __future__ import annotations

from queuesync.sync.connection import ConnectionHealth, HealthState
from queuesync.sync.events import HeartbeatCheckDue
from queuesync.sync.heartbeat import (
    HEARTBEAT_CHECK_INTERVAL,
    HEARTBEAT_TIMEOUT,
    HEARTBEAT_TIMER,
    HeartbeatMonitor,
)


def _connected_health(now: float) -> ConnectionHealth:
    health = ConnectionHealth()
    health.transition(HealthState.CONNECTED, now)
    health.record_heartbeat(now)
    return health


class TestHeartbeatConfiguration:
    def test_defaults(self):
        assert HEARTBEAT_TIMEOUT == 30.0
        assert HEARTBEAT_CHECK_INTERVAL == 10.0


class TestHeartbeatMonitor:
    def test_fresh_heartbeat_is_healthy(self):
        monitor = HeartbeatMonitor(_connected_health(100.0))
        assert monitor.check(129.0) is False
        assert monitor.health.state == HealthState.CONNECTED

    def test_exactly_at_timeout_is_healthy(self):
        monitor = HeartbeatMonitor(_connected_health(100.0))
        assert monitor.check(130.0) is False

    def test_stale_heartbeat_degrades(self):
        monitor = HeartbeatMonitor(_connected_health(100.0))

        assert monitor.check(131.0) is True
        assert monitor.health.state == HealthState.DEGRADED

    def test_only_fires_from_connected(self):
        monitor = HeartbeatMonitor(_connected_health(100.0))
        monitor.check(131.0)

        # Already degraded: no repeated trigger
        assert monitor.check(200.0) is False

    def test_record_heartbeat_resets_age(self):
        monitor = HeartbeatMonitor(_connected_health(100.0))
        monitor.record_heartbeat(125.0)

        assert monitor.check(150.0) is False

    def test_recover_after_silence(self):
        monitor = HeartbeatMonitor(_connected_health(100.0))
        monitor.check(131.0)

        assert monitor.recover(135.0) is True
        assert monitor.health.state == HealthState.CONNECTED
        assert monitor.recover(136.0) is False

    def test_recover_leaves_other_states_alone(self):
        health = ConnectionHealth()
        monitor = HeartbeatMonitor(health)

        assert monitor.recover(1.0) is False
        assert health.state == HealthState.CONNECTING

    def test_start_schedules_recurring_check(self, scheduler):
        posted = []
        monitor = HeartbeatMonitor(ConnectionHealth())

        monitor.start(scheduler, posted.append)
        assert scheduler.delays(HEARTBEAT_TIMER) == [10.0]

        scheduler.advance(30)
        assert posted == [HeartbeatCheckDue()] * 3

        monitor.stop(scheduler)
        assert not scheduler.is_scheduled(HEARTBEAT_TIMER)
