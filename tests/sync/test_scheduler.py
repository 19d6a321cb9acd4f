"""Tests for the named-timer scheduler (real event loop, short delays)."""

from __future__ import annotations

import asyncio

import pytest

from queuesync.sync.scheduler import TimerScheduler


class TestTimerScheduler:
    @pytest.mark.asyncio
    async def test_call_later_fires_once(self):
        scheduler = TimerScheduler()
        calls = []

        scheduler.call_later("once", 0.01, lambda: calls.append("fired"))
        assert scheduler.is_scheduled("once")

        await asyncio.sleep(0.05)
        assert calls == ["fired"]
        assert not scheduler.is_scheduled("once")

    @pytest.mark.asyncio
    async def test_reregistering_replaces_timer(self):
        scheduler = TimerScheduler()
        calls = []

        scheduler.call_later("t", 0.01, lambda: calls.append("old"))
        scheduler.call_later("t", 0.02, lambda: calls.append("new"))

        await asyncio.sleep(0.06)
        assert calls == ["new"]

    @pytest.mark.asyncio
    async def test_call_every_repeats_until_cancelled(self):
        scheduler = TimerScheduler()
        calls = []

        scheduler.call_every("tick", 0.01, lambda: calls.append(1))
        await asyncio.sleep(0.055)
        scheduler.cancel("tick")
        count = len(calls)

        await asyncio.sleep(0.03)
        assert count >= 2
        assert len(calls) == count

    @pytest.mark.asyncio
    async def test_recurring_callback_may_cancel_itself(self):
        scheduler = TimerScheduler()
        calls = []

        def tick():
            calls.append(1)
            scheduler.cancel("tick")

        scheduler.call_every("tick", 0.01, tick)
        await asyncio.sleep(0.05)

        assert calls == [1]
        assert not scheduler.is_scheduled("tick")

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        scheduler = TimerScheduler()
        calls = []
        scheduler.call_later("a", 0.01, lambda: calls.append("a"))
        scheduler.call_every("b", 0.01, lambda: calls.append("b"))

        assert scheduler.cancel_all() == 2
        assert len(scheduler) == 0

        await asyncio.sleep(0.03)
        assert calls == []

    @pytest.mark.asyncio
    async def test_failing_callback_keeps_recurring(self):
        scheduler = TimerScheduler()
        calls = []

        def tick():
            calls.append(1)
            raise RuntimeError("boom")

        scheduler.call_every("tick", 0.01, tick)
        await asyncio.sleep(0.045)
        scheduler.cancel_all()

        assert len(calls) >= 2

    def test_cancel_unknown_returns_false(self):
        assert TimerScheduler().cancel("nothing") is False
