"""Tests for task helpers."""

import asyncio

import pytest

from queuesync.utils.async_utils import cancel_task_safe, create_safe_task


class TestCreateSafeTask:
    @pytest.mark.asyncio
    async def test_on_error_called(self):
        errors = []

        async def boom():
            raise RuntimeError("boom")

        task = create_safe_task(boom(), name="boom", on_error=errors.append)
        await asyncio.gather(task, return_exceptions=True)
        await asyncio.sleep(0)

        assert len(errors) == 1
        assert str(errors[0]) == "boom"

    @pytest.mark.asyncio
    async def test_failing_hook_is_contained(self):
        def bad_hook(exc):
            raise ValueError("hook")

        async def boom():
            raise RuntimeError("boom")

        task = create_safe_task(boom(), on_error=bad_hook)
        await asyncio.gather(task, return_exceptions=True)
        await asyncio.sleep(0)

        assert isinstance(task.exception(), RuntimeError)

    @pytest.mark.asyncio
    async def test_cancelled_task_skips_hook(self):
        errors = []
        task = create_safe_task(asyncio.Event().wait(), on_error=errors.append)
        await asyncio.sleep(0)

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        await asyncio.sleep(0)

        assert errors == []

    @pytest.mark.asyncio
    async def test_result_passthrough(self):
        async def value():
            return 7

        assert await create_safe_task(value()) == 7


class TestCancelTaskSafe:
    @pytest.mark.asyncio
    async def test_cancels_running_task(self):
        task = create_safe_task(asyncio.Event().wait(), name="idle")
        await asyncio.sleep(0)

        assert await cancel_task_safe(task) is True
        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_none_and_done_tasks(self):
        async def quick():
            return None

        task = create_safe_task(quick())
        await task

        assert await cancel_task_safe(None) is True
        assert await cancel_task_safe(task) is True

    @pytest.mark.asyncio
    async def test_task_ignoring_cancel_times_out(self):
        release = asyncio.Event()

        async def stubborn():
            while not release.is_set():
                try:
                    await asyncio.sleep(10)
                except asyncio.CancelledError:
                    continue

        task = create_safe_task(stubborn())
        await asyncio.sleep(0)

        assert await cancel_task_safe(task, timeout=0.05) is False

        release.set()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
