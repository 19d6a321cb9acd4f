"""Background task helpers for the sync layer.

Stream readers, poll fetches and the coordinator loop all run as tasks made
by ``create_safe_task``: a crash is logged and handed to ``on_error`` instead
of surfacing as "Task exception was never retrieved".
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Coroutine, TypeVar

from queuesync.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

ErrorHook = Callable[[BaseException], None]


def create_safe_task(
    coro: Coroutine[Any, Any, T],
    *,
    name: str | None = None,
    on_error: ErrorHook | None = None,
) -> asyncio.Task[T]:
    """Start ``coro`` as a task that reports its own failure.

    Args:
        coro: Coroutine to run
        name: Task name, used in log events
        on_error: Called with the exception if the task crashes
    """
    task = asyncio.create_task(coro, name=name)
    task.add_done_callback(lambda t: _report(t, on_error))
    return task


def _report(task: asyncio.Task, on_error: ErrorHook | None) -> None:
    if task.cancelled() or task.exception() is None:
        return

    exc = task.exception()
    logger.error("task_crashed", task=task.get_name(), error=repr(exc), exc_info=exc)
    if on_error is None:
        return
    try:
        on_error(exc)
    except Exception:
        logger.exception("task_error_hook_failed", task=task.get_name())


async def cancel_task_safe(task: asyncio.Task | None, timeout: float = 5.0) -> bool:
    """Cancel ``task`` and wait up to ``timeout`` seconds for it to end.

    Returns:
        True once the task is finished. False if it is still running, which
        includes a task cancelling itself.
    """
    if task is None or task.done():
        return True

    task.cancel()
    if task is asyncio.current_task():
        return False

    done, _ = await asyncio.wait({task}, timeout=timeout)
    if not done:
        logger.warning("task_cancel_timeout", task=task.get_name(), timeout=timeout)
        return False
    return True
