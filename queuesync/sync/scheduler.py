"""Named timers on the event loop.

Every delayed or recurring action in the sync layer (reconnects, poll ticks,
heartbeat checks, guard releases) is registered here under a name, so a
single ``cancel_all()`` leaves nothing behind on teardown.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], None]


class TimerScheduler:
    """Registers, replaces and cancels named loop timers.

    Registering a name that is already scheduled replaces the old timer.
    Callbacks run on the loop thread and must not block.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop
        self._handles: dict[str, asyncio.TimerHandle] = {}

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def _invoke(self, name: str, callback: TimerCallback) -> None:
        try:
            callback()
        except Exception:
            logger.exception(f"Timer callback {name} failed")

    def call_later(self, name: str, delay: float, callback: TimerCallback) -> None:
        """Run ``callback`` once after ``delay`` seconds."""
        self.cancel(name)

        def fire() -> None:
            self._handles.pop(name, None)
            self._invoke(name, callback)

        self._handles[name] = self._get_loop().call_later(delay, fire)

    def call_every(self, name: str, interval: float, callback: TimerCallback) -> None:
        """Run ``callback`` every ``interval`` seconds until cancelled.

        The first run happens one interval from now.
        """
        self.cancel(name)
        loop = self._get_loop()

        def fire() -> None:
            # Re-arm before running so the callback may cancel its own timer
            self._handles[name] = loop.call_later(interval, fire)
            self._invoke(name, callback)

        self._handles[name] = loop.call_later(interval, fire)

    def cancel(self, name: str) -> bool:
        """Cancel a timer. Returns False if nothing was scheduled."""
        handle = self._handles.pop(name, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every timer and return how many were pending."""
        count = len(self._handles)
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        if count:
            logger.debug(f"Cancelled {count} pending timers")
        return count

    def is_scheduled(self, name: str) -> bool:
        return name in self._handles

    @property
    def names(self) -> set[str]:
        return set(self._handles)

    def __len__(self) -> int:
        return len(self._handles)
