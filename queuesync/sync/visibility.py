"""Page visibility signal.

Polling only runs while the display is visible. The host application feeds
visibility changes in through ``VisibilityState.set_visible`` (or supplies
its own ``VisibilitySignal``).
"""

from __future__ import annotations

from typing import Callable, Protocol

VisibilityListener = Callable[[bool], None]


class VisibilitySignal(Protocol):
    def is_visible(self) -> bool: ...

    def add_listener(self, listener: VisibilityListener) -> None: ...

    def remove_listener(self, listener: VisibilityListener) -> None: ...


class VisibilityState:
    """In-process visibility flag with change listeners."""

    def __init__(self, visible: bool = True):
        self._visible = visible
        self._listeners: list[VisibilityListener] = []

    def is_visible(self) -> bool:
        return self._visible

    def set_visible(self, visible: bool) -> None:
        if visible == self._visible:
            return
        self._visible = visible
        for listener in list(self._listeners):
            listener(visible)

    def add_listener(self, listener: VisibilityListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: VisibilityListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
