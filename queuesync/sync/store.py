"""Local queue state container.

All writes go through ``commit``; snapshots, optimistic mutations and
rollbacks are just different callers with different ``reason`` tags.
"""

from __future__ import annotations

from typing import Callable, Iterable

from queuesync.logging_config import get_logger
from queuesync.schemas.queue import Queue

logger = get_logger(__name__)

StoreListener = Callable[[tuple[Queue, ...]], None]


class QueueStore:
    """Holds the current queue list and notifies listeners on change."""

    def __init__(self, queues: Iterable[Queue] = ()):
        self._queues: tuple[Queue, ...] = tuple(queues)
        self._version = 0
        self._listeners: list[StoreListener] = []

    @property
    def queues(self) -> tuple[Queue, ...]:
        return self._queues

    @property
    def version(self) -> int:
        """Number of effective commits so far."""
        return self._version

    def get(self, queue_id: str) -> Queue | None:
        for queue in self._queues:
            if queue.id == queue_id:
                return queue
        return None

    def __contains__(self, queue_id: object) -> bool:
        return any(q.id == queue_id for q in self._queues)

    def __len__(self) -> int:
        return len(self._queues)

    def commit(self, queues: Iterable[Queue], *, reason: str) -> bool:
        """Replace the whole queue list.

        A commit equal in value to the current state changes nothing and
        notifies no one, so applying the same snapshot twice is harmless.

        Returns:
            True if the state changed
        """
        new_queues = tuple(queues)
        if new_queues == self._queues:
            logger.debug("store_unchanged", reason=reason)
            return False

        self._queues = new_queues
        self._version += 1
        logger.debug(
            "store_committed",
            reason=reason,
            version=self._version,
            queues=len(new_queues),
        )

        for listener in list(self._listeners):
            try:
                listener(new_queues)
            except Exception:
                logger.exception("store_listener_failed", reason=reason)
        return True

    def replace_queue(self, queue: Queue, *, reason: str) -> bool:
        """Swap in a new version of one queue, matched by id.

        Does nothing if the queue is no longer present.
        """
        if queue.id not in self:
            return False
        return self.commit(
            (queue if q.id == queue.id else q for q in self._queues),
            reason=reason,
        )

    def update_queue(
        self, queue_id: str, update: Callable[[Queue], Queue], *, reason: str
    ) -> bool:
        """Apply ``update`` to the current version of one queue."""
        current = self.get(queue_id)
        if current is None:
            return False
        return self.replace_queue(update(current), reason=reason)

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a change listener. Returns its unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: StoreListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
