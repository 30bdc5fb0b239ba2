"""Queue overflow strategies for :class:`~rxinsights.wrappers.AsyncTargetWrapper`.

Each strategy decides what happens when events arrive faster than the
background writer drains them and the queue reaches its limit.

Strategies:
    - Discard: drop the oldest queued event (default)
    - DropNew: reject the incoming event
    - Grow: ignore the limit and keep every event

All strategies are thread-safe: producers push from any thread while the
writer pops batches from its own.

Example:
    >>> queue = Discard(limit=2)
    >>> queue.push("a"), queue.push("b"), queue.push("c")
    (None, None, 'a')
    >>> queue.pop_batch(10)
    ['b', 'c']
"""

import threading
from abc import ABC, abstractmethod
from collections import deque
from typing import Generic, Literal, TypeVar

T = TypeVar("T")

OVERFLOW_ACTION = Literal["discard", "drop_new", "grow"]


class OverflowPolicy(ABC, Generic[T]):
    """Bounded FIFO queue with a policy for the full case."""

    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        self._limit = limit
        self._buffer: deque[T] = deque()
        self._lock = threading.Lock()

    @abstractmethod
    def _push_full(self, item: T) -> T | None:
        """Handle ``item`` when the queue is at its limit (lock held).

        Returns the item that was dropped, if any.
        """
        ...

    def push(self, item: T) -> T | None:
        """Queue ``item``. Returns the dropped item on overflow, None otherwise."""
        with self._lock:
            if len(self._buffer) >= self._limit:
                return self._push_full(item)
            self._buffer.append(item)
            return None

    def pop_batch(self, max_items: int) -> list[T]:
        """Remove and return up to ``max_items`` items in FIFO order."""
        with self._lock:
            count = min(max_items, len(self._buffer))
            return [self._buffer.popleft() for _ in range(count)]

    def clear(self) -> list[T]:
        """Clear the queue and return everything it held."""
        with self._lock:
            items = list(self._buffer)
            self._buffer.clear()
            return items

    def size(self) -> int:
        with self._lock:
            return len(self._buffer)

    def capacity(self) -> int:
        return self._limit


class Discard(OverflowPolicy[T]):
    """Drop the oldest queued item to make room for the new one."""

    def _push_full(self, item: T) -> T | None:
        dropped = self._buffer.popleft()
        self._buffer.append(item)
        return dropped


class DropNew(OverflowPolicy[T]):
    """Reject the new item; queued items are kept."""

    def _push_full(self, item: T) -> T | None:
        return item


class Grow(OverflowPolicy[T]):
    """Keep every item; the limit is only a sizing hint."""

    def _push_full(self, item: T) -> T | None:
        self._buffer.append(item)
        return None


def overflow_factory(action: OVERFLOW_ACTION, limit: int) -> OverflowPolicy:
    """Create the queue for an overflow action name."""
    if action == "discard":
        return Discard(limit)
    elif action == "drop_new":
        return DropNew(limit)
    elif action == "grow":
        return Grow(limit)
    else:
        raise ValueError(f"Unsupported overflow action '{action}'.")
