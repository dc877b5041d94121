"""A fixed-size, thread-safe ring buffer that overwrites its oldest item when full."""

from __future__ import annotations

import threading
from typing import Generic, TypeVar

T = TypeVar("T")

DEFAULT_CAPACITY = 6


class CircularBuffer(Generic[T]):
    """Ring buffer of fixed capacity; putting into a full buffer drops the oldest item."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._buf: list[T | None] = [None] * capacity
        self._head = 0
        self._tail = 0
        self._full = False
        self._lock = threading.RLock()

    def put(self, item: T) -> None:
        """Store an item, overwriting the oldest one if the buffer is full."""
        with self._lock:
            self._buf[self._head] = item
            if self._full:
                self._tail = (self._tail + 1) % self._capacity
            self._head = (self._head + 1) % self._capacity
            self._full = self._head == self._tail

    def get(self) -> T:
        """Remove and return the oldest item.

        Raises IndexError if the buffer is empty.
        """
        with self._lock:
            if self.is_empty():
                raise IndexError("get from an empty circular buffer")
            value = self._buf[self._tail]
            self._full = False
            self._tail = (self._tail + 1) % self._capacity
            return value  # type: ignore[return-value]

    def reset(self) -> None:
        """Discard every stored item."""
        with self._lock:
            self._head = self._tail
            self._full = False

    def is_empty(self) -> bool:
        with self._lock:
            return not self._full and self._head == self._tail

    def is_full(self) -> bool:
        return self._full

    def capacity(self) -> int:
        return self._capacity

    def head(self) -> int:
        """Index of the slot the next put writes to."""
        with self._lock:
            return self._head

    def __len__(self) -> int:
        with self._lock:
            if self._full:
                return self._capacity
            if self._head >= self._tail:
                return self._head - self._tail
            return self._capacity + self._head - self._tail