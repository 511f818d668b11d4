# src/scriptdeck/tasks/log_buffer.py

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from typing import Generic, TypeVar

MAX_LOGS = 2000

T = TypeVar("T")


class LogBuffer(Generic[T]):
    """
    Bounded, ordered log sequence for one task.

    When the buffer is full the oldest entry is evicted before the new one is
    added, so the remaining entries stay in chronological order.
    """

    __slots__ = ("_entries",)

    def __init__(self, capacity: int = MAX_LOGS) -> None:
        if capacity < 1:
            raise ValueError(f"log capacity must be positive (got {capacity})")
        self._entries: deque[T] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        # maxlen is always set in __init__
        return self._entries.maxlen or 0

    def append(self, entry: T) -> None:
        self._entries.append(entry)

    def clear(self) -> None:
        self._entries.clear()

    def snapshot(self) -> list[T]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[T]:
        return iter(self._entries)

    def __repr__(self) -> str:
        return f"LogBuffer(size={len(self._entries)}, capacity={self.capacity})"
