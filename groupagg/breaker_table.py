"""Linear-probing hash table whose slots carry a non-blocking breaker."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from enum import IntEnum

from groupagg.linear_probing import Cell, hash_string_key

DEFAULT_CAPACITY = 16


class Breaker(IntEnum):
    """Outcome of a put: closed means the write happened, opened means it was refused."""

    CLOSED = 0
    OPENED = 1


class BreakerHashTable:
    """A string-to-int map shared between writers.

    A writer that finds its key's home slot busy with another writer does not
    wait: ``put`` reports ``Breaker.OPENED`` and leaves the table untouched, so
    the caller can keep the value somewhere else.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._cells: list[Cell | None] = [None] * capacity
        self._breakers = [threading.Lock() for _ in range(capacity)]
        self._size = 0

    @property
    def capacity(self) -> int:
        """Number of slots currently allocated."""
        return len(self._cells)

    def _resize(self, capacity: int) -> None:
        old = self._cells
        self._cells = [None] * capacity
        self._breakers = [threading.Lock() for _ in range(capacity)]
        self._size = 0
        for cell in old:
            if cell is not None:
                self._insert(cell.key, cell.value, hash_string_key(cell.key))

    def _insert(self, key: str, value: int, hashed: int) -> None:
        slot = start = hashed % self.capacity
        while (cell := self._cells[slot]) is not None:
            if cell.key == key:
                cell.value = value
                return
            slot = (slot + 1) % self.capacity
            if slot == start:
                self._resize(self.capacity * 2)
                slot = start = hashed % self.capacity
        self._cells[slot] = Cell(key, value)
        self._size += 1

    def put(self, key: str, value: int) -> Breaker:
        """Insert or update a key unless its home slot is busy; empty keys are ignored."""
        if not key:
            return Breaker.CLOSED
        hashed = hash_string_key(key)
        breaker = self._breakers[hashed % self.capacity]
        if not breaker.acquire(blocking=False):
            return Breaker.OPENED
        try:
            self._insert(key, value, hashed)
        finally:
            breaker.release()
        return Breaker.CLOSED

    def get(self, key: str) -> Cell | None:
        """Return the cell holding the key, or None."""
        if not key:
            return None
        slot = start = hash_string_key(key) % self.capacity
        while (cell := self._cells[slot]) is not None:
            if cell.key == key:
                return cell
            slot = (slot + 1) % self.capacity
            if slot == start:
                return None
        return None

    def contains_key(self, key: str) -> bool:
        """Tell whether the key is present."""
        return self.get(key) is not None

    def remove(self, key: str) -> None:
        """Drop a key; shrink the table when it becomes a quarter full."""
        if not key:
            return
        slot = start = hash_string_key(key) % self.capacity
        while True:
            cell = self._cells[slot]
            if cell is not None and cell.key == key:
                self._cells[slot] = None
                self._size -= 1
                break
            slot = (slot + 1) % self.capacity
            if slot == start:
                break
        if self._size == self.capacity // 4 and self.capacity // 2 != 0:
            self._resize(self.capacity // 2)

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[Cell]:
        """Yield occupied cells in slot order."""
        return (cell for cell in self._cells if cell is not None)