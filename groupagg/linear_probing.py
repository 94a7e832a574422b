"""Open-addressing hash table with linear probing."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

_MASK64 = (1 << 64) - 1

DEFAULT_CAPACITY = 8


def murmur_finalizer(value: int) -> int:
    """Apply the 64-bit MurmurHash3 finalizer."""
    value &= _MASK64
    value ^= value >> 33
    value = (value * 0xFF51AFD7ED558CCD) & _MASK64
    value ^= value >> 33
    value = (value * 0xC4CEB9FE1A85EC53) & _MASK64
    value ^= value >> 33
    return value


def hash_string_key(key: str) -> int:
    """Hash the first eight UTF-8 bytes of a key (little-endian, zero padded)."""
    data = key.encode("utf-8")
    if not data:
        raise ValueError("cannot hash an empty key")
    word = int.from_bytes(data[:8].ljust(8, b"\0"), "little")
    return murmur_finalizer(word)


@dataclass
class Cell:
    """An occupied slot of the table."""

    key: str
    value: int


class HashTableWithLinearProbing:
    """A string-to-int map that grows when a probe sequence wraps around."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._cells: list[Cell | None] = [None] * capacity
        self._size = 0

    @property
    def capacity(self) -> int:
        """Number of slots currently allocated."""
        return len(self._cells)

    def _resize(self, capacity: int) -> None:
        old = self._cells
        self._cells = [None] * capacity
        self._size = 0
        for cell in old:
            if cell is not None:
                self.put(cell.key, cell.value)

    def put(self, key: str, value: int) -> None:
        """Insert or update a key; empty keys are ignored."""
        if not key:
            return
        hashed = hash_string_key(key)
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