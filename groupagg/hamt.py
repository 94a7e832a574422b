"""A minimal binary hash trie keyed by strings."""

from __future__ import annotations

_FNV_PRIME = 0x100000001B3
_FNV_OFFSET = 0xCBF29CE484222325
_MASK64 = (1 << 64) - 1


def hash_str(data: str) -> int:
    """64-bit FNV-1a over the leading UTF-8 byte of each character."""
    value = _FNV_OFFSET
    for char in data:
        value ^= char.encode("utf-8")[0]
        value = (value * _FNV_PRIME) & _MASK64
    return value


class Hamt:
    """A trie node; children are chosen by successive bits of the key's hash."""

    def __init__(self, key: str = "", value: int = 0) -> None:
        self.key = key
        self.value = value
        self.children: list[Hamt | None] = [None, None]

    def _locate(self, key: str) -> tuple[Hamt, int]:
        """Return the parent node and child index where the key lives or belongs."""
        bits = hash_str(key)
        parent = self
        while True:
            index = bits & 1
            child = parent.children[index]
            if child is None or child.key == key:
                return parent, index
            parent = child
            bits >>= 1

    def find(self, key: str) -> Hamt | None:
        """Return the node holding the key, or None."""
        parent, index = self._locate(key)
        return parent.children[index]

    def add(self, node: Hamt) -> None:
        """Attach a node unless its key is already present."""
        parent, index = self._locate(node.key)
        if parent.children[index] is None:
            parent.children[index] = node