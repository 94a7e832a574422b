"""A hash map split into a fixed number of independently grown buckets."""

from __future__ import annotations

from collections.abc import Iterator

from groupagg.linear_probing import Cell, HashTableWithLinearProbing, hash_string_key

BITS_FOR_BUCKET = 8
NUM_BUCKETS = 1 << BITS_FOR_BUCKET
MAX_BUCKET = NUM_BUCKETS - 1


def bucket_of(key: str) -> int:
    """Return the bucket a non-empty key belongs to."""
    return (hash_string_key(key) >> (32 - BITS_FOR_BUCKET)) & MAX_BUCKET


class TwoLevelHashMap:
    """String-to-int map whose buckets are linear-probing tables created on demand."""

    def __init__(self) -> None:
        self.buckets: list[HashTableWithLinearProbing | None] = [None] * NUM_BUCKETS

    def put(self, key: str, value: int) -> None:
        """Insert or update a key; empty keys are ignored."""
        if not key:
            return
        index = bucket_of(key)
        table = self.buckets[index]
        if table is None:
            table = self.buckets[index] = HashTableWithLinearProbing()
        table.put(key, value)

    def get(self, key: str) -> Cell | None:
        """Return the cell holding the key, or None."""
        if not key:
            return None
        table = self.buckets[bucket_of(key)]
        return None if table is None else table.get(key)

    def __iter__(self) -> Iterator[Cell]:
        """Yield every cell, bucket by bucket."""
        for table in self.buckets:
            if table is not None:
                yield from table