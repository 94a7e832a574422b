"""Line buffers and fixed-size blocks of CSV records."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

DATA_BLOCK_SIZE = 24


class DataBuffer:
    """A queue of records read from the front in chunks."""

    def __init__(self) -> None:
        self._lines: list[list[str]] = []
        self._offset = 0

    def write_line(self, line: list[str]) -> None:
        """Append one record."""
        if self._offset and self._offset == len(self._lines):
            self.reset()
        self._lines.append(line)

    def next(self, n: int) -> list[list[str]]:
        """Take up to n unread records from the front."""
        n = max(0, min(n, len(self)))
        chunk = self._lines[self._offset:self._offset + n]
        self._offset += n
        return chunk

    def reset(self) -> None:
        """Discard every record."""
        self._lines.clear()
        self._offset = 0

    def truncate(self, n: int) -> None:
        """Keep only the first n unread records."""
        if n == 0:
            self.reset()
            return
        if n < 0 or n > len(self):
            raise ValueError("truncation out of range")
        del self._lines[self._offset + n:]

    def __len__(self) -> int:
        return len(self._lines) - self._offset


@dataclass(frozen=True)
class DataBlock:
    """A fixed-size run of records."""

    lines: tuple[list[str], ...]

    def read(self) -> list[list[str]]:
        """Return the block's records."""
        return list(self.lines[:DATA_BLOCK_SIZE])


def make_partitioning(records: Sequence[list[str]]) -> list[DataBlock]:
    """Split records after the header into full blocks; a trailing partial block is dropped."""
    blocks: list[DataBlock] = []
    buffer = DataBuffer()
    for count, record in enumerate(records[1:], start=1):
        buffer.write_line(record)
        if count % DATA_BLOCK_SIZE == 0:
            blocks.append(DataBlock(tuple(buffer.next(DATA_BLOCK_SIZE))))
            buffer = DataBuffer()
    return blocks


def define_bucket_size() -> int:
    """Number of buckets: the smallest power of two above the expected block count."""
    return 64