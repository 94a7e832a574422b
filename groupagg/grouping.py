"""Group phone records by operating system and sum their popularity."""

from __future__ import annotations

import argparse
import os
import threading
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor

from groupagg.breaker_table import Breaker, BreakerHashTable
from groupagg.buffer import DataBlock, define_bucket_size, make_partitioning
from groupagg.linear_probing import Cell, HashTableWithLinearProbing
from groupagg.phones import RECORD_FIELDS, GroupByOsPhone, Phone, map_phone, read_records
from groupagg.two_level import NUM_BUCKETS, TwoLevelHashMap

_MASK64 = (1 << 64) - 1
_MIX_MULTIPLIER = 0x45D9F3B


def _mix(word: int, buckets: int) -> int:
    word &= _MASK64
    word = (((word >> 16) ^ word) * _MIX_MULTIPLIER) & _MASK64
    word = (((word >> 16) ^ word) * _MIX_MULTIPLIER) & _MASK64
    word = (word >> 16) ^ word
    return word % (buckets + 1)


def partition_hash(key: str, buckets: int) -> int:
    """Map a non-empty key to a bucket in the range 0..buckets (inclusive).

    Only the first eight UTF-8 bytes of the key take part in the hash.
    """
    if buckets < 0:
        raise ValueError("bucket count must not be negative")
    data = key.encode("utf-8")
    if not data:
        raise ValueError("cannot hash an empty key")
    word = int.from_bytes(data[:8].ljust(8, b"\0"), "little")
    return _mix(word, buckets)


def _groups(cells: Iterable[Cell]) -> list[GroupByOsPhone]:
    return [GroupByOsPhone(cell.key, cell.value) for cell in cells]


def _accumulate(table: HashTableWithLinearProbing, key: str, amount: int) -> None:
    cell = table.get(key)
    table.put(key, amount + (cell.value if cell is not None else 0))


def merge_tables(tables: Iterable[Iterable[Cell]]) -> HashTableWithLinearProbing:
    """Sum the values of several tables key by key into a new table."""
    merged = HashTableWithLinearProbing()
    for table in tables:
        for cell in table:
            _accumulate(merged, cell.key, cell.value)
    return merged


def sort_and_group(phones: Iterable[Phone]) -> list[GroupByOsPhone]:
    """Sort phones by OS in descending order and sum popularity per run of equal OS.

    Phones without an OS are left out; an empty input yields one empty group.
    """
    ordered = sorted(phones, key=lambda phone: phone.os, reverse=True)
    groups: list[GroupByOsPhone] = []
    current_os = ordered[0].os if ordered else ""
    current_popularity = 0
    for phone in ordered:
        if not phone.os:
            continue
        if phone.os != current_os:
            groups.append(GroupByOsPhone(current_os, current_popularity))
            current_popularity = 0
        current_os = phone.os
        current_popularity += phone.popularity
    groups.append(GroupByOsPhone(current_os, current_popularity))
    return groups


def group_simple_array(records: Sequence[list[str]]) -> list[GroupByOsPhone]:
    """Group records (header first) by sorting them."""
    return sort_and_group(map_phone(record) for record in records[1:])


def _aggregate_into_table(records: Iterable[list[str]]) -> HashTableWithLinearProbing:
    table = HashTableWithLinearProbing()
    for record in records:
        phone = map_phone(record)
        _accumulate(table, phone.os, phone.popularity)
    return table


def group_hashmap(records: Sequence[list[str]]) -> list[GroupByOsPhone]:
    """Group records (header first) in a single hash table."""
    return _groups(_aggregate_into_table(records[1:]))


def _default_workers() -> int:
    return max(1, (os.cpu_count() or 2) // 2)


def group_worker_pool(
    records: Sequence[list[str]], workers: int | None = None
) -> list[GroupByOsPhone]:
    """Split all records into one chunk per worker, aggregate in parallel, then merge.

    Every chunk treats its first record as a header and skips it; the last
    chunk also takes the remainder of the division.
    """
    if workers is None:
        workers = _default_workers()
    if workers < 1:
        raise ValueError("at least one worker is required")
    ratio = len(records) // workers
    chunks = [
        records[index * ratio:(index + 1) * ratio] for index in range(workers - 1)
    ]
    chunks.append(records[(workers - 1) * ratio:])
    with ThreadPoolExecutor(max_workers=workers) as pool:
        tables = list(pool.map(lambda chunk: _aggregate_into_table(chunk[1:]), chunks))
    return _groups(merge_tables(tables))


def group_global_local(records: Sequence[list[str]]) -> list[GroupByOsPhone]:
    """Aggregate full blocks in parallel into one shared table.

    A key whose slot in the shared table is busy goes to the worker's own
    table instead; those local tables are folded into the shared one at the end.
    """
    blocks = make_partitioning(records)
    shared = BreakerHashTable()
    # Pair each read of the shared table with its write so no update is lost.
    guard = threading.Lock()

    def aggregate(block: DataBlock) -> HashTableWithLinearProbing:
        local = HashTableWithLinearProbing()
        for record in block.read():
            phone = map_phone(record)
            if not phone.os:
                continue
            cell = local.get(phone.os)
            if cell is not None:
                local.put(phone.os, cell.value + phone.popularity)
                continue
            with guard:
                existing = shared.get(phone.os)
                total = phone.popularity + (existing.value if existing is not None else 0)
                refused = shared.put(phone.os, total) == Breaker.OPENED
            if refused:
                local.put(phone.os, phone.popularity)
        return local

    with ThreadPoolExecutor() as pool:
        local_tables = list(pool.map(aggregate, blocks))

    for table in local_tables:
        for cell in table:
            existing = shared.get(cell.key)
            shared.put(cell.key, cell.value + (existing.value if existing is not None else 0))
    return _groups(shared)


def _annotate(record: list[str], bucket: int) -> list[str]:
    if len(record) < RECORD_FIELDS:
        raise ValueError(
            f"record has {len(record)} fields, expected {RECORD_FIELDS}"
        )
    annotated = list(record)
    annotated[13] = str(bucket)
    return annotated


def group_partitioning(records: Sequence[list[str]]) -> list[GroupByOsPhone]:
    """Assign records of full blocks to hash buckets, then aggregate bucket by bucket.

    Each bucket is reported under the first OS seen in it, and bucket 0 is
    not aggregated.
    """
    buckets = define_bucket_size()
    bucket_to_group: dict[int, str] = {}
    bucket_to_task: dict[int, int] = {}
    annotated_blocks: list[list[list[str]]] = []
    for block in make_partitioning(records):
        annotated: list[list[str]] = []
        for record in block.read():
            key = record[3]
            if not key:
                annotated.append(record)
                continue
            bucket = partition_hash(key, buckets)
            annotated.append(_annotate(record, bucket))
            bucket_to_group.setdefault(bucket, key)
            bucket_to_task.setdefault(bucket, len(bucket_to_task))
        annotated_blocks.append(annotated)

    def aggregate(task: int) -> dict[str, int]:
        totals: dict[str, int] = {}
        for block in annotated_blocks:
            for record in block:
                phone = map_phone(record)
                if not phone.os or phone.bucket_id == 0:
                    continue
                if bucket_to_task.get(phone.bucket_id) != task:
                    continue
                group = bucket_to_group.get(phone.bucket_id)
                if group is not None:
                    totals[group] = totals.get(group, 0) + phone.popularity
        return totals

    table = HashTableWithLinearProbing()
    with ThreadPoolExecutor() as pool:
        for totals in pool.map(aggregate, range(len(bucket_to_group))):
            for group, amount in totals.items():
                _accumulate(table, group, amount)
    return _groups(table)


def group_two_level(records: Sequence[list[str]]) -> list[GroupByOsPhone]:
    """Aggregate full blocks into two-level maps, then merge them bucket by bucket."""
    blocks = make_partitioning(records)

    def aggregate(block: DataBlock) -> TwoLevelHashMap:
        table = TwoLevelHashMap()
        for record in block.read():
            phone = map_phone(record)
            if not phone.os:
                continue
            cell = table.get(phone.os)
            table.put(phone.os, phone.popularity + (cell.value if cell is not None else 0))
        return table

    def merge_bucket(index: int) -> HashTableWithLinearProbing | None:
        tables = [m.buckets[index] for m in maps if m.buckets[index] is not None]
        return merge_tables(tables) if tables else None

    with ThreadPoolExecutor() as pool:
        maps = list(pool.map(aggregate, blocks))
        merged = list(pool.map(merge_bucket, range(NUM_BUCKETS)))

    groups: list[GroupByOsPhone] = []
    for table in merged:
        if table is not None:
            groups.extend(_groups(table))
    return groups


STRATEGIES = (
    "simple-array",
    "hashmap",
    "worker-pool",
    "global-local",
    "partitioning",
    "two-level",
)


def main(argv: Sequence[str] | None = None) -> int:
    """Group a phones CSV file by OS and print the popularity of each group."""
    parser = argparse.ArgumentParser(
        description="Group phones by OS and sum their popularity."
    )
    parser.add_argument("path", help="CSV file with a header line")
    parser.add_argument("--strategy", choices=STRATEGIES, default="hashmap")
    parser.add_argument(
        "--workers", type=int, default=None, help="workers for the worker-pool strategy"
    )
    args = parser.parse_args(argv)

    records = read_records(args.path)
    if args.strategy == "simple-array":
        groups = group_simple_array(records)
    elif args.strategy == "hashmap":
        groups = group_hashmap(records)
    elif args.strategy == "worker-pool":
        groups = group_worker_pool(records, args.workers)
    elif args.strategy == "global-local":
        groups = group_global_local(records)
    elif args.strategy == "partitioning":
        groups = group_partitioning(records)
    else:
        groups = group_two_level(records)

    for group in groups:
        print(f"Popularity {group.popularity} for group {group.os}")
    print()
    return 0