"""Server side of the distributed group-by: collect phones from data nodes and aggregate."""

from __future__ import annotations

import argparse
import socket
import threading
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from enum import Enum

from groupagg.breaker_table import Breaker, BreakerHashTable
from groupagg.grouping import merge_tables
from groupagg.linear_probing import HashTableWithLinearProbing
from groupagg.phones import GroupByOsPhone, Phone, map_phone
from groupagg.two_level import NUM_BUCKETS, TwoLevelHashMap

_POLL_SECONDS = 0.2
_CHUNK = 65536


class Strategy(Enum):
    """How the collected phones are aggregated."""

    GLOBAL_LOCAL = "global-local"
    ORDERED = "ordered-merge"
    PARTITIONED = "partitioned-merge"


def merge(left: Sequence[Phone], right: Sequence[Phone]) -> list[Phone]:
    """Merge two lists sorted by OS; on equal OS the right element comes first."""
    result: list[Phone] = []
    left_iter, right_iter = iter(left), iter(right)
    left_item = next(left_iter, None)
    right_item = next(right_iter, None)
    while left_item is not None and right_item is not None:
        if left_item.os < right_item.os:
            result.append(left_item)
            left_item = next(left_iter, None)
        else:
            result.append(right_item)
            right_item = next(right_iter, None)
    if left_item is not None:
        result.append(left_item)
        result.extend(left_iter)
    if right_item is not None:
        result.append(right_item)
        result.extend(right_iter)
    return result


def merge_sort(phones: Sequence[Phone]) -> list[Phone]:
    """Sort phones by OS in ascending order."""
    if len(phones) <= 1:
        return list(phones)
    middle = len(phones) // 2
    return merge(merge_sort(phones[:middle]), merge_sort(phones[middle:]))


def group_sorted(phones: Iterable[Phone]) -> list[GroupByOsPhone]:
    """Sum popularity per run of equal OS in an already ordered sequence.

    Phones without an OS are left out, but the OS of the very first phone
    starts the first group even when it is empty; an empty input yields one
    empty group.
    """
    groups: list[GroupByOsPhone] = []
    current_os: str | None = None
    current_popularity = 0
    for phone in phones:
        if current_os is None:
            current_os = phone.os
        if not phone.os:
            continue
        if phone.os != current_os:
            groups.append(GroupByOsPhone(current_os, current_popularity))
            current_popularity = 0
        current_os = phone.os
        current_popularity += phone.popularity
    groups.append(GroupByOsPhone(current_os or "", current_popularity))
    return groups


def aggregate_global_local(blocks: Sequence[Sequence[Phone]]) -> list[GroupByOsPhone]:
    """Aggregate each node's phones in parallel into one shared table.

    A key refused by the shared table goes to the node's own table, and the
    node tables are folded into the shared one at the end.
    """
    shared = BreakerHashTable()
    guard = threading.Lock()

    def aggregate(phones: Sequence[Phone]) -> HashTableWithLinearProbing:
        local = HashTableWithLinearProbing()
        for phone in phones:
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
    return [GroupByOsPhone(cell.key, cell.value) for cell in shared]


def aggregate_ordered(blocks: Sequence[Sequence[Phone]]) -> list[GroupByOsPhone]:
    """Concatenate every node's phones, merge-sort them by OS and group the runs."""
    phones = [phone for block in blocks for phone in block]
    return group_sorted(merge_sort(phones))


def aggregate_partitioned(blocks: Sequence[Sequence[Phone]]) -> list[GroupByOsPhone]:
    """Aggregate each node into a two-level map, then merge the maps bucket by bucket."""

    def aggregate(phones: Sequence[Phone]) -> TwoLevelHashMap:
        table = TwoLevelHashMap()
        for phone in phones:
            if not phone.os:
                continue
            cell = table.get(phone.os)
            table.put(phone.os, phone.popularity + (cell.value if cell is not None else 0))
        return table

    with ThreadPoolExecutor() as pool:
        maps = list(pool.map(aggregate, blocks))

        def merge_bucket(index: int) -> HashTableWithLinearProbing | None:
            tables = [m.buckets[index] for m in maps if m.buckets[index] is not None]
            return merge_tables(tables) if tables else None

        merged = list(pool.map(merge_bucket, range(NUM_BUCKETS)))

    return [
        GroupByOsPhone(cell.key, cell.value)
        for table in merged
        if table is not None
        for cell in table
    ]


_AGGREGATORS: dict[Strategy, Callable[[Sequence[Sequence[Phone]]], list[GroupByOsPhone]]] = {
    Strategy.GLOBAL_LOCAL: aggregate_global_local,
    Strategy.ORDERED: aggregate_ordered,
    Strategy.PARTITIONED: aggregate_partitioned,
}


def _reply(conn: socket.socket, text: str) -> None:
    try:
        conn.sendall(text.encode("utf-8"))
    except OSError:
        pass


def _lines(conn: socket.socket, stop: threading.Event) -> Iterator[str]:
    """Yield newline-terminated lines from a connection until EOF or a stop request."""
    pending = b""
    while not stop.is_set():
        try:
            chunk = conn.recv(_CHUNK)
        except TimeoutError:
            continue
        except OSError:
            break
        if not chunk:
            break
        pending += chunk
        *complete, pending = pending.split(b"\n")
        for raw in complete:
            yield raw.removesuffix(b"\r").decode("utf-8", errors="replace")
    if pending and not stop.is_set():
        yield pending.removesuffix(b"\r").decode("utf-8", errors="replace")


def _read_phones(conn: socket.socket, remote: str, stop: threading.Event) -> list[Phone]:
    print(f"Client connected from {remote}")
    phones: list[Phone] = []
    for line in _lines(conn, stop):
        if line.startswith("/"):
            if line == "/quit":
                print("Quitting.")
                _reply(conn, "I'm shutting down now.\n")
                print("< %quit%")
                _reply(conn, "%quit%\n")
                stop.set()
                break
            _reply(conn, "Unrecognized command.\n")
            continue
        if not line:
            continue
        try:
            phones.append(map_phone(line.split(",")))
        except ValueError as error:
            print(f"Skipping malformed record from {remote}: {error}")
    print(f"Client at {remote} disconnected.")
    return phones


def _receive(listener: socket.socket, stop: threading.Event) -> list[Phone]:
    """Wait for one data node on the listener and collect everything it sends."""
    listener.settimeout(_POLL_SECONDS)
    while not stop.is_set():
        try:
            conn, peer = listener.accept()
        except TimeoutError:
            continue
        with conn:
            conn.settimeout(_POLL_SECONDS)
            return _read_phones(conn, f"{peer[0]}:{peer[1]}", stop)
    return []


def serve(
    addr: str, ports: Iterable[int | str], strategy: Strategy | str
) -> list[GroupByOsPhone] | None:
    """Listen on every port, take one data node per port and aggregate what they send.

    Returns the groups, or None when a client asked the server to quit.
    """
    strategy = Strategy(strategy)
    port_numbers = [int(port) for port in ports]
    if not port_numbers:
        raise ValueError("at least one port is required")
    stop = threading.Event()
    listeners: list[socket.socket] = []
    try:
        for port in port_numbers:
            listeners.append(socket.create_server((addr, port)))
            print(f"Listening on {addr}:{port}.")
        with ThreadPoolExecutor(max_workers=len(listeners)) as pool:
            blocks = list(pool.map(lambda listener: _receive(listener, stop), listeners))
    finally:
        for listener in listeners:
            listener.close()
    if stop.is_set():
        return None
    return _AGGREGATORS[strategy](blocks)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the aggregating server and print the popularity of each OS group."""
    parser = argparse.ArgumentParser(
        description="Collect phones from data nodes and group them by OS."
    )
    parser.add_argument("--addr", default="", help='address to listen on; "" means all interfaces')
    parser.add_argument("--ports", default="8001,8002,8003,8004", help="comma-separated ports")
    parser.add_argument(
        "--strategy",
        choices=[member.value for member in Strategy],
        default=Strategy.GLOBAL_LOCAL.value,
    )
    args = parser.parse_args(argv)

    try:
        ports = [int(port) for port in args.ports.split(",") if port.strip()]
    except ValueError:
        parser.error(f"invalid port list: {args.ports!r}")
    if not ports:
        parser.error("at least one port is required")

    print("Starting server...")
    groups = serve(args.addr, ports, args.strategy)
    if groups is None:
        return 0
    for group in groups:
        print(f"Popularity {group.popularity} for group {group.os}")
    print()
    return 0