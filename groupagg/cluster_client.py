"""Data-node side of the distributed group-by: stream a phones CSV file to the server."""

from __future__ import annotations

import argparse
import logging
import re
import socket
import threading
from collections.abc import Sequence
from enum import Enum
from os import PathLike

from groupagg.phones import RECORD_FIELDS, map_phone, map_record, read_records
from groupagg.two_level import bucket_of

log = logging.getLogger(__name__)

_COMMAND = re.compile(r"%.*%")
_QUIT = "%quit%"
_WRITE_TIMEOUT = 1.0
_CHUNK = 65536


class Mode(Enum):
    """How the data node prepares its records before sending them."""

    BASELINE = "baseline"
    ORDERED = "ordered-merge"
    PARTITIONED = "partitioned-merge"


def prepare_lines(records: Sequence[list[str]], mode: Mode | str) -> list[str]:
    """Turn CSV records (header first) into the lines sent to the server.

    The header is never sent. In ordered mode the phones are sorted by OS in
    descending order; in partitioned mode every record with an OS gets its
    bucket number written into the last field.
    """
    mode = Mode(mode)
    body = records[1:]
    if mode is Mode.BASELINE:
        return [",".join(record) for record in body]
    if mode is Mode.ORDERED:
        phones = sorted((map_phone(record) for record in body), key=lambda phone: phone.os, reverse=True)
        return [map_record(phone) for phone in phones]
    lines: list[str] = []
    for record in body:
        if len(record) < RECORD_FIELDS:
            raise ValueError(
                f"record has {len(record)} fields, expected {RECORD_FIELDS}"
            )
        key = record[3]
        if key:
            record = list(record)
            record[13] = str(bucket_of(key))
        lines.append(",".join(record))
    return lines


def is_command(text: str) -> bool:
    """Tell whether a line from the server is a command of the form %name%."""
    return _COMMAND.fullmatch(text) is not None


def _handle_line(text: str, quit_event: threading.Event) -> None:
    if is_command(text):
        if text == _QUIT:
            log.info("Server is leaving. Hanging up.")
            quit_event.set()
        return
    log.info("** %s", text)


def _read_connection(conn: socket.socket, quit_event: threading.Event, done: threading.Event) -> None:
    """Print what the server says and watch for its quit command."""
    pending = b""
    while not done.is_set():
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
            _handle_line(raw.removesuffix(b"\r").decode("utf-8", errors="replace"), quit_event)
    if pending:
        _handle_line(pending.removesuffix(b"\r").decode("utf-8", errors="replace"), quit_event)
    log.info("Reached EOF on server connection.")


def send_file(
    host: str, port: int, path: str | PathLike[str], mode: Mode | str = Mode.BASELINE
) -> int:
    """Send the records of a CSV file to the server line by line.

    Returns the number of lines sent. Stops early when a write fails or the
    server asks the client to quit. Raises ConnectionError when the server
    cannot be reached.
    """
    lines = prepare_lines(read_records(path), mode)
    dest = f"{host}:{port}"
    log.info("Connecting to %s...", dest)
    try:
        conn = socket.create_connection((host, port), timeout=_WRITE_TIMEOUT)
    except OSError as error:
        raise ConnectionError(f"cannot connect to {dest}: {error}") from error

    quit_event = threading.Event()
    done = threading.Event()
    sent = 0
    with conn:
        reader = threading.Thread(
            target=_read_connection, args=(conn, quit_event, done), daemon=True
        )
        reader.start()
        log.info("Sending data to %s...", dest)
        for line in lines:
            if quit_event.is_set():
                break
            try:
                conn.sendall(f"{line}\n".encode("utf-8"))
            except OSError:
                log.error("Error writing to stream.")
                break
            sent += 1
        try:
            conn.shutdown(socket.SHUT_WR)
        except OSError:
            pass
        done.set()
    reader.join(timeout=_WRITE_TIMEOUT * 2)
    return sent


def main(argv: Sequence[str] | None = None) -> int:
    """Stream a phones CSV file to an aggregating server."""
    parser = argparse.ArgumentParser(
        description="Send a phones CSV file to the group-by server."
    )
    parser.add_argument("--host", default="localhost", help="hostname or IP to connect to")
    parser.add_argument("--port", type=int, default=8001, help="port to connect to")
    parser.add_argument("--file", required=True, help="CSV file sent for aggregation")
    parser.add_argument(
        "--mode",
        choices=[member.value for member in Mode],
        default=Mode.BASELINE.value,
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    try:
        send_file(args.host, args.port, args.file, args.mode)
    except ConnectionError as error:
        log.error("Some problem connecting: %s", error)
        return 1
    return 0