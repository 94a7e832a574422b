"""Phone records and their CSV representation."""

from __future__ import annotations

import csv
import re
from dataclasses import dataclass
from os import PathLike

RECORD_FIELDS = 14

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")


@dataclass(slots=True)
class Phone:
    """One row of the phones data set."""

    id: int
    brand_name: str
    model_name: str
    os: str
    popularity: int
    best_price: float
    lowest_price: float
    highest_price: float
    sellers_amount: int
    screen_size: float
    memory_size: float
    battery_size: float
    release_date: str
    bucket_id: int


@dataclass(slots=True)
class GroupByBrandPhone:
    """Aggregated popularity for one brand."""

    brand_name: str
    popularity: int


@dataclass(slots=True)
class GroupByOsPhone:
    """Aggregated popularity for one operating system."""

    os: str
    popularity: int


def _to_int(text: str) -> int:
    """Parse a decimal integer; anything unparsable counts as zero."""
    return int(text) if _INT_PATTERN.fullmatch(text) else 0


def _to_float(text: str) -> float:
    """Parse a float; anything unparsable counts as zero."""
    if not text or text != text.strip() or "_" in text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        return 0.0


def map_phone(record: list[str]) -> Phone:
    """Build a Phone from a 14-field CSV record; bad numbers become zero."""
    if len(record) < RECORD_FIELDS:
        raise ValueError(
            f"record has {len(record)} fields, expected {RECORD_FIELDS}"
        )
    return Phone(
        id=_to_int(record[0]),
        brand_name=record[1],
        model_name=record[2],
        os=record[3],
        popularity=_to_int(record[4]),
        best_price=_to_float(record[5]),
        lowest_price=_to_float(record[6]),
        highest_price=_to_float(record[7]),
        sellers_amount=_to_int(record[8]),
        screen_size=_to_float(record[9]),
        memory_size=_to_float(record[10]),
        battery_size=_to_float(record[11]),
        release_date=record[12],
        bucket_id=_to_int(record[13]),
    )


def map_record(phone: Phone) -> str:
    """Render a Phone as a CSV line; float fields are truncated to integers."""
    fields = [
        str(phone.id),
        phone.brand_name,
        phone.model_name,
        phone.os,
        str(phone.popularity),
        str(int(phone.best_price)),
        str(int(phone.lowest_price)),
        str(int(phone.highest_price)),
        str(phone.sellers_amount),
        str(int(phone.screen_size)),
        str(int(phone.memory_size)),
        str(int(phone.battery_size)),
        phone.release_date,
        str(phone.bucket_id),
    ]
    return ",".join(fields)


def read_records(path: str | PathLike[str]) -> list[list[str]]:
    """Read every CSV record of a file, header included.

    Blank lines are skipped; every record must have as many fields as the first.
    """
    records: list[list[str]] = []
    expected: int | None = None
    with open(path, newline="", encoding="utf-8") as handle:
        for line_number, row in enumerate(csv.reader(handle), start=1):
            if not row:
                continue
            if expected is None:
                expected = len(row)
            elif len(row) != expected:
                raise ValueError(
                    f"record on line {line_number}: wrong number of fields "
                    f"({len(row)} instead of {expected})"
                )
            records.append(row)
    return records