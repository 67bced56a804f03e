"""Helpers for building Cypher text safely.

Every dynamic value that ends up in a query goes through one of these
helpers: strings are escaped, timestamps are normalized to UTC ISO-8601,
identifiers are validated and ids are coerced to integers. Nothing is
concatenated into a query unescaped.
"""

import base64
import binascii
import math
import re
from collections.abc import Mapping
from datetime import UTC, date, datetime, timedelta
from enum import StrEnum
from typing import Any

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_CURSOR_PREFIX = "offset:"


class Interval(StrEnum):
    """Bucketing window of a time series."""

    DAY = "day"
    MONTH = "month"
    YEAR = "year"


def check_identifier(name: str) -> str:
    """Return `name` if it is usable as a Cypher label, key or variable."""
    if not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid identifier: {name!r}")
    return name


def coerce_id(value: Any) -> int:
    """Coerce a store-internal id to int, rejecting anything else."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid graph id: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid graph id: {value!r}") from None


def prepare_string(value: str | None) -> str:
    """Escape free text for a single-quoted Cypher string literal."""
    if value is None:
        return ""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def to_utc(value: datetime | date | str) -> datetime:
    """Normalize a timestamp to an aware UTC datetime.

    Naive datetimes are taken to be UTC already.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    elif not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    try:
        return value.astimezone(UTC)
    except OverflowError:
        raise ValueError(f"Timestamp out of range: {value!r}") from None


def prepare_date(value: datetime | date | str) -> str:
    """Format a timestamp the way it is stored: UTC, millisecond precision."""
    return to_utc(value).isoformat(timespec="milliseconds")


# Bucket keys are zero-padded so they sort like the dates they stand for.
def day_format(value: datetime | date | str) -> str:
    d = to_utc(value)
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def month_format(value: datetime | date | str) -> str:
    d = to_utc(value)
    return f"{d.year:04d}-{d.month:02d}"


def year_format(value: datetime | date | str) -> str:
    return f"{to_utc(value).year:04d}"


def timestamp_properties(name: str, value: datetime | date | str) -> dict[str, str]:
    """The stored value of a timestamp attribute and its day/month/year fields."""
    return {
        name: prepare_date(value),
        f"{name}_day": day_format(value),
        f"{name}_month": month_format(value),
        f"{name}_year": year_format(value),
    }


def cypher_literal(value: Any) -> str:
    """Render a scalar as a Cypher literal."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValueError("Non-finite numbers cannot be stored")
        return repr(value)
    if isinstance(value, (datetime, date)):
        return f"'{prepare_date(value)}'"
    if isinstance(value, str):
        return f"'{prepare_string(value)}'"
    raise TypeError(f"Unsupported property type: {type(value).__name__}")


def cypher_map(properties: Mapping[str, Any]) -> str:
    """Render a property mapping as a Cypher map literal."""
    items = ", ".join(
        f"{check_identifier(key)}: {cypher_literal(value)}"
        for key, value in properties.items()
    )
    return "{" + items + "}"


def dollar_quote(text: str) -> str:
    """Wrap text in a PostgreSQL dollar quote whose tag does not occur in it."""
    tag = "q"
    n = 0
    while f"${tag}$" in text:
        n += 1
        tag = f"q{n}"
    return f"${tag}${text}${tag}$"


def encode_cursor(offset: int) -> str:
    return base64.urlsafe_b64encode(f"{_CURSOR_PREFIX}{offset}".encode()).decode()


def decode_cursor(cursor: str | None) -> int:
    """Return the offset a cursor points at; None means the start."""
    if not cursor:
        return 0
    try:
        raw = base64.urlsafe_b64decode(cursor.encode()).decode()
    except (binascii.Error, UnicodeDecodeError):
        raise ValueError(f"Invalid cursor: {cursor!r}") from None
    if not raw.startswith(_CURSOR_PREFIX):
        raise ValueError(f"Invalid cursor: {cursor!r}")
    try:
        offset = int(raw[len(_CURSOR_PREFIX) :])
    except ValueError:
        raise ValueError(f"Invalid cursor: {cursor!r}") from None
    if offset < 0:
        raise ValueError(f"Invalid cursor: {cursor!r}")
    return offset


def bucket_key(value: datetime | date | str, interval: Interval) -> str:
    if interval is Interval.DAY:
        return day_format(value)
    if interval is Interval.MONTH:
        return month_format(value)
    return year_format(value)


def bucket_start(value: datetime | date | str, interval: Interval) -> datetime:
    """Truncate a timestamp to the start of its bucket, in UTC."""
    d = to_utc(value).replace(hour=0, minute=0, second=0, microsecond=0)
    if interval is Interval.DAY:
        return d
    if interval is Interval.MONTH:
        return d.replace(day=1)
    return d.replace(month=1, day=1)


def bucket_count(
    start: datetime | date | str,
    end: datetime | date | str,
    interval: Interval,
) -> int:
    """Number of buckets from the one holding `start` to the one holding `end`."""
    first = bucket_start(start, interval)
    last = bucket_start(end, interval)
    if interval is Interval.DAY:
        return (last - first).days + 1
    if interval is Interval.MONTH:
        return (last.year - first.year) * 12 + last.month - first.month + 1
    return last.year - first.year + 1


def _next_bucket(current: datetime, interval: Interval) -> datetime:
    if interval is Interval.DAY:
        return current + timedelta(days=1)
    if interval is Interval.MONTH:
        if current.month == 12:
            return current.replace(year=current.year + 1, month=1)
        return current.replace(month=current.month + 1)
    return current.replace(year=current.year + 1)


def fill_time_series(
    counts: Mapping[str, int],
    start: datetime | date | str,
    end: datetime | date | str,
    interval: Interval,
) -> list[tuple[str, int]]:
    """Expand bucket counts to every bucket between start and end, in order.

    Buckets missing from `counts` get 0. An end before start gives an
    empty series.
    """
    current = bucket_start(start, interval)
    last = bucket_start(end, interval)

    series: list[tuple[str, int]] = []
    while current <= last:
        key = bucket_key(current, interval)
        series.append((key, int(counts.get(key, 0))))
        if current == last:
            break
        current = _next_bucket(current, interval)
    return series
