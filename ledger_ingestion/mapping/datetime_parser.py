"""
Date/time sub-parser for DateTimeParsing mappings.

Formats are positional token patterns, not strftime:

    date   ``yyyy`` / ``yy`` (2000 + value), ``MM`` / ``M``, ``dd`` / ``d``,
           joined by one separator (the first format character that is not
           y, M or d).  A format with no separator is sliced by token width.
    time   ``HH``, ``mm``, ``ss`` joined by ``:``; ``[:ss]`` marks optional
           seconds.  With no time format the order is ``HH:mm[:ss]``.

The combined value is rendered as ``YYYY-MM-DDTHH:MM:SSZ`` and parsed to an
aware UTC datetime.  Timezone mappings are not applied here.  Every failure
raises ValueError; the row mapper turns it into a row error.
"""

from __future__ import annotations

from datetime import datetime, timezone
from itertools import groupby

from ledger_ingestion.domain.types import DEFAULT_TIME, DateTimeParsingMapping

_DATE_LETTERS = frozenset("yMd")
_DEFAULT_TIME_FORMAT = "HH:mm[:ss]"


def _date_separator(date_format: str) -> str | None:
    for ch in date_format:
        if ch not in _DATE_LETTERS:
            return ch
    return None


def _split_date(value: str, date_format: str) -> list[tuple[str, str]]:
    """Pair each format token with its slice of the value."""
    separator = _date_separator(date_format)
    if separator is not None:
        tokens = date_format.split(separator)
        parts = value.split(separator)
        if len(tokens) != len(parts):
            raise ValueError(f"Date {value!r} does not match format {date_format!r}")
        return list(zip(tokens, parts))

    tokens = ["".join(run) for _, run in groupby(date_format)]
    if sum(len(t) for t in tokens) != len(value):
        raise ValueError(f"Date {value!r} does not match format {date_format!r}")
    pairs = []
    pos = 0
    for token in tokens:
        pairs.append((token, value[pos:pos + len(token)]))
        pos += len(token)
    return pairs


def _digits(part: str, what: str) -> int:
    part = part.strip()
    if not part.isdigit():
        raise ValueError(f"Invalid {what}: {part!r}")
    return int(part)


def parse_date_parts(value: str, date_format: str) -> tuple[int, int, int]:
    """Return (year, month, day) for ``value`` read with ``date_format``."""
    value = value.strip()
    if not value:
        raise ValueError("Date value is blank")

    year = month = day = None
    for token, part in _split_date(value, date_format):
        if token == "yyyy":
            year = _digits(part, "year")
        elif token == "yy":
            year = 2000 + _digits(part, "year")
        elif token in ("MM", "M"):
            month = _digits(part, "month")
        elif token in ("dd", "d"):
            day = _digits(part, "day")
        else:
            raise ValueError(f"Unsupported date format token {token!r} in {date_format!r}")

    if year is None or month is None or day is None:
        raise ValueError(f"Date format {date_format!r} must contain year, month and day")
    return year, month, day


def parse_time_parts(value: str, time_format: str | None = None) -> tuple[int, int, int]:
    """Return (hour, minute, second); seconds default to 0 when absent."""
    fmt = time_format.strip() if time_format and time_format.strip() else _DEFAULT_TIME_FORMAT
    tokens = fmt.replace("[", "").replace("]", "").split(":")
    parts = value.strip().split(":")
    if len(parts) < 2 or len(parts) > len(tokens):
        raise ValueError(f"Time {value!r} does not match format {fmt!r}")

    fields = {"hour": 0, "minute": 0, "second": 0}
    for token, part in zip(tokens, parts):
        if token in ("HH", "H"):
            fields["hour"] = _digits(part, "hour")
        elif token in ("mm", "m"):
            fields["minute"] = _digits(part, "minute")
        elif token in ("ss", "s"):
            fields["second"] = _digits(part, "second")
        else:
            raise ValueError(f"Unsupported time format token {token!r} in {fmt!r}")
    return fields["hour"], fields["minute"], fields["second"]


def to_iso_utc(
    date_value: str,
    date_format: str,
    time_value: str | None = None,
    time_format: str | None = None,
    default_time: str = DEFAULT_TIME,
) -> str:
    """
    Render ``YYYY-MM-DDTHH:MM:SSZ``.

    A blank or missing ``time_value`` falls back to ``default_time``, and a
    blank ``default_time`` to 12:00:00.  The default time is always read in
    ``HH:mm[:ss]`` order.
    """
    year, month, day = parse_date_parts(date_value, date_format)
    if time_value is not None and time_value.strip():
        hour, minute, second = parse_time_parts(time_value, time_format)
    else:
        fallback = default_time if default_time and default_time.strip() else DEFAULT_TIME
        hour, minute, second = parse_time_parts(fallback)
    return f"{year:04d}-{month:02d}-{day:02d}T{hour:02d}:{minute:02d}:{second:02d}Z"


def parse_timestamp(
    mapping: DateTimeParsingMapping,
    date_value: str,
    time_value: str | None = None,
) -> datetime:
    """
    Combine the cell values of a DateTimeParsing mapping into a UTC datetime.

    Raises:
        ValueError: On any malformed or out-of-range component.
    """
    iso = to_iso_utc(
        date_value,
        mapping.date_format,
        time_value,
        mapping.time_format,
        mapping.default_time,
    )
    return datetime.strptime(iso, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)
