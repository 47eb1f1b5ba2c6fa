"""
Design (dates.py)
- Purpose: Convert between canonical ISO dates (yyyy-mm-dd) and the display formats used
           by forms, tables and CSV files; turn spreadsheet cell values into ISO dates.
- Inputs: Free-text date strings, ISO strings, datetime values, spreadsheet serial numbers.
- Outputs: DateResult (explicit success/failure) for parsing; plain strings for display.
- Side effects: None.
- Thread-safety: Stateless; safe to call from any thread.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum

ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
SLASHED_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$")

# Spreadsheet serial of 1970-01-01
SERIAL_UNIX_EPOCH = 25569
MS_PER_DAY = 86400000
_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class DateFormat(str, Enum):
    MDY_SHORT = "mm/dd/yy"
    MDY = "mm/dd/yyyy"
    DMY = "dd/mm/yyyy"

    @property
    def day_first(self) -> bool:
        return self is DateFormat.DMY

    @property
    def short_year(self) -> bool:
        return self is DateFormat.MDY_SHORT


@dataclass(frozen=True)
class DateResult:
    """Outcome of parsing one date string. iso is "" for empty input and on failure."""

    ok: bool
    iso: str = ""
    reason: str | None = None
    source: str = ""

    @classmethod
    def success(cls, iso: str, source: str) -> "DateResult":
        return cls(ok=True, iso=iso, source=source)

    @classmethod
    def failure(cls, reason: str, source: str) -> "DateResult":
        return cls(ok=False, reason=reason, source=source)


def is_iso(text: str) -> bool:
    return bool(text) and ISO_RE.match(text) is not None


def _format_iso(year: int, month: int, day: int) -> str:
    return f"{year:04d}-{month:02d}-{day:02d}"


def _calendar_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def to_iso(text: str, fmt: DateFormat = DateFormat.MDY_SHORT) -> DateResult:
    """
    Purpose: Parse a display-format date into canonical ISO.
    Inputs: text (free text), fmt (field order; 2-4 digit years are accepted for every format).
    Outputs: DateResult. Empty input is a success with iso "".
    Notes: Two-digit years always mean 20yy. Impossible dates (Feb 30) fail.
    """
    source = text or ""
    text = source.strip()
    if not text:
        return DateResult.success("", source)

    if ISO_RE.match(text):
        year, month, day = (int(part) for part in text.split("-"))
        if _calendar_date(year, month, day) is None:
            return DateResult.failure("not a calendar date", source)
        return DateResult.success(text, source)

    m = SLASHED_RE.match(text)
    if not m:
        return DateResult.failure(f"does not match {fmt.value}", source)

    first, second, year_str = m.groups()
    if fmt.day_first:
        day, month = int(first), int(second)
    else:
        month, day = int(first), int(second)

    year = int(year_str)
    if len(year_str) == 2:
        year += 2000

    if not 1 <= month <= 12:
        return DateResult.failure("month out of range", source)
    if not 1 <= day <= 31:
        return DateResult.failure("day out of range", source)
    if year < 100:
        return DateResult.failure("year out of range", source)
    if _calendar_date(year, month, day) is None:
        return DateResult.failure("not a calendar date", source)

    return DateResult.success(_format_iso(year, month, day), source)


def to_display(iso: str, fmt: DateFormat = DateFormat.MDY_SHORT) -> str:
    """
    Reformat an ISO date for display. Anything that is not ISO-shaped passes through unchanged.
    The short format only drops the century for 2000-2099; other years keep all four digits
    since a two-digit year always reads back as 20yy.
    """
    if not is_iso(iso):
        return iso or ""
    year, month, day = iso.split("-")
    if fmt.short_year and year.startswith("20"):
        year = year[-2:]
    if fmt.day_first:
        return f"{day}/{month}/{year}"
    return f"{month}/{day}/{year}"


def today_display(fmt: DateFormat = DateFormat.MDY_SHORT) -> str:
    """Today's local date in display format (default value for new form entries)."""
    return to_display(date.today().isoformat(), fmt)


def from_datetime(value: date) -> str:
    """
    Purpose: Calendar fields of a native date value as ISO.
    Notes: Aware datetimes are converted to UTC first; naive ones are taken as UTC already,
           which is how spreadsheet readers hand back date cells.
    """
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return _format_iso(value.year, value.month, value.day)


def from_serial(serial: float) -> str | None:
    """
    Purpose: Convert a spreadsheet serial day number to ISO.
    Notes: The serial is read as a UTC-midnight instant: ms = round((serial - 25569) * 86400000)
           after the Unix epoch. Returns None for non-positive or out-of-range serials.
    """
    if serial <= 0:
        return None
    try:
        millis = round((serial - SERIAL_UNIX_EPOCH) * MS_PER_DAY)
        instant = _UNIX_EPOCH + timedelta(milliseconds=millis)
    except (OverflowError, ValueError):
        return None
    return _format_iso(instant.year, instant.month, instant.day)
