from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from nbi_sites.dates import (
    DateFormat,
    from_datetime,
    from_serial,
    is_iso,
    to_display,
    to_iso,
    today_display,
)


def test_to_iso_short_year_month_first() -> None:
    result = to_iso("06/12/25", DateFormat.MDY_SHORT)
    assert result.ok
    assert result.iso == "2025-06-12"


def test_to_iso_accepts_single_digits_and_four_digit_year() -> None:
    assert to_iso("6/1/2025", DateFormat.MDY_SHORT).iso == "2025-06-01"
    assert to_iso(" 6/1/2025 ", DateFormat.MDY).iso == "2025-06-01"


def test_to_iso_day_first() -> None:
    assert to_iso("12/06/2025", DateFormat.DMY).iso == "2025-06-12"
    assert to_iso("31/01/2024", DateFormat.DMY).iso == "2024-01-31"
    # month-first reading of the same text is out of range
    assert not to_iso("31/01/2024", DateFormat.MDY).ok


def test_two_digit_year_is_always_2000s() -> None:
    assert to_iso("01/15/25").iso == "2025-01-15"
    assert to_iso("01/15/99").iso == "2099-01-15"
    assert to_iso("01/15/00").iso == "2000-01-15"


@pytest.mark.parametrize(
    "text, fmt",
    [
        ("02/30/2024", DateFormat.MDY_SHORT),
        ("02/30/24", DateFormat.MDY),
        ("30/02/2024", DateFormat.DMY),
        ("02/29/2023", DateFormat.MDY),
    ],
)
def test_impossible_calendar_dates_are_rejected(text: str, fmt: DateFormat) -> None:
    result = to_iso(text, fmt)
    assert not result.ok
    assert result.iso == ""
    assert result.reason == "not a calendar date"
    assert result.source == text


def test_range_and_shape_failures_carry_a_reason() -> None:
    assert to_iso("13/01/25").reason == "month out of range"
    assert to_iso("00/10/25").reason == "month out of range"
    assert to_iso("01/32/25").reason == "day out of range"
    assert to_iso("01/15/0025").reason == "year out of range"
    assert to_iso("tomorrow").reason == "does not match mm/dd/yy"
    assert not to_iso("1/2/3").ok
    assert not to_iso("01-15-2025").ok


def test_iso_input_is_returned_unchanged_when_real() -> None:
    assert to_iso("2024-02-29").iso == "2024-02-29"
    assert not to_iso("2023-02-29").ok


def test_empty_input_is_an_empty_success() -> None:
    result = to_iso("   ")
    assert result.ok
    assert result.iso == ""


def test_to_display_formats() -> None:
    assert to_display("2025-06-12", DateFormat.MDY_SHORT) == "06/12/25"
    assert to_display("2025-06-12", DateFormat.MDY) == "06/12/2025"
    assert to_display("2025-06-12", DateFormat.DMY) == "12/06/2025"


def test_to_display_passes_non_iso_through() -> None:
    assert to_display("soon") == "soon"
    assert to_display("") == ""


def test_display_then_parse_round_trips() -> None:
    samples = ["2000-01-01", "2024-02-29", "2025-12-31", "2099-07-04"]
    for fmt in DateFormat:
        for iso in samples:
            assert to_iso(to_display(iso, fmt), fmt).iso == iso
    # four-digit formats keep the century
    assert to_iso(to_display("1987-03-09", DateFormat.DMY), DateFormat.DMY).iso == "1987-03-09"


@pytest.mark.parametrize("iso", ["1999-05-01", "1900-02-28", "2100-01-01"])
def test_short_format_keeps_the_full_year_outside_2000s(iso: str) -> None:
    shown = to_display(iso, DateFormat.MDY_SHORT)
    assert shown.endswith("/" + iso[:4])
    assert to_iso(shown, DateFormat.MDY_SHORT).iso == iso


def test_today_display_matches_today() -> None:
    assert to_iso(today_display(DateFormat.MDY), DateFormat.MDY).iso == date.today().isoformat()


def test_is_iso() -> None:
    assert is_iso("2025-01-01")
    assert not is_iso("01/01/25")
    assert not is_iso("")


def test_from_serial_known_values() -> None:
    assert from_serial(45678) == "2025-01-21"
    assert from_serial(25569) == "1970-01-01"
    # time of day does not move the calendar date
    assert from_serial(45678.99) == "2025-01-21"


@pytest.mark.parametrize("serial", [0, -3, float("inf"), float("nan")])
def test_from_serial_rejects_unusable_numbers(serial: float) -> None:
    assert from_serial(serial) is None


def test_from_datetime_uses_utc_fields() -> None:
    late_evening_new_york = datetime(2025, 1, 21, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
    assert from_datetime(late_evening_new_york) == "2025-01-22"
    assert from_datetime(datetime(2025, 1, 21)) == "2025-01-21"
    assert from_datetime(date(2024, 2, 29)) == "2024-02-29"
