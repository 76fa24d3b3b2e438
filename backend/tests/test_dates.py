from __future__ import annotations

import datetime as dt

from fieldtrack.dates import format_datetime, format_time, normalize_clock, normalize_date, today


def test_dotted_date_is_normalized():
    assert normalize_date("2024.03.05") == "2024-03-05"


def test_dashed_and_slashed_dates_are_normalized():
    assert normalize_date("2024-3-5") == "2024-03-05"
    assert normalize_date("2024/03/05 14:30") == "2024-03-05"
    assert normalize_date("2024-03-05T14:30:00") == "2024-03-05"


def test_spreadsheet_serial_uses_1899_epoch():
    expected = dt.date(1899, 12, 30) + dt.timedelta(days=45000)
    assert normalize_date(45000) == expected.isoformat()
    assert normalize_date(45000) == "2023-03-15"
    assert normalize_date(25569) == "1970-01-01"


def test_absent_or_unparseable_values_fall_back_to_today(fixed_now: dt.datetime):
    expected = today(fixed_now)
    assert normalize_date(None, now=fixed_now) == expected
    assert normalize_date("", now=fixed_now) == expected
    assert normalize_date("   ", now=fixed_now) == expected
    assert normalize_date("next tuesday", now=fixed_now) == expected
    assert normalize_date(True, now=fixed_now) == expected


def test_date_objects_pass_through():
    assert normalize_date(dt.date(2024, 1, 2)) == "2024-01-02"
    assert normalize_date(dt.datetime(2024, 1, 2, 18, 0)) == "2024-01-02"


def test_today_uses_local_timezone():
    late_utc = dt.datetime(2024, 3, 5, 22, 30, tzinfo=dt.timezone.utc)
    # Asia/Riyadh is UTC+3
    assert today(late_utc) == "2024-03-06"
    assert format_time(late_utc) == "01:30"
    assert format_datetime(late_utc) == "2024-03-06 01:30"


def test_clock_values():
    assert normalize_clock(dt.time(9, 5), "09:00") == "09:05"
    assert normalize_clock(0.5, "09:00") == "12:00"
    assert normalize_clock(" 11:15 ", "09:00") == "11:15"
    assert normalize_clock(None, "10:00") == "10:00"
