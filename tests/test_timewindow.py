import datetime as dt

import pytest

from rota.errors import ValidationError
from rota.timewindow import (
    add_months,
    day_key,
    iso_week_key,
    month_key,
    parse_day,
    resolve_period,
    to_utc,
    week_end,
    week_start,
)


def _days(first, count):
    return [first + dt.timedelta(days=i) for i in range(count)]


def test_week_start_is_monday_and_contains_day():
    for day in _days(dt.date(2024, 12, 20), 400):
        start = week_start(day)
        assert start.isoweekday() == 1
        assert start <= day < start + dt.timedelta(days=7)
        assert week_end(day) == start + dt.timedelta(days=7)


def test_week_start_sunday_belongs_to_previous_monday():
    assert week_start(dt.date(2025, 3, 9)) == dt.date(2025, 3, 3)
    assert week_start(dt.date(2025, 3, 3)) == dt.date(2025, 3, 3)


def test_week_start_of_datetime_is_midnight():
    assert week_start(dt.datetime(2025, 3, 6, 15, 45)) == dt.datetime(2025, 3, 3, 0, 0)


def test_iso_week_key_matches_iso_calendar():
    for day in _days(dt.date(2019, 12, 1), 3 * 366 + 60):
        year, week, _ = day.isocalendar()
        assert iso_week_key(day) == f"{year}-W{week:02d}"


@pytest.mark.parametrize(
    "day, expected",
    [
        (dt.date(2025, 1, 1), "2025-W01"),
        (dt.date(2024, 12, 30), "2025-W01"),
        (dt.date(2021, 1, 1), "2020-W53"),
        (dt.date(2027, 1, 1), "2026-W53"),
        (dt.date(2025, 3, 3), "2025-W10"),
    ],
)
def test_iso_week_key_year_boundaries(day, expected):
    assert iso_week_key(day) == expected


def test_same_week_same_key():
    monday = dt.date(2025, 3, 3)
    keys = {iso_week_key(day) for day in _days(monday, 7)}
    assert keys == {"2025-W10"}
    assert iso_week_key(monday + dt.timedelta(days=7)) == "2025-W11"


def test_month_and_day_keys():
    assert month_key(dt.datetime(2025, 3, 1, 0, 30)) == "2025-03"
    assert month_key(dt.date(2025, 2, 28)) == "2025-02"
    assert day_key(dt.datetime(2025, 3, 1, 23, 59)) == "2025-03-01"


def test_to_utc_normalizes_inputs():
    assert to_utc("2025-03-01T00:30:00Z") == dt.datetime(2025, 3, 1, 0, 30)
    assert to_utc("2025-03-01T01:30:00+02:00") == dt.datetime(2025, 2, 28, 23, 30)
    aware = dt.datetime(2025, 3, 1, 12, 0, tzinfo=dt.timezone(dt.timedelta(hours=-5)))
    assert to_utc(aware) == dt.datetime(2025, 3, 1, 17, 0)
    assert to_utc(dt.date(2025, 3, 1)) == dt.datetime(2025, 3, 1)
    naive = dt.datetime(2025, 3, 1, 8, 0)
    assert to_utc(naive) == naive


@pytest.mark.parametrize("bad", ["yesterday", "2025-13-01T00:00:00", ""])
def test_to_utc_rejects_malformed(bad):
    with pytest.raises(ValidationError):
        to_utc(bad)


def test_parse_day():
    assert parse_day("2025-03-01") == dt.date(2025, 3, 1)
    assert parse_day(dt.datetime(2025, 3, 1, 10)) == dt.date(2025, 3, 1)
    with pytest.raises(ValidationError):
        parse_day("03/01/2025")


def test_add_months_clamps_day():
    assert add_months(dt.datetime(2025, 1, 31), 1) == dt.datetime(2025, 2, 28)
    assert add_months(dt.datetime(2024, 1, 31), 1) == dt.datetime(2024, 2, 29)
    assert add_months(dt.datetime(2025, 12, 15), 1) == dt.datetime(2026, 1, 15)


def test_resolve_period_relative():
    now = dt.datetime(2025, 3, 5, 14, 0)  # Wednesday
    assert resolve_period("today", now) == (dt.datetime(2025, 3, 5), dt.datetime(2025, 3, 6))
    assert resolve_period("tomorrow", now) == (dt.datetime(2025, 3, 6), dt.datetime(2025, 3, 7))
    assert resolve_period("this_week", now) == (dt.datetime(2025, 3, 3), dt.datetime(2025, 3, 10))
    assert resolve_period("this_month", now) == (dt.datetime(2025, 3, 1), dt.datetime(2025, 4, 1))


def test_resolve_period_this_month_in_december():
    assert resolve_period("this_month", dt.datetime(2025, 12, 20)) == (
        dt.datetime(2025, 12, 1),
        dt.datetime(2026, 1, 1),
    )


def test_resolve_period_custom_end_is_inclusive():
    start, end = resolve_period("custom", start_date="2025-03-01", end_date="2025-03-03")
    assert start == dt.datetime(2025, 3, 1)
    assert end == dt.datetime(2025, 3, 4)


def test_resolve_period_validation():
    with pytest.raises(ValidationError):
        resolve_period("fortnight")
    with pytest.raises(ValidationError):
        resolve_period("custom", start_date="2025-03-01")
    with pytest.raises(ValidationError):
        resolve_period("custom", start_date="2025-03-05", end_date="2025-03-01")
    with pytest.raises(ValidationError):
        resolve_period("today", start_date="2025-03-01", end_date="2025-03-02")
    with pytest.raises(ValidationError):
        resolve_period("custom", start_date="2025-01-01", end_date="2025-12-31", max_days=93)
