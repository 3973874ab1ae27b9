"""Tests for time utilities."""

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from homeworkbugger.db.models import ReminderTime
from homeworkbugger.utils.time_utils import (
    at_local_time,
    calendar_date,
    format_due,
    format_weekdays,
    parse_due_date,
    parse_time_of_day,
    parse_weekdays,
)

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=ZoneInfo("Asia/Kolkata"))


def test_parse_due_date_relative():
    assert parse_due_date("today", NOW) == date(2026, 3, 15)
    assert parse_due_date("Tomorrow", NOW) == date(2026, 3, 16)
    assert parse_due_date("in 5 days", NOW) == date(2026, 3, 20)
    assert parse_due_date("in 2 weeks", NOW) == date(2026, 3, 29)
    assert parse_due_date("in 1 month", NOW) == date(2026, 4, 15)


def test_parse_due_date_iso():
    parsed = parse_due_date("2026-04-02", NOW)
    assert parsed == date(2026, 4, 2)
    assert type(parsed) is date

    with_time = parse_due_date("2026-04-02 14:30", NOW)
    assert with_time == datetime(2026, 4, 2, 14, 30)


def test_parse_due_date_invalid():
    with pytest.raises(ValueError):
        parse_due_date("next tuesday-ish", NOW)
    with pytest.raises(ValueError):
        parse_due_date("in 3 fortnights", NOW)


def test_parse_time_of_day():
    assert parse_time_of_day("08:05") == ReminderTime(8, 5)
    assert parse_time_of_day("23:59") == ReminderTime(23, 59)

    with pytest.raises(ValueError):
        parse_time_of_day("25:00")


def test_parse_weekdays():
    assert parse_weekdays(["all"]) == [True] * 7
    assert parse_weekdays(["mon", "wed", "friday"]) == [
        False, True, False, True, False, True, False,
    ]
    assert parse_weekdays(["weekends"]) == [True, False, False, False, False, False, True]

    with pytest.raises(ValueError):
        parse_weekdays(["someday"])
    with pytest.raises(ValueError):
        parse_weekdays([])


def test_format_weekdays():
    assert format_weekdays([True] * 7) == "every day"
    assert format_weekdays([False] * 7) == "no days"
    assert format_weekdays([True, False, True, False, False, False, False]) == "Sun, Tue"


def test_format_due():
    today = date(2026, 3, 15)

    assert format_due(date(2026, 3, 15), today) == "Mar 15 (today)"
    assert format_due(date(2026, 3, 16), today) == "Mar 16 (tomorrow)"
    assert format_due(date(2026, 3, 20), today) == "Mar 20 (in 5 days)"
    assert format_due(date(2026, 3, 14), today) == "Mar 14 (1 day overdue)"
    assert format_due(datetime(2026, 3, 18, 9, 30), today) == "Mar 18 09:30 (in 3 days)"


def test_calendar_helpers():
    assert calendar_date(datetime(2026, 3, 15, 23, 0)) == date(2026, 3, 15)
    assert calendar_date(date(2026, 3, 15)) == date(2026, 3, 15)

    tz = ZoneInfo("Asia/Kolkata")
    at = at_local_time(date(2026, 3, 15), 8, 0, tz)
    assert at.tzinfo == tz
    assert at.hour == 8
