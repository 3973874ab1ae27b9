"""Time and date utilities."""

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from homeworkbugger.db.models import ReminderTime
from homeworkbugger.utils.constants import WEEKDAY_NAMES


def local_now(tz: str) -> datetime:
    """Current time in the given timezone."""
    return datetime.now(ZoneInfo(tz))


def calendar_date(value: date) -> date:
    """Strip the time from a datetime; plain dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    return value


def at_local_time(day: date, hour: int, minute: int, tz) -> datetime:
    """Combine a calendar day and a time of day in the given tzinfo."""
    return datetime.combine(day, time(hour, minute), tzinfo=tz)


def parse_time_of_day(text: str) -> ReminderTime:
    """Parse HH:MM (24-hour) into a ReminderTime."""
    try:
        parsed = time.fromisoformat(text.strip())
    except ValueError:
        raise ValueError(f"Invalid time: {text}. Use HH:MM (24-hour format)")
    return ReminderTime(hour=parsed.hour, minute=parsed.minute)


def parse_weekdays(tokens: list[str]) -> list[bool]:
    """Parse weekday names into a Sunday-first activation vector.

    Examples:
        ["all"] -> all seven days
        ["mon", "wed", "fri"] -> Monday, Wednesday, Friday
        ["weekdays"] -> Monday to Friday
    """
    words = [t.lower().strip(",") for t in tokens if t.strip(",")]
    if not words:
        raise ValueError("No weekdays given")

    if words == ["all"] or words == ["daily"]:
        return [True] * 7
    if words == ["weekdays"]:
        return [False, True, True, True, True, True, False]
    if words == ["weekends"]:
        return [True, False, False, False, False, False, True]

    active = [False] * 7
    for word in words:
        prefix = word[:3]
        if prefix not in WEEKDAY_NAMES:
            raise ValueError(f"Unknown weekday: {word}")
        active[WEEKDAY_NAMES.index(prefix)] = True
    return active


def parse_due_date(text: str, now: datetime) -> date:
    """Parse a submission date.

    Supports:
    - today, tomorrow
    - in N days/weeks
    - ISO date (2026-03-15), giving a date
    - ISO date with time (2026-03-15 14:30), giving a naive datetime

    Returns:
        date, or datetime when a time was given
    """
    text = text.strip().lower()
    today = now.date()

    if text == "today":
        return today
    if text == "tomorrow":
        return today + timedelta(days=1)

    if text.startswith("in "):
        parts = text[3:].split()
        if len(parts) == 2:
            try:
                value = int(parts[0])
            except ValueError:
                raise ValueError(f"Invalid number: {parts[0]}")
            unit = parts[1]
            if unit in ["day", "days"]:
                return today + timedelta(days=value)
            if unit in ["week", "weeks"]:
                return today + timedelta(weeks=value)
            if unit in ["month", "months"]:
                return today + relativedelta(months=value)
            raise ValueError(f"Unknown time unit: {unit}")

    try:
        parsed = date_parser.isoparse(text.replace(" ", "T", 1))
    except ValueError:
        raise ValueError(f"Couldn't understand date format: {text}")

    # Anything past YYYY-MM-DD carries a time
    if len(text) > 10:
        return parsed.replace(tzinfo=None)
    return parsed.date()


def format_due(value: date, today: date) -> str:
    """Format a submission date relative to today.

    Examples:
        "Mar 15 (today)"
        "Mar 16 (tomorrow)"
        "Mar 20 (in 5 days)"
        "Mar 10 (5 days overdue)"
    """
    day = calendar_date(value)
    label = day.strftime("%b %d")
    if isinstance(value, datetime):
        label += value.strftime(" %H:%M")

    days = (day - today).days
    if days == 0:
        relative = "today"
    elif days == 1:
        relative = "tomorrow"
    elif days > 1:
        relative = f"in {days} days"
    else:
        overdue = -days
        relative = f"{overdue} day{'s' if overdue != 1 else ''} overdue"

    return f"{label} ({relative})"


def format_weekdays(active: list[bool]) -> str:
    """Format a Sunday-first activation vector."""
    if all(active):
        return "every day"
    if not any(active):
        return "no days"
    return ", ".join(
        name.title() for name, on in zip(WEEKDAY_NAMES, active) if on
    )
