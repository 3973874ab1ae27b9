"""Data models."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal

from homeworkbugger.utils.constants import DEFAULT_REMINDER_TIMES


ItemStatus = Literal["not_given", "not_completed", "written", "completed"]
Category = Literal["assignment", "experiment"]
Theme = Literal["light", "dark"]


@dataclass
class TrackedItem:
    """One assignment or experiment within a subject."""

    id: int  # Ordinal within the parent subject
    name: str
    status: ItemStatus = "not_given"
    submission_date: date | None = None  # datetime for experiments with a time
    submission_notif_ids: list[str] | None = None


@dataclass
class TrackedSubject:
    """A subject's set of assignments or experiments."""

    id: str
    subject_name: str
    category: Category
    items: list[TrackedItem] = field(default_factory=list)
    course_code: str | None = None


@dataclass
class ReminderTime:
    """Time of day for the recurring digest reminder."""

    hour: int
    minute: int

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass
class ReminderPreferences:
    """User preferences for the recurring digest reminder."""

    enabled: bool = True
    times: list[ReminderTime] = field(
        default_factory=lambda: [ReminderTime(h, m) for h, m in DEFAULT_REMINDER_TIMES]
    )
    active_weekdays: list[bool] = field(default_factory=lambda: [True] * 7)  # Sun..Sat


@dataclass
class ScheduleRequest:
    """Unit of work handed to the notification delivery collaborator.

    Recurring requests carry hour/minute and an optional 1-indexed weekday
    (1 = Sunday). One-shot requests carry an absolute, timezone-aware ``at``.
    """

    title: str
    body: str
    hour: int | None = None
    minute: int | None = None
    weekday: int | None = None
    at: datetime | None = None

    @property
    def repeats(self) -> bool:
        return self.at is None


@dataclass
class ScheduledNotification:
    """A request the delivery collaborator currently holds."""

    handle: str
    title: str
    body: str
    trigger: str


@dataclass
class WrittenTally:
    """Result of counting written items."""

    count: int
    labels: list[str]


@dataclass
class SubjectScore:
    """Marks for one subject within a test."""

    id: str
    name: str
    marks_obtained: float
    total_marks: float


@dataclass
class TestScore:
    """A test sitting (UT1, UT2, Finals) for a year and semester."""

    __test__ = False  # Not a pytest test class

    id: str
    test_type: str
    year: str
    semester: str
    subjects: list[SubjectScore] = field(default_factory=list)


@dataclass
class OverallStats:
    """Aggregate performance over a test's subjects."""

    total_obtained: float
    total_marks: float
    percentage: float
    grade: str
