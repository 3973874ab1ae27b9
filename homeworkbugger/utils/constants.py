"""Constants and default values."""

from dataclasses import dataclass


@dataclass
class ReminderSlot:
    """A one-shot reminder relative to an item's submission date."""

    days_before_due: int
    hour: int
    minute: int
    title_template: str
    body_template: str


APP_TITLE = "HomeworkBugger"

CATEGORIES = ("assignment", "experiment")

ITEM_STATUSES = ("not_given", "not_completed", "written", "completed")

# Only unresolved work gets submission reminders
REMINDABLE_STATUSES = ("written", "not_completed")

STATUS_LABELS = {
    "completed": "Completed",
    "written": "Written",
    "not_completed": "Not Completed",
    "not_given": "Not Given",
}

# Submission reminders, from earliest to latest
SUBMISSION_SLOTS = [
    ReminderSlot(2, 9, 0, "{Category} Reminder", "{subject} {category} due in 2 days!"),
    ReminderSlot(1, 18, 0, "{Category} Reminder", "{subject} {category} due tomorrow!"),
    ReminderSlot(0, 8, 0, "{Category} Due Today", "{subject} {category} due today!"),
]

# Body text of scheduled notifications is how earlier batches are recognized
DIGEST_MARKER = "pending assignments"
DIGEST_BODY = "Time to check your pending assignments and experiments."
SUBMISSION_MARKERS = ("due", "submission")

# Sunday first, matching the 1-indexed weekday of recurring requests
WEEKDAY_NAMES = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]

DEFAULT_REMINDER_TIMES = [(18, 0)]

# Storage keys
KEY_ASSIGNMENTS = "assignments"
KEY_EXPERIMENTS = "experiments"
KEY_TEST_SCORES = "test_scores"
KEY_THEME = "app_theme"
KEY_REMINDER_ENABLED = "reminder_enabled"
KEY_REMINDER_TIMES = "reminder_times"
KEY_REMINDER_WEEKDAYS = "reminder_weekdays"
KEY_OWNER_CHAT_ID = "owner_chat_id"

CATEGORY_KEYS = {
    "assignment": KEY_ASSIGNMENTS,
    "experiment": KEY_EXPERIMENTS,
}

# Test scores
TEST_TYPES = ["UT1", "UT2", "Finals"]
YEARS = ["FE", "SE", "TE", "BE"]
SEMESTERS = ["1", "2", "3", "4", "5", "6", "7", "8"]

GRADE_BANDS = [
    (90.0, "excellent"),
    (80.0, "good"),
    (70.0, "average"),
    (60.0, "fair"),
    (0.0, "poor"),
]

# Themes
DEFAULT_THEME = "light"

THEME_PALETTES = {
    "light": {
        "completed": "✅",
        "written": "✍️",
        "not_completed": "❌",
        "not_given": "⚪",
        "excellent": "🟢",
        "good": "🔵",
        "average": "🟡",
        "fair": "🟠",
        "poor": "🔴",
    },
    "dark": {
        "completed": "✔",
        "written": "✎",
        "not_completed": "✖",
        "not_given": "○",
        "excellent": "●",
        "good": "◕",
        "average": "◑",
        "fair": "◔",
        "poor": "○",
    },
}

# Limits
MAX_ITEMS_PER_SUBJECT = 100
MAX_NAME_LENGTH = 100

# Telegram allows at most 100 buttons per inline keyboard; each item row has 5
ITEMS_PER_PAGE = 15

# Command menu registered with Telegram
BOT_COMMANDS = [
    ("assignments", "List assignment subjects"),
    ("experiments", "List experiment subjects"),
    ("add", "Add a subject"),
    ("subject", "Show a subject's items"),
    ("due", "Set or clear a submission date"),
    ("written", "Count written items"),
    ("reminders", "Reminder settings"),
    ("tests", "List test scores"),
    ("help", "All commands"),
]
