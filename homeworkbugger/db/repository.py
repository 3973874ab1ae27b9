"""Database repository - key-value storage of JSON blobs."""

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, List, Tuple

import aiosqlite

from homeworkbugger.db.models import (
    Category,
    ReminderPreferences,
    ReminderTime,
    SubjectScore,
    TestScore,
    TrackedItem,
    TrackedSubject,
)
from homeworkbugger.utils.constants import (
    CATEGORY_KEYS,
    DEFAULT_THEME,
    KEY_ASSIGNMENTS,
    KEY_EXPERIMENTS,
    KEY_OWNER_CHAT_ID,
    KEY_REMINDER_ENABLED,
    KEY_REMINDER_TIMES,
    KEY_REMINDER_WEEKDAYS,
    KEY_TEST_SCORES,
    KEY_THEME,
    THEME_PALETTES,
)

logger = logging.getLogger(__name__)


class Repository:
    """Database access layer."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open database connection."""
        self._db = await aiosqlite.connect(self.db_path)
        self._db.row_factory = aiosqlite.Row
        logger.info(f"Connected to database at {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Database connection closed")

    @property
    def db(self) -> aiosqlite.Connection:
        """Get the database connection."""
        if self._db is None:
            raise RuntimeError("Database not connected")
        return self._db

    # Key-value primitives

    async def has(self, key: str) -> bool:
        """Whether a row exists for the key, readable or not."""
        async with self.db.execute("SELECT 1 FROM kv WHERE key = ?", (key,)) as cursor:
            return await cursor.fetchone() is not None

    async def get(self, key: str) -> Any | None:
        """Get the decoded value for a key, or None if absent or unreadable."""
        async with self.db.execute("SELECT value FROM kv WHERE key = ?", (key,)) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None

        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as e:
            logger.error(f"Error loading {key}: {e}")
            return None

    async def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value under a key."""
        await self.db.execute(
            """
            INSERT INTO kv (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = datetime('now')
            """,
            (key, json.dumps(value)),
        )
        await self.db.commit()

    async def remove_many(self, keys: Iterable[str]) -> None:
        """Remove several keys at once."""
        keys = list(keys)
        if not keys:
            return

        placeholders = ", ".join("?" for _ in keys)
        await self.db.execute(f"DELETE FROM kv WHERE key IN ({placeholders})", keys)
        await self.db.commit()

    # Subject lists

    async def load_subjects(self, category: Category) -> List[TrackedSubject]:
        """Load the assignments or experiments list."""
        subjects, _ = await self.load_subjects_checked(category)
        return subjects

    async def load_subjects_checked(
        self, category: Category
    ) -> Tuple[List[TrackedSubject], bool]:
        """Load a subject list and report whether the stored value was readable.

        Returns (subjects, readable). A missing key is readable; a blob that
        had to be replaced by the empty default is not, and writing the
        default back would destroy it.
        """
        key = CATEGORY_KEYS[category]
        data = await self.get(key)
        if data is None:
            return [], not await self.has(key)
        if not isinstance(data, list):
            logger.error(f"Error loading {key}: expected a list")
            return [], False

        try:
            return [self._dict_to_subject(entry, category) for entry in data], True
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Error loading {key}: {e}")
            return [], False

    async def save_subjects(self, category: Category, subjects: List[TrackedSubject]) -> None:
        """Replace the assignments or experiments list."""
        await self.set(
            CATEGORY_KEYS[category], [self._subject_to_dict(s) for s in subjects]
        )

    async def load_all_subjects(self) -> List[TrackedSubject]:
        """Load assignments followed by experiments."""
        return await self.load_subjects("assignment") + await self.load_subjects("experiment")

    # Test scores

    async def load_test_scores(self) -> List[TestScore]:
        """Load all recorded tests."""
        data = await self.get(KEY_TEST_SCORES)
        if not isinstance(data, list):
            return []

        try:
            return [self._dict_to_test_score(entry) for entry in data]
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Error loading {KEY_TEST_SCORES}: {e}")
            return []

    async def save_test_scores(self, test_scores: List[TestScore]) -> None:
        """Replace the test score list."""
        await self.set(
            KEY_TEST_SCORES, [self._test_score_to_dict(t) for t in test_scores]
        )

    # Theme

    async def load_theme(self) -> str:
        """Load the theme name, defaulting to light."""
        theme = await self.get(KEY_THEME)
        if theme not in THEME_PALETTES:
            return DEFAULT_THEME
        return theme

    async def save_theme(self, theme: str) -> None:
        await self.set(KEY_THEME, theme)

    # Reminder preferences

    async def load_preferences(self) -> ReminderPreferences:
        """Load reminder preferences, substituting defaults for bad values."""
        prefs = ReminderPreferences()

        enabled = await self.get(KEY_REMINDER_ENABLED)
        if isinstance(enabled, bool):
            prefs.enabled = enabled

        times = await self.get(KEY_REMINDER_TIMES)
        if isinstance(times, list):
            try:
                prefs.times = [
                    ReminderTime(hour=int(t["hour"]), minute=int(t["minute"]))
                    for t in times
                ]
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Error loading {KEY_REMINDER_TIMES}: {e}")

        weekdays = await self.get(KEY_REMINDER_WEEKDAYS)
        if isinstance(weekdays, list) and len(weekdays) == 7:
            prefs.active_weekdays = [bool(d) for d in weekdays]

        return prefs

    async def save_preferences(self, prefs: ReminderPreferences) -> None:
        """Persist all reminder preference keys."""
        await self.set(KEY_REMINDER_ENABLED, prefs.enabled)
        await self.set(
            KEY_REMINDER_TIMES,
            [{"hour": t.hour, "minute": t.minute} for t in prefs.times],
        )
        await self.set(KEY_REMINDER_WEEKDAYS, list(prefs.active_weekdays))

    # Owner chat

    async def get_owner_chat_id(self) -> int | None:
        """Chat that receives reminders, set when the user sends /start."""
        chat_id = await self.get(KEY_OWNER_CHAT_ID)
        if isinstance(chat_id, int):
            return chat_id
        return None

    async def set_owner_chat_id(self, chat_id: int) -> None:
        await self.set(KEY_OWNER_CHAT_ID, chat_id)

    async def clear_all_data(self) -> None:
        """Remove tracked lists, test scores and the theme."""
        await self.remove_many(
            [KEY_ASSIGNMENTS, KEY_EXPERIMENTS, KEY_TEST_SCORES, KEY_THEME]
        )
        logger.info("All tracked data cleared")

    # Helper methods

    def _subject_to_dict(self, subject: TrackedSubject) -> dict:
        """Convert a subject to its stored JSON shape."""
        return {
            "id": subject.id,
            "subject_name": subject.subject_name,
            "course_code": subject.course_code,
            "items": [
                {
                    "id": item.id,
                    "name": item.name,
                    "status": item.status,
                    "submission_date": item.submission_date.isoformat()
                    if item.submission_date
                    else None,
                    "submission_notif_ids": item.submission_notif_ids,
                }
                for item in subject.items
            ],
        }

    def _dict_to_subject(self, data: dict, category: Category) -> TrackedSubject:
        """Convert a stored JSON object to a subject."""
        return TrackedSubject(
            id=str(data["id"]),
            subject_name=data["subject_name"],
            category=category,
            course_code=data.get("course_code"),
            items=[
                TrackedItem(
                    id=int(item["id"]),
                    name=item["name"],
                    status=item["status"],
                    submission_date=_parse_submission_date(item.get("submission_date")),
                    submission_notif_ids=item.get("submission_notif_ids"),
                )
                for item in data["items"]
            ],
        )

    def _test_score_to_dict(self, test_score: TestScore) -> dict:
        return {
            "id": test_score.id,
            "test_type": test_score.test_type,
            "year": test_score.year,
            "semester": test_score.semester,
            "subjects": [
                {
                    "id": s.id,
                    "name": s.name,
                    "marks_obtained": s.marks_obtained,
                    "total_marks": s.total_marks,
                }
                for s in test_score.subjects
            ],
        }

    def _dict_to_test_score(self, data: dict) -> TestScore:
        return TestScore(
            id=str(data["id"]),
            test_type=data["test_type"],
            year=data["year"],
            semester=str(data["semester"]),
            subjects=[
                SubjectScore(
                    id=str(s["id"]),
                    name=s["name"],
                    marks_obtained=float(s["marks_obtained"]),
                    total_marks=float(s["total_marks"]),
                )
                for s in data["subjects"]
            ],
        )


def _parse_submission_date(value: str | None) -> date | None:
    """Dates without a time stay dates; anything with a time is a datetime."""
    if not value:
        return None
    if "T" in value:
        return datetime.fromisoformat(value)
    return date.fromisoformat(value)
