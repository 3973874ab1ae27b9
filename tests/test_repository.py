"""Tests for key-value persistence."""

from datetime import date, datetime

import pytest

from homeworkbugger.db.models import (
    ReminderTime,
    SubjectScore,
    TestScore,
    TrackedItem,
    TrackedSubject,
)


@pytest.mark.asyncio
async def test_missing_keys_use_defaults(repo):
    """Nothing stored yet: empty lists and default settings."""
    assert await repo.get("assignments") is None
    assert await repo.load_subjects("assignment") == []
    assert await repo.load_subjects("experiment") == []
    assert await repo.load_test_scores() == []
    assert await repo.load_theme() == "light"
    assert await repo.get_owner_chat_id() is None

    prefs = await repo.load_preferences()
    assert prefs.enabled is True
    assert prefs.times == [ReminderTime(18, 0)]
    assert prefs.active_weekdays == [True] * 7


@pytest.mark.asyncio
async def test_subjects_persist(repo):
    subject = TrackedSubject(
        id="1712",
        subject_name="Physics Lab",
        category="experiment",
        course_code="PHY101",
        items=[
            TrackedItem(id=1, name="Experiment 1", status="completed"),
            TrackedItem(
                id=2,
                name="Experiment 2",
                status="written",
                submission_date=datetime(2026, 3, 15, 14, 30),
                submission_notif_ids=["a", "b"],
            ),
            TrackedItem(
                id=3,
                name="Experiment 3",
                status="not_completed",
                submission_date=date(2026, 3, 20),
            ),
        ],
    )

    await repo.save_subjects("experiment", [subject])
    loaded = await repo.load_subjects("experiment")

    assert loaded == [subject]
    assert type(loaded[0].items[1].submission_date) is datetime
    assert type(loaded[0].items[2].submission_date) is date

    # The lists are kept apart
    assert await repo.load_subjects("assignment") == []


@pytest.mark.asyncio
async def test_load_all_subjects_order(repo):
    await repo.save_subjects(
        "experiment", [TrackedSubject(id="2", subject_name="Lab", category="experiment")]
    )
    await repo.save_subjects(
        "assignment", [TrackedSubject(id="1", subject_name="Maths", category="assignment")]
    )

    subjects = await repo.load_all_subjects()

    assert [s.id for s in subjects] == ["1", "2"]
    assert [s.category for s in subjects] == ["assignment", "experiment"]


@pytest.mark.asyncio
async def test_malformed_json_falls_back(repo):
    """Unreadable blobs load as the default value."""
    await repo.db.execute(
        "INSERT INTO kv (key, value) VALUES (?, ?)", ("assignments", "{not json")
    )
    await repo.db.execute(
        "INSERT INTO kv (key, value) VALUES (?, ?)", ("app_theme", "[1, 2")
    )
    await repo.db.commit()

    assert await repo.get("assignments") is None
    assert await repo.load_subjects("assignment") == []
    assert await repo.load_theme() == "light"


@pytest.mark.asyncio
async def test_malformed_records_fall_back(repo):
    await repo.set("experiments", [{"id": "1"}])
    await repo.set("reminder_times", [{"hour": "eight"}])
    await repo.set("reminder_weekdays", [True, False])

    assert await repo.load_subjects("experiment") == []

    prefs = await repo.load_preferences()
    assert prefs.times == [ReminderTime(18, 0)]
    assert prefs.active_weekdays == [True] * 7


@pytest.mark.asyncio
async def test_preferences_persist(repo):
    prefs = await repo.load_preferences()
    prefs.enabled = False
    prefs.times = [ReminderTime(7, 45), ReminderTime(21, 0)]
    prefs.active_weekdays = [False, True, True, True, True, True, False]

    await repo.save_preferences(prefs)

    assert await repo.load_preferences() == prefs


@pytest.mark.asyncio
async def test_test_scores_persist(repo):
    test_score = TestScore(
        id="99",
        test_type="UT1",
        year="SE",
        semester="3",
        subjects=[SubjectScore(id="1", name="Maths", marks_obtained=18.5, total_marks=20)],
    )

    await repo.save_test_scores([test_score])

    assert await repo.load_test_scores() == [test_score]


@pytest.mark.asyncio
async def test_set_overwrites(repo):
    await repo.set("app_theme", "dark")
    await repo.set("app_theme", "light")

    assert await repo.get("app_theme") == "light"


@pytest.mark.asyncio
async def test_clear_all_data_keeps_settings(repo):
    await repo.save_subjects(
        "assignment", [TrackedSubject(id="1", subject_name="Maths", category="assignment")]
    )
    await repo.save_test_scores([TestScore(id="2", test_type="UT2", year="FE", semester="1")])
    await repo.save_theme("dark")
    await repo.set_owner_chat_id(4242)
    prefs = await repo.load_preferences()
    prefs.times = [ReminderTime(6, 0)]
    await repo.save_preferences(prefs)

    await repo.clear_all_data()

    assert await repo.load_subjects("assignment") == []
    assert await repo.load_test_scores() == []
    assert await repo.load_theme() == "light"
    assert await repo.get_owner_chat_id() == 4242
    assert (await repo.load_preferences()).times == [ReminderTime(6, 0)]


@pytest.mark.asyncio
async def test_remove_many_ignores_empty(repo):
    await repo.set("app_theme", "dark")
    await repo.remove_many([])

    assert await repo.get("app_theme") == "dark"


@pytest.mark.asyncio
async def test_load_subjects_checked_reports_unreadable(repo):
    assert await repo.load_subjects_checked("assignment") == ([], True)

    await repo.set("assignments", [{"id": "1"}])
    assert await repo.load_subjects_checked("assignment") == ([], False)

    await repo.db.execute(
        "INSERT INTO kv (key, value) VALUES (?, ?)", ("experiments", "{not json")
    )
    await repo.db.commit()
    assert await repo.load_subjects_checked("experiment") == ([], False)
