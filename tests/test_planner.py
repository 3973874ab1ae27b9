"""Tests for reminder planning."""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from homeworkbugger.db.models import ReminderTime, TrackedItem, TrackedSubject
from homeworkbugger.engine.planner import (
    build_digest_requests,
    build_submission_requests,
    cancel_digest_reminders,
    cancel_submission_reminders,
    count_written_items,
    plan_digest_reminders,
    plan_submission_reminders,
    resync_reminders,
)
from homeworkbugger.utils.constants import DIGEST_BODY

from conftest import FakeDelivery

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=ZoneInfo("UTC"))


def make_subject(
    name="Maths",
    category="assignment",
    status="written",
    submission_date=None,
    subject_id="1",
):
    return TrackedSubject(
        id=subject_id,
        subject_name=name,
        category=category,
        items=[
            TrackedItem(
                id=1,
                name=f"{category.title()} 1",
                status=status,
                submission_date=submission_date,
            )
        ],
    )


def test_digest_all_days_is_daily():
    """All seven days active gives one daily request per time."""
    times = [ReminderTime(8, 0), ReminderTime(18, 30)]
    requests = build_digest_requests(times, [True] * 7)

    assert len(requests) == 2
    assert all(r.weekday is None for r in requests)
    assert all(r.repeats for r in requests)
    assert [(r.hour, r.minute) for r in requests] == [(8, 0), (18, 30)]
    assert all(r.body == DIGEST_BODY for r in requests)


def test_digest_some_days_is_weekly():
    """K active weekdays and N times give K*N weekly requests."""
    times = [ReminderTime(8, 0), ReminderTime(18, 30)]
    # Monday, Wednesday, Friday
    weekdays = [False, True, False, True, False, True, False]

    requests = build_digest_requests(times, weekdays)

    assert len(requests) == 6
    assert sorted({r.weekday for r in requests}) == [2, 4, 6]


def test_digest_sunday_is_weekday_one():
    requests = build_digest_requests([ReminderTime(9, 0)], [True] + [False] * 6)
    assert [r.weekday for r in requests] == [1]


def test_digest_no_times():
    assert build_digest_requests([], [True] * 7) == []
    assert build_digest_requests([], [True, False, False, False, False, False, False]) == []


@pytest.mark.asyncio
async def test_plan_digest_reminders_submits(delivery: FakeDelivery):
    handles = await plan_digest_reminders(delivery, [ReminderTime(18, 0)], [True] * 7)

    assert len(handles) == 1
    assert delivery.scheduled[handles[0]].hour == 18


def test_submission_three_reminders():
    """A written item due in 3 days gets all three reminders."""
    due = (NOW + timedelta(days=3)).date()
    planned = build_submission_requests([make_subject(submission_date=due)], NOW)

    assert len(planned) == 3
    requests = [request for _, request in planned]
    assert all(r.at > NOW for r in requests)
    assert [r.at for r in requests] == [
        datetime(2026, 3, 2, 9, 0, tzinfo=ZoneInfo("UTC")),
        datetime(2026, 3, 3, 18, 0, tzinfo=ZoneInfo("UTC")),
        datetime(2026, 3, 4, 8, 0, tzinfo=ZoneInfo("UTC")),
    ]
    assert [r.body for r in requests] == [
        "Maths assignment due in 2 days!",
        "Maths assignment due tomorrow!",
        "Maths assignment due today!",
    ]
    assert [r.title for r in requests] == [
        "Assignment Reminder",
        "Assignment Reminder",
        "Assignment Due Today",
    ]


def test_submission_not_completed_is_reminded():
    due = (NOW + timedelta(days=3)).date()
    planned = build_submission_requests(
        [make_subject(status="not_completed", submission_date=due)], NOW
    )
    assert len(planned) == 3


def test_submission_resolved_items_skipped():
    """Completed and not-given items never get reminders."""
    due = (NOW + timedelta(days=3)).date()
    subjects = [
        make_subject(status="completed", submission_date=due),
        make_subject(status="not_given", submission_date=due),
    ]
    assert build_submission_requests(subjects, NOW) == []


def test_submission_without_date_skipped():
    assert build_submission_requests([make_subject(submission_date=None)], NOW) == []


def test_submission_past_candidates_dropped():
    """Only reminders strictly after now are scheduled."""
    # Due in 2 days, and it's already past 09:00 today
    now = datetime(2026, 3, 1, 10, 0, tzinfo=ZoneInfo("UTC"))
    planned = build_submission_requests(
        [make_subject(submission_date=date(2026, 3, 3))], now
    )
    assert [r.body for _, r in planned] == [
        "Maths assignment due tomorrow!",
        "Maths assignment due today!",
    ]

    # Due today, before 08:00
    early = datetime(2026, 3, 1, 7, 0, tzinfo=ZoneInfo("UTC"))
    planned = build_submission_requests(
        [make_subject(submission_date=date(2026, 3, 1))], early
    )
    assert [r.body for _, r in planned] == ["Maths assignment due today!"]

    # Already overdue
    planned = build_submission_requests(
        [make_subject(submission_date=date(2026, 2, 20))], NOW
    )
    assert planned == []


def test_submission_experiment_with_time():
    """Experiments may carry a time; only the calendar day matters."""
    subject = make_subject(
        name="Physics Lab",
        category="experiment",
        submission_date=datetime(2026, 3, 4, 14, 30),
    )
    requests = [r for _, r in build_submission_requests([subject], NOW)]

    assert len(requests) == 3
    assert requests[0].title == "Experiment Reminder"
    assert requests[2].title == "Experiment Due Today"
    assert requests[2].body == "Physics Lab experiment due today!"
    assert requests[2].at == datetime(2026, 3, 4, 8, 0, tzinfo=ZoneInfo("UTC"))


@pytest.mark.asyncio
async def test_plan_submission_records_handles(delivery: FakeDelivery):
    subject = make_subject(submission_date=date(2026, 3, 10))

    handles = await plan_submission_reminders(delivery, [subject], NOW)

    assert len(handles) == 3
    assert subject.items[0].submission_notif_ids == handles


def test_count_written_items():
    subjects = [
        TrackedSubject(
            id="1",
            subject_name="Maths",
            category="assignment",
            items=[
                TrackedItem(id=1, name="Assignment 1", status="written"),
                TrackedItem(id=2, name="Assignment 2", status="completed"),
                TrackedItem(id=3, name="Assignment 3", status="not_given"),
            ],
        ),
        TrackedSubject(
            id="2",
            subject_name="Chemistry",
            category="experiment",
            items=[
                TrackedItem(id=1, name="Experiment 1", status="not_completed"),
                TrackedItem(id=2, name="Experiment 2", status="written"),
            ],
        ),
    ]

    tally = count_written_items(subjects)

    assert tally.count == 2
    assert tally.labels == ["Maths assignment", "Chemistry experiment"]


def test_count_written_items_empty():
    tally = count_written_items([])
    assert tally.count == 0
    assert tally.labels == []


@pytest.mark.asyncio
async def test_cancel_digest_only_touches_digests(delivery: FakeDelivery):
    await plan_digest_reminders(delivery, [ReminderTime(18, 0)], [True] * 7)
    await plan_submission_reminders(
        delivery, [make_subject(submission_date=date(2026, 3, 10))], NOW
    )

    cancelled = await cancel_digest_reminders(delivery)

    assert cancelled == 1
    assert len(delivery.scheduled) == 3
    assert all("due" in r.body for r in delivery.scheduled.values())


@pytest.mark.asyncio
async def test_cancel_submission_clears_stored_handles(delivery: FakeDelivery):
    subject = make_subject(submission_date=date(2026, 3, 10))
    await plan_submission_reminders(delivery, [subject], NOW)
    await plan_digest_reminders(delivery, [ReminderTime(18, 0)], [True] * 7)

    cancelled = await cancel_submission_reminders(delivery, [subject])

    assert cancelled == 3
    assert subject.items[0].submission_notif_ids == []
    assert [r.body for r in delivery.scheduled.values()] == [DIGEST_BODY]


@pytest.mark.asyncio
async def test_cancel_failures_are_swallowed(delivery: FakeDelivery):
    await plan_digest_reminders(delivery, [ReminderTime(18, 0)], [True] * 7)
    delivery.cancel_fails = True

    assert await cancel_digest_reminders(delivery) == 0
    assert len(delivery.scheduled) == 1


@pytest.mark.asyncio
async def test_resync_is_idempotent(repo, delivery: FakeDelivery):
    """Two passes with unchanged inputs leave the same reminders scheduled."""
    await repo.save_subjects(
        "assignment", [make_subject(submission_date=(NOW + timedelta(days=3)).date())]
    )
    await repo.save_subjects(
        "experiment",
        [make_subject(name="Physics Lab", category="experiment", status="completed",
                      submission_date=date(2026, 3, 10), subject_id="2")],
    )

    first = await resync_reminders(repo, delivery, NOW)
    first_set = sorted((r.body, str(r.at)) for r in delivery.scheduled.values())

    second = await resync_reminders(repo, delivery, NOW)
    second_set = sorted((r.body, str(r.at)) for r in delivery.scheduled.values())

    assert first.permission_granted
    assert len(first.digest_handles) == 1
    assert len(first.submission_handles) == 3
    assert len(second.submission_handles) == 3
    assert len(delivery.scheduled) == 4
    assert first_set == second_set

    # The latest handles are persisted on the item
    assignments = await repo.load_subjects("assignment")
    assert assignments[0].items[0].submission_notif_ids == second.submission_handles


@pytest.mark.asyncio
async def test_resync_respects_disabled_preferences(repo, delivery: FakeDelivery):
    prefs = await repo.load_preferences()
    prefs.enabled = False
    await repo.save_preferences(prefs)

    result = await resync_reminders(repo, delivery, NOW)

    assert result.digest_handles == []
    assert delivery.scheduled == {}


@pytest.mark.asyncio
async def test_resync_disabling_removes_old_digests(repo, delivery: FakeDelivery):
    await resync_reminders(repo, delivery, NOW)
    assert len(delivery.scheduled) == 1

    prefs = await repo.load_preferences()
    prefs.enabled = False
    await repo.save_preferences(prefs)
    await resync_reminders(repo, delivery, NOW)

    assert delivery.scheduled == {}


@pytest.mark.asyncio
async def test_resync_without_permission(repo):
    delivery = FakeDelivery(granted=False)
    await repo.save_subjects(
        "assignment", [make_subject(submission_date=date(2026, 3, 10))]
    )

    result = await resync_reminders(repo, delivery, NOW)

    assert not result.permission_granted
    assert delivery.scheduled == {}


@pytest.mark.asyncio
async def test_resync_keeps_unreadable_list(repo, delivery: FakeDelivery):
    """A list that fails to load is left in storage as it was."""
    await repo.save_subjects(
        "assignment",
        [
            make_subject(submission_date=date(2026, 3, 10)),
            make_subject(name="Physics", submission_date=date(2026, 3, 12), subject_id="2"),
        ],
    )
    stored = await repo.get("assignments")
    stored[1]["items"][0]["submission_date"] = "03/10/2026"
    await repo.set("assignments", stored)

    result = await resync_reminders(repo, delivery, NOW)

    assert result.submission_handles == []
    assert await repo.get("assignments") == stored


@pytest.mark.asyncio
async def test_resync_skips_write_when_nothing_changed(repo, delivery: FakeDelivery):
    await repo.save_subjects("assignment", [make_subject(status="completed")])
    await repo.db.execute("UPDATE kv SET updated_at = 'then' WHERE key = 'assignments'")
    await repo.db.commit()

    await resync_reminders(repo, delivery, NOW)

    async with repo.db.execute(
        "SELECT updated_at FROM kv WHERE key = 'assignments'"
    ) as cursor:
        row = await cursor.fetchone()
    assert row["updated_at"] == "then"
