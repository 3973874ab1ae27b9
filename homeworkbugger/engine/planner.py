"""Reminder planning - digest and submission reminders.

Every pass recomputes from scratch: previously scheduled reminders are
cancelled (by stored handle, then by recognizing their body text) and the
current set is scheduled again. Running a pass twice with the same inputs
leaves the same reminders scheduled.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Tuple
from zoneinfo import ZoneInfo

from homeworkbugger.db.models import (
    ReminderTime,
    ScheduleRequest,
    TrackedItem,
    TrackedSubject,
    WrittenTally,
)
from homeworkbugger.db.repository import Repository
from homeworkbugger.engine.delivery import Delivery
from homeworkbugger.utils.constants import (
    APP_TITLE,
    CATEGORIES,
    DIGEST_BODY,
    DIGEST_MARKER,
    REMINDABLE_STATUSES,
    SUBMISSION_MARKERS,
    SUBMISSION_SLOTS,
)
from homeworkbugger.utils.time_utils import at_local_time, calendar_date

logger = logging.getLogger(__name__)


@dataclass
class ResyncResult:
    """Outcome of a full reminder pass."""

    permission_granted: bool
    digest_handles: List[str] = field(default_factory=list)
    submission_handles: List[str] = field(default_factory=list)


def is_digest(body: str) -> bool:
    return DIGEST_MARKER in body


def is_submission_reminder(body: str) -> bool:
    lowered = body.lower()
    return any(marker in lowered for marker in SUBMISSION_MARKERS)


# Digest reminders


def build_digest_requests(
    times: List[ReminderTime], active_weekdays: List[bool]
) -> List[ScheduleRequest]:
    """Build recurring digest requests.

    With all seven days active there is one daily request per time; otherwise
    one weekly request per (active weekday, time), weekdays numbered 1-7
    from Sunday.
    """
    if all(active_weekdays):
        return [
            ScheduleRequest(title=APP_TITLE, body=DIGEST_BODY, hour=t.hour, minute=t.minute)
            for t in times
        ]

    requests = []
    for index, active in enumerate(active_weekdays):
        if not active:
            continue
        for t in times:
            requests.append(
                ScheduleRequest(
                    title=APP_TITLE,
                    body=DIGEST_BODY,
                    hour=t.hour,
                    minute=t.minute,
                    weekday=index + 1,
                )
            )
    return requests


async def plan_digest_reminders(
    delivery: Delivery, times: List[ReminderTime], active_weekdays: List[bool]
) -> List[str]:
    """Schedule digest reminders and return their handles.

    Callers cancel earlier digests first and skip this entirely when
    reminders are disabled.
    """
    handles = []
    for request in build_digest_requests(times, active_weekdays):
        handles.append(await delivery.schedule_recurring(request))
    return handles


async def cancel_digest_reminders(delivery: Delivery) -> int:
    """Cancel every scheduled digest. Returns how many were cancelled."""
    cancelled = 0
    for notification in await delivery.list_scheduled():
        if is_digest(notification.body):
            if await _cancel_quietly(delivery, notification.handle):
                cancelled += 1
    return cancelled


# Submission reminders


def build_submission_requests(
    subjects: List[TrackedSubject], now: datetime
) -> List[Tuple[TrackedItem, ScheduleRequest]]:
    """Build one-shot reminders for unresolved items with a submission date.

    Each item gets up to three reminders (2 days before at 09:00, the day
    before at 18:00, the day itself at 08:00). Instants at or before ``now``
    are dropped. Instants use ``now``'s timezone.
    """
    tz = now.tzinfo
    planned = []

    for subject in subjects:
        category = subject.category
        for item in subject.items:
            if item.submission_date is None or item.status not in REMINDABLE_STATUSES:
                continue

            due_day = calendar_date(item.submission_date)
            for slot in SUBMISSION_SLOTS:
                at = at_local_time(
                    due_day - timedelta(days=slot.days_before_due), slot.hour, slot.minute, tz
                )
                if at <= now:
                    continue

                request = ScheduleRequest(
                    title=slot.title_template.format(Category=category.title()),
                    body=slot.body_template.format(
                        subject=subject.subject_name, category=category
                    ),
                    at=at,
                )
                planned.append((item, request))

    return planned


async def plan_submission_reminders(
    delivery: Delivery, subjects: List[TrackedSubject], now: datetime
) -> List[str]:
    """Schedule submission reminders and return their handles.

    Handles are recorded on each item's ``submission_notif_ids``. Callers
    cancel earlier submission reminders first.
    """
    handles = []
    for item, request in build_submission_requests(subjects, now):
        handle = await delivery.schedule_one_shot(request)
        if item.submission_notif_ids is None:
            item.submission_notif_ids = []
        item.submission_notif_ids.append(handle)
        handles.append(handle)
    return handles


async def cancel_submission_reminders(
    delivery: Delivery, subjects: List[TrackedSubject]
) -> int:
    """Cancel submission reminders.

    Handles stored on items go first; the sweep over scheduled notifications
    catches anything whose handle was lost. Returns how many were cancelled.
    """
    cancelled = 0
    for subject in subjects:
        for item in subject.items:
            for handle in item.submission_notif_ids or []:
                if await _cancel_quietly(delivery, handle):
                    cancelled += 1
            if item.submission_notif_ids is not None:
                item.submission_notif_ids = [] if item.submission_date else None

    for notification in await delivery.list_scheduled():
        if is_submission_reminder(notification.body):
            if await _cancel_quietly(delivery, notification.handle):
                cancelled += 1

    return cancelled


# Badge


def count_written_items(subjects: List[TrackedSubject]) -> WrittenTally:
    """Count written items with a "{subject} {category}" label for each."""
    labels = [
        f"{subject.subject_name} {subject.category}"
        for subject in subjects
        for item in subject.items
        if item.status == "written"
    ]
    return WrittenTally(count=len(labels), labels=labels)


# Full pass


async def resync_reminders(
    repo: Repository, delivery: Delivery, now: datetime | None = None, tz: str = "UTC"
) -> ResyncResult:
    """Cancel recognized reminders and schedule the current set.

    Runs at startup, after every saved change to a subject and after
    preference changes. Schedule failures propagate to the caller.
    """
    if now is None:
        now = datetime.now(ZoneInfo(tz))

    if not await delivery.request_permission():
        logger.warning("Reminders skipped: no chat to deliver to yet (send /start)")
        return ResyncResult(permission_granted=False)

    result = ResyncResult(permission_granted=True)

    prefs = await repo.load_preferences()
    await cancel_digest_reminders(delivery)
    if prefs.enabled:
        result.digest_handles = await plan_digest_reminders(
            delivery, prefs.times, prefs.active_weekdays
        )

    lists = {}
    for category in CATEGORIES:
        subjects, readable = await repo.load_subjects_checked(category)
        lists[category] = (subjects, readable, _stored_handles(subjects))

    subjects = [s for category in CATEGORIES for s in lists[category][0]]
    await cancel_submission_reminders(delivery, subjects)
    result.submission_handles = await plan_submission_reminders(delivery, subjects, now)

    for category, (subjects, readable, before) in lists.items():
        # An unreadable list loaded as [] must not be written over the stored one
        if not readable:
            logger.warning(f"Not saving {category} list: stored value is unreadable")
            continue
        if _stored_handles(subjects) != before:
            await repo.save_subjects(category, subjects)

    logger.info(
        f"Reminders synced: {len(result.digest_handles)} digest, "
        f"{len(result.submission_handles)} submission"
    )
    return result


async def _cancel_quietly(delivery: Delivery, handle: str) -> bool:
    """Cancel a handle, ignoring failures. Returns True if it was cancelled."""
    try:
        await delivery.cancel(handle)
        return True
    except Exception as e:
        logger.debug(f"Could not cancel notification {handle}: {e}")
        return False


def _stored_handles(subjects: List[TrackedSubject]) -> list:
    return [
        list(item.submission_notif_ids) if item.submission_notif_ids is not None else None
        for subject in subjects
        for item in subject.items
    ]
