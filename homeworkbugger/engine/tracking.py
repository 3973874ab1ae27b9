"""Subject and item bookkeeping for assignments and experiments."""

from datetime import date, datetime
from typing import List, Tuple
from zoneinfo import ZoneInfo

from homeworkbugger.db.models import Category, ItemStatus, TrackedItem, TrackedSubject
from homeworkbugger.utils.constants import (
    CATEGORIES,
    ITEM_STATUSES,
    ITEMS_PER_PAGE,
    MAX_ITEMS_PER_SUBJECT,
    MAX_NAME_LENGTH,
)


def new_id(now: datetime | None = None) -> str:
    """Millisecond timestamp token."""
    if now is None:
        now = datetime.now(ZoneInfo("UTC"))
    return str(int(now.timestamp() * 1000))


def _item_name(category: Category, number: int) -> str:
    return f"{category.title()} {number}"


def _validate_total(total: int) -> None:
    if total <= 0:
        raise ValueError("Please enter a valid number (1 or more)")
    if total > MAX_ITEMS_PER_SUBJECT:
        raise ValueError(f"At most {MAX_ITEMS_PER_SUBJECT} items per subject")


def new_subject(
    category: Category,
    subject_name: str,
    total: int,
    course_code: str | None = None,
    now: datetime | None = None,
) -> TrackedSubject:
    """Create a subject with ``total`` items, all not yet given."""
    if category not in CATEGORIES:
        raise ValueError(f"Unknown category: {category}")

    subject_name = subject_name.strip()
    if not subject_name:
        raise ValueError("Subject name is required")
    if len(subject_name) > MAX_NAME_LENGTH:
        raise ValueError(f"Subject name too long (max {MAX_NAME_LENGTH} characters)")

    _validate_total(total)

    return TrackedSubject(
        id=new_id(now),
        subject_name=subject_name,
        category=category,
        course_code=course_code.strip() if course_code else None,
        items=[TrackedItem(id=i, name=_item_name(category, i)) for i in range(1, total + 1)],
    )


def resize_items(subject: TrackedSubject, total: int) -> None:
    """Grow or shrink a subject's item list.

    New items are appended as not_given; shrinking drops the highest ids.
    """
    _validate_total(total)

    current = len(subject.items)
    if total > current:
        for i in range(current + 1, total + 1):
            subject.items.append(TrackedItem(id=i, name=_item_name(subject.category, i)))
    elif total < current:
        subject.items = subject.items[:total]


def find_subject(subjects: List[TrackedSubject], subject_id: str) -> TrackedSubject | None:
    for subject in subjects:
        if subject.id == subject_id:
            return subject
    return None


def remove_subject(subjects: List[TrackedSubject], subject_id: str) -> List[TrackedSubject]:
    """Return the list without the given subject."""
    return [s for s in subjects if s.id != subject_id]


def find_item(subject: TrackedSubject, item_id: int) -> TrackedItem:
    for item in subject.items:
        if item.id == item_id:
            return item
    raise ValueError(f"{subject.subject_name} has no {subject.category} {item_id}")


def set_item_status(subject: TrackedSubject, item_id: int, status: ItemStatus) -> TrackedItem:
    """Set an item's status. Any status may follow any other."""
    if status not in ITEM_STATUSES:
        raise ValueError(f"Unknown status: {status}")

    item = find_item(subject, item_id)
    item.status = status
    return item


def set_submission_date(
    subject: TrackedSubject, item_id: int, submission_date: date | None
) -> TrackedItem:
    """Set or clear an item's submission date.

    Clearing the date also forgets the handles of its reminders.
    """
    item = find_item(subject, item_id)
    item.submission_date = submission_date
    if submission_date is None:
        item.submission_notif_ids = None
    return item


def status_counts(subject: TrackedSubject) -> dict[str, int]:
    """Count items per status."""
    counts = {status: 0 for status in ITEM_STATUSES}
    for item in subject.items:
        counts[item.status] += 1
    return counts


def status_numbers(subject: TrackedSubject, status: ItemStatus) -> str:
    """Comma-separated ids of the items with the given status."""
    return ", ".join(str(item.id) for item in subject.items if item.status == status)


def page_count(subject: TrackedSubject) -> int:
    return max(1, -(-len(subject.items) // ITEMS_PER_PAGE))


def item_page(subject: TrackedSubject, page: int) -> Tuple[List[TrackedItem], int]:
    """Items on a page of the subject view, with the page clamped to range."""
    page = min(max(page, 0), page_count(subject) - 1)
    start = page * ITEMS_PER_PAGE
    return subject.items[start:start + ITEMS_PER_PAGE], page


def page_of_item(subject: TrackedSubject, item_id: int) -> int:
    for index, item in enumerate(subject.items):
        if item.id == item_id:
            return index // ITEMS_PER_PAGE
    return 0
