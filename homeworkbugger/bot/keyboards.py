"""Inline keyboard builders."""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from homeworkbugger.db.models import TrackedSubject
from homeworkbugger.engine.tracking import item_page, page_count
from homeworkbugger.utils.constants import ITEM_STATUSES


def item_status_keyboard(
    subject: TrackedSubject, palette: dict[str, str], page: int = 0
) -> InlineKeyboardMarkup:
    """One row per item on the page: the item number, then a button per status.

    Subjects longer than a page get a Prev/Next row.
    """
    items, page = item_page(subject, page)

    rows = []
    for item in items:
        row = [InlineKeyboardButton(f"#{item.id}", callback_data="noop")]
        for status in ITEM_STATUSES:
            marker = palette[status]
            label = f"[{marker}]" if item.status == status else marker
            row.append(
                InlineKeyboardButton(
                    label, callback_data=f"status:{subject.id}:{item.id}:{status}"
                )
            )
        rows.append(row)

    pages = page_count(subject)
    if pages > 1:
        nav = []
        if page > 0:
            nav.append(
                InlineKeyboardButton("◀ Prev", callback_data=f"page:{subject.id}:{page - 1}")
            )
        nav.append(InlineKeyboardButton(f"{page + 1}/{pages}", callback_data="noop"))
        if page < pages - 1:
            nav.append(
                InlineKeyboardButton("Next ▶", callback_data=f"page:{subject.id}:{page + 1}")
            )
        rows.append(nav)

    return InlineKeyboardMarkup(rows)


def confirm_cancel_keyboard(action: str) -> InlineKeyboardMarkup:
    """Keyboard for confirmations: Confirm, Cancel."""
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton("✓ Confirm", callback_data=f"confirm:{action}"),
                InlineKeyboardButton("✗ Cancel", callback_data=f"cancel:{action}"),
            ]
        ]
    )
