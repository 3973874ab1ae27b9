"""Callback query handlers for inline buttons."""

import logging
from html import escape

from telegram import Update
from telegram.ext import ContextTypes

from homeworkbugger.bot.formatters import format_subject_detail
from homeworkbugger.bot.handlers import load_subject, require_owner, save_and_resync
from homeworkbugger.bot.keyboards import item_status_keyboard
from homeworkbugger.config import Config
from homeworkbugger.db.repository import Repository
from homeworkbugger.engine.scores import find_test_score, remove_subject_score
from homeworkbugger.engine.tracking import page_of_item, remove_subject, set_item_status
from homeworkbugger.utils.constants import ITEM_STATUSES, STATUS_LABELS
from homeworkbugger.utils.time_utils import local_now

logger = logging.getLogger(__name__)


async def handle_status_callback(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    subject_id: str,
    item_id: int,
    status: str,
) -> None:
    """Handle a status button on the subject view."""
    query = update.callback_query
    if not query:
        return

    if status not in ITEM_STATUSES:
        await query.answer("Unknown status")
        return

    repo: Repository = context.bot_data["repo"]
    found = await load_subject(repo, subject_id)
    if not found:
        await query.answer("Subject not found.")
        return

    category, subjects, subject = found
    try:
        item = set_item_status(subject, item_id, status)  # type: ignore
    except ValueError as e:
        await query.answer(str(e))
        return

    await save_and_resync(context, category, subjects)

    if query.message:
        await _show_subject_page(query, context, subject, page_of_item(subject, item_id))

    await query.answer(f"{item.name}: {STATUS_LABELS[status]}")


async def handle_page_callback(
    update: Update, context: ContextTypes.DEFAULT_TYPE, subject_id: str, page: int
) -> None:
    """Flip the subject view to another page of items."""
    query = update.callback_query
    if not query:
        return

    found = await load_subject(context.bot_data["repo"], subject_id)
    if not found:
        await query.answer("Subject not found.")
        return

    _, _, subject = found
    if query.message:
        await _show_subject_page(query, context, subject, page)
    await query.answer()


async def _show_subject_page(query, context, subject, page: int) -> None:
    palette = context.bot_data["state"].palette
    await query.message.edit_text(
        format_subject_detail(subject, palette, local_now(Config.TIMEZONE).date(), page),
        parse_mode="HTML",
        reply_markup=item_status_keyboard(subject, palette, page),
    )


async def handle_delete_confirmation(
    update: Update, context: ContextTypes.DEFAULT_TYPE, subject_id: str
) -> None:
    """Delete a subject after the user confirmed."""
    query = update.callback_query
    if not query:
        return

    repo: Repository = context.bot_data["repo"]
    found = await load_subject(repo, subject_id)
    if not found:
        await query.answer("Subject not found.")
        return

    category, subjects, subject = found
    await save_and_resync(context, category, remove_subject(subjects, subject_id))
    logger.info(f"Deleted {category} subject {subject_id}")

    if query.message:
        await query.message.edit_text(
            f"🗑 Deleted: <b>{escape(subject.subject_name)}</b>", parse_mode="HTML"
        )
    await query.answer("Deleted")


async def handle_unscore_confirmation(
    update: Update, context: ContextTypes.DEFAULT_TYPE, test_id: str, subject_id: str
) -> None:
    """Remove a subject's marks after the user confirmed."""
    query = update.callback_query
    if not query:
        return

    repo: Repository = context.bot_data["repo"]
    test_scores = await repo.load_test_scores()
    test_score = find_test_score(test_scores, test_id)

    if not test_score or not remove_subject_score(test_score, subject_id):
        await query.answer("Subject not found.")
        return

    await repo.save_test_scores(test_scores)

    if query.message:
        await query.message.edit_text("🗑 Subject removed.")
    await query.answer("Removed")


async def handle_clear_confirmation(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """Delete all tracked data after the user confirmed."""
    query = update.callback_query
    if not query:
        return

    repo: Repository = context.bot_data["repo"]
    await repo.clear_all_data()

    # The theme key is gone too, so fall back to the default
    state = context.bot_data["state"]
    state.theme = await repo.load_theme()

    await save_and_resync(context)

    if query.message:
        await query.message.edit_text("🗑 All data cleared.")
    await query.answer("Cleared")


async def callback_router(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Route callback queries to appropriate handlers."""
    if not update.callback_query:
        return

    query = update.callback_query
    data = query.data

    if not data:
        return

    if data == "noop":
        await query.answer()
        return

    if not await require_owner(update, context):
        await query.answer()
        return

    # Parse callback data
    parts = data.split(":")

    if parts[0] == "status" and len(parts) == 4:
        await handle_status_callback(update, context, parts[1], int(parts[2]), parts[3])

    elif parts[0] == "page" and len(parts) == 3:
        await handle_page_callback(update, context, parts[1], int(parts[2]))

    elif parts[0] == "confirm" and parts[1] == "delete":
        await handle_delete_confirmation(update, context, parts[2])

    elif parts[0] == "confirm" and parts[1] == "unscore":
        await handle_unscore_confirmation(update, context, parts[2], parts[3])

    elif parts[0] == "confirm" and parts[1] == "clear":
        await handle_clear_confirmation(update, context)

    elif parts[0] == "cancel":
        if query.message:
            await query.message.edit_text("❌ Cancelled.")
        await query.answer("Cancelled")

    else:
        await query.answer("Unknown action")
