"""Command handlers."""

import logging
import re
from html import escape
from typing import List, Tuple

from telegram import Update
from telegram.ext import ContextTypes

from homeworkbugger.bot.formatters import (
    format_help_message,
    format_preferences,
    format_subject_detail,
    format_subject_list,
    format_test_detail,
    format_test_list,
    format_test_title,
    format_welcome_message,
    format_written_tally,
)
from homeworkbugger.bot.keyboards import confirm_cancel_keyboard, item_status_keyboard
from homeworkbugger.config import Config
from homeworkbugger.db.models import Category, TrackedSubject
from homeworkbugger.db.repository import Repository
from homeworkbugger.engine.planner import count_written_items, resync_reminders
from homeworkbugger.engine.scores import add_subject_score, find_test_score, new_test_score
from homeworkbugger.engine.state import AppState
from homeworkbugger.engine.tracking import (
    find_subject,
    new_subject,
    resize_items,
    set_item_status,
    set_submission_date,
)
from homeworkbugger.utils.constants import CATEGORIES, STATUS_LABELS
from homeworkbugger.utils.time_utils import (
    local_now,
    parse_due_date,
    parse_time_of_day,
    parse_weekdays,
)

logger = logging.getLogger(__name__)

STATUS_ALIASES = {
    "completed": "completed",
    "done": "completed",
    "written": "written",
    "not_completed": "not_completed",
    "pending": "not_completed",
    "not_given": "not_given",
    "none": "not_given",
}

COURSE_CODE_PATTERN = re.compile(r"^\[([^\]]+)\]$")


# Shared helpers


async def require_owner(update: Update, context: ContextTypes.DEFAULT_TYPE) -> bool:
    """Only the chat that sent /start may use the bot."""
    if not update.effective_chat:
        return False

    repo: Repository = context.bot_data["repo"]
    owner = await repo.get_owner_chat_id()

    if owner is None:
        if update.effective_message:
            await update.effective_message.reply_text("Please /start the bot first.")
        return False

    if owner != update.effective_chat.id:
        if update.effective_message:
            await update.effective_message.reply_text(
                "This bot is already paired with another chat."
            )
        return False

    return True


async def load_subject(
    repo: Repository, subject_id: str
) -> Tuple[Category, List[TrackedSubject], TrackedSubject] | None:
    """Find a subject in either list. Returns (category, that list, subject)."""
    for category in CATEGORIES:
        subjects = await repo.load_subjects(category)  # type: ignore
        subject = find_subject(subjects, subject_id)
        if subject:
            return category, subjects, subject  # type: ignore
    return None


async def save_and_resync(
    context: ContextTypes.DEFAULT_TYPE,
    category: Category | None = None,
    subjects: List[TrackedSubject] | None = None,
) -> None:
    """Persist a changed list, then run the full reminder pass."""
    repo: Repository = context.bot_data["repo"]
    if category is not None and subjects is not None:
        await repo.save_subjects(category, subjects)

    await resync_reminders(repo, context.bot_data["delivery"], tz=Config.TIMEZONE)


def _state(context: ContextTypes.DEFAULT_TYPE) -> AppState:
    return context.bot_data["state"]


# General


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command - pair this chat for reminders."""
    if not update.effective_chat or not update.message:
        return

    repo: Repository = context.bot_data["repo"]
    owner = await repo.get_owner_chat_id()

    if owner is not None and owner != update.effective_chat.id:
        await update.message.reply_text("This bot is already paired with another chat.")
        return

    if owner is None:
        await repo.set_owner_chat_id(update.effective_chat.id)
        logger.info(f"Paired with chat {update.effective_chat.id}")

    await update.message.reply_html(format_welcome_message())
    await save_and_resync(context)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command."""
    if not update.message:
        return

    await update.message.reply_html(format_help_message())


# Subjects


async def _list_category(
    update: Update, context: ContextTypes.DEFAULT_TYPE, category: Category
) -> None:
    if not update.message or not await require_owner(update, context):
        return

    repo: Repository = context.bot_data["repo"]
    subjects = await repo.load_subjects(category)
    await update.message.reply_html(
        format_subject_list(subjects, category, _state(context).palette)
    )


async def assignments_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /assignments command."""
    await _list_category(update, context, "assignment")


async def experiments_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /experiments command."""
    await _list_category(update, context, "experiment")


async def add_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /add <assignment|experiment> <count> <name> [code]."""
    if not update.message or not await require_owner(update, context):
        return

    args = context.args or []
    if len(args) < 3 or args[0].lower() not in CATEGORIES:
        await update.message.reply_html(
            "Usage: <code>/add &lt;assignment|experiment&gt; &lt;count&gt; &lt;name&gt; [code]</code>\n\n"
            "Example: <code>/add assignment 5 Data Structures [CS201]</code>"
        )
        return

    category: Category = args[0].lower()  # type: ignore
    try:
        total = int(args[1])
    except ValueError:
        await update.message.reply_text(f"Please enter a valid number of {category}s.")
        return

    name_parts = args[2:]
    course_code = None
    match = COURSE_CODE_PATTERN.match(name_parts[-1])
    if match and len(name_parts) > 1:
        course_code = match.group(1)
        name_parts = name_parts[:-1]

    try:
        subject = new_subject(category, " ".join(name_parts), total, course_code)
    except ValueError as e:
        await update.message.reply_text(str(e))
        return

    repo: Repository = context.bot_data["repo"]
    subjects, readable = await repo.load_subjects_checked(category)
    if not readable:
        await update.message.reply_text(
            f"Your saved {category}s couldn't be read, so nothing was added. "
            "Check the logs before changing them."
        )
        return
    subjects.append(subject)
    await save_and_resync(context, category, subjects)

    await update.message.reply_html(
        f"✓ Added <b>{escape(subject.subject_name)}</b> with {total} {category}s\n\n"
        f"ID: <code>{subject.id}</code>"
    )


async def subject_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /subject <id> - item view with status buttons."""
    if not update.message or not await require_owner(update, context):
        return

    if not context.args or len(context.args) != 1:
        await update.message.reply_text("Usage: /subject <subject_id>")
        return

    repo: Repository = context.bot_data["repo"]
    found = await load_subject(repo, context.args[0])
    if not found:
        await update.message.reply_text("Subject not found.")
        return

    _, _, subject = found
    palette = _state(context).palette
    await update.message.reply_html(
        format_subject_detail(subject, palette, local_now(Config.TIMEZONE).date()),
        reply_markup=item_status_keyboard(subject, palette),
    )


async def status_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /status <subject_id> <item> <status>."""
    if not update.message or not await require_owner(update, context):
        return

    if not context.args or len(context.args) != 3:
        await update.message.reply_text(
            "Usage: /status <subject_id> <item> <status>\n\n"
            "Statuses: completed, written, not_completed, not_given"
        )
        return

    subject_id, item_arg, status_arg = context.args
    status = STATUS_ALIASES.get(status_arg.lower())
    if status is None:
        await update.message.reply_text(
            f"Unknown status: {status_arg}\n\n"
            "Use: completed, written, not_completed, not_given"
        )
        return

    try:
        item_id = int(item_arg)
    except ValueError:
        await update.message.reply_text("Invalid item number.")
        return

    repo: Repository = context.bot_data["repo"]
    found = await load_subject(repo, subject_id)
    if not found:
        await update.message.reply_text("Subject not found.")
        return

    category, subjects, subject = found
    try:
        item = set_item_status(subject, item_id, status)  # type: ignore
    except ValueError as e:
        await update.message.reply_text(str(e))
        return

    await save_and_resync(context, category, subjects)
    await update.message.reply_html(
        f"✓ {escape(subject.subject_name)}: <b>{item.name}</b> is now {STATUS_LABELS[status]}"
    )


async def due_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /due <subject_id> <item> <date|clear>."""
    if not update.message or not await require_owner(update, context):
        return

    if not context.args or len(context.args) < 3:
        await update.message.reply_html(
            "Usage: <code>/due &lt;subject_id&gt; &lt;item&gt; &lt;date|clear&gt;</code>\n\n"
            "Examples:\n"
            "• <code>/due 1712 3 2026-03-15</code>\n"
            "• <code>/due 1712 3 2026-03-15 14:30</code>\n"
            "• <code>/due 1712 3 tomorrow</code>\n"
            "• <code>/due 1712 3 in 5 days</code>\n"
            "• <code>/due 1712 3 clear</code>"
        )
        return

    subject_id, item_arg = context.args[0], context.args[1]
    date_text = " ".join(context.args[2:])

    try:
        item_id = int(item_arg)
    except ValueError:
        await update.message.reply_text("Invalid item number.")
        return

    repo: Repository = context.bot_data["repo"]
    found = await load_subject(repo, subject_id)
    if not found:
        await update.message.reply_text("Subject not found.")
        return

    category, subjects, subject = found
    try:
        if date_text.lower() == "clear":
            submission_date = None
        else:
            submission_date = parse_due_date(date_text, local_now(Config.TIMEZONE))
        item = set_submission_date(subject, item_id, submission_date)
    except ValueError as e:
        await update.message.reply_text(str(e))
        return

    await save_and_resync(context, category, subjects)

    if submission_date is None:
        await update.message.reply_html(f"✓ Cleared the due date of <b>{item.name}</b>")
    else:
        await update.message.reply_html(
            f"✓ <b>{item.name}</b> ({escape(subject.subject_name)}) due "
            f"{submission_date.isoformat().replace('T', ' ')}"
        )


async def total_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /total <subject_id> <count>."""
    if not update.message or not await require_owner(update, context):
        return

    if not context.args or len(context.args) != 2:
        await update.message.reply_text("Usage: /total <subject_id> <count>")
        return

    try:
        total = int(context.args[1])
    except ValueError:
        await update.message.reply_text("Please enter a valid number.")
        return

    repo: Repository = context.bot_data["repo"]
    found = await load_subject(repo, context.args[0])
    if not found:
        await update.message.reply_text("Subject not found.")
        return

    category, subjects, subject = found
    try:
        resize_items(subject, total)
    except ValueError as e:
        await update.message.reply_text(str(e))
        return

    await save_and_resync(context, category, subjects)
    await update.message.reply_html(
        f"✓ <b>{escape(subject.subject_name)}</b> now has {total} {category}s"
    )


async def delete_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete <subject_id> - asks for confirmation."""
    if not update.message or not await require_owner(update, context):
        return

    if not context.args or len(context.args) != 1:
        await update.message.reply_text("Usage: /delete <subject_id>")
        return

    repo: Repository = context.bot_data["repo"]
    found = await load_subject(repo, context.args[0])
    if not found:
        await update.message.reply_text("Subject not found.")
        return

    _, _, subject = found
    await update.message.reply_html(
        f"Delete <b>{escape(subject.subject_name)}</b> and all its {subject.category}s?",
        reply_markup=confirm_cancel_keyboard(f"delete:{subject.id}"),
    )


async def written_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /written - count written items across both lists."""
    if not update.message or not await require_owner(update, context):
        return

    repo: Repository = context.bot_data["repo"]
    tally = count_written_items(await repo.load_all_subjects())
    await update.message.reply_html(format_written_tally(tally))


# Reminder settings


async def reminders_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /reminders [on|off]."""
    if not update.message or not await require_owner(update, context):
        return

    repo: Repository = context.bot_data["repo"]
    state = _state(context)

    if not context.args:
        await update.message.reply_html(format_preferences(state.preferences))
        return

    choice = context.args[0].lower()
    if choice not in ["on", "off"]:
        await update.message.reply_text("Usage: /reminders [on|off]")
        return

    prefs = await state.update_preferences(repo, enabled=choice == "on")
    await save_and_resync(context)
    await update.message.reply_html(format_preferences(prefs))


async def times_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /times <HH:MM> [HH:MM ...]."""
    if not update.message or not await require_owner(update, context):
        return

    if not context.args:
        await update.message.reply_html(
            "Usage: <code>/times 08:00 18:30</code>\n\n"
            "Send <code>/times none</code> to remove all check-in times."
        )
        return

    if [a.lower() for a in context.args] == ["none"]:
        times = []
    else:
        try:
            times = [parse_time_of_day(arg) for arg in context.args]
        except ValueError as e:
            await update.message.reply_text(str(e))
            return

    repo: Repository = context.bot_data["repo"]
    prefs = await _state(context).update_preferences(repo, times=times)
    await save_and_resync(context)
    await update.message.reply_html(format_preferences(prefs))


async def days_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /days <mon tue ...|all|weekdays|weekends>."""
    if not update.message or not await require_owner(update, context):
        return

    if not context.args:
        await update.message.reply_html(
            "Usage: <code>/days mon wed fri</code>, <code>/days weekdays</code> "
            "or <code>/days all</code>"
        )
        return

    try:
        active = parse_weekdays(context.args)
    except ValueError as e:
        await update.message.reply_text(str(e))
        return

    repo: Repository = context.bot_data["repo"]
    prefs = await _state(context).update_preferences(repo, active_weekdays=active)
    await save_and_resync(context)
    await update.message.reply_html(format_preferences(prefs))


async def theme_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /theme [light|dark]."""
    if not update.message or not await require_owner(update, context):
        return

    state = _state(context)
    if not context.args:
        await update.message.reply_html(
            f"<b>Current theme:</b> {state.theme}\n\n"
            "To change: <code>/theme dark</code>"
        )
        return

    repo: Repository = context.bot_data["repo"]
    try:
        await state.set_theme(repo, context.args[0].lower())
    except ValueError as e:
        await update.message.reply_text(str(e))
        return

    await update.message.reply_html(f"✓ Theme set to <b>{state.theme}</b>")


async def clear_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /clear - asks for confirmation before deleting everything."""
    if not update.message or not await require_owner(update, context):
        return

    await update.message.reply_html(
        "⚠️ Delete <b>all</b> assignments, experiments and test scores?\n\n"
        "This cannot be undone.",
        reply_markup=confirm_cancel_keyboard("clear"),
    )


# Test scores


async def tests_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /tests."""
    if not update.message or not await require_owner(update, context):
        return

    repo: Repository = context.bot_data["repo"]
    await update.message.reply_html(format_test_list(await repo.load_test_scores()))


async def addtest_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addtest <UT1|UT2|Finals> <FE|SE|TE|BE> <semester>."""
    if not update.message or not await require_owner(update, context):
        return

    if not context.args or len(context.args) != 3:
        await update.message.reply_html(
            "Usage: <code>/addtest &lt;UT1|UT2|Finals&gt; &lt;FE|SE|TE|BE&gt; &lt;1-8&gt;</code>"
        )
        return

    try:
        test_score = new_test_score(*context.args)
    except ValueError as e:
        await update.message.reply_text(str(e))
        return

    repo: Repository = context.bot_data["repo"]
    test_scores = await repo.load_test_scores()
    test_scores.append(test_score)
    await repo.save_test_scores(test_scores)

    await update.message.reply_html(
        f"✓ Added <b>{format_test_title(test_score)}</b>\n\n"
        f"ID: <code>{test_score.id}</code>"
    )


async def test_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /test <id>."""
    if not update.message or not await require_owner(update, context):
        return

    if not context.args or len(context.args) != 1:
        await update.message.reply_text("Usage: /test <test_id>")
        return

    repo: Repository = context.bot_data["repo"]
    test_score = find_test_score(await repo.load_test_scores(), context.args[0])
    if not test_score:
        await update.message.reply_text("Test not found.")
        return

    await update.message.reply_html(format_test_detail(test_score, _state(context).palette))


async def score_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /score <test_id> <obtained> <total> <subject name>."""
    if not update.message or not await require_owner(update, context):
        return

    if not context.args or len(context.args) < 4:
        await update.message.reply_html(
            "Usage: <code>/score &lt;test_id&gt; &lt;obtained&gt; &lt;total&gt; &lt;subject&gt;</code>\n\n"
            "Example: <code>/score 1712 42 50 Physics</code>"
        )
        return

    try:
        obtained = float(context.args[1])
        total = float(context.args[2])
    except ValueError:
        await update.message.reply_text("Please enter valid marks")
        return

    repo: Repository = context.bot_data["repo"]
    test_scores = await repo.load_test_scores()
    test_score = find_test_score(test_scores, context.args[0])
    if not test_score:
        await update.message.reply_text("Test not found.")
        return

    try:
        add_subject_score(test_score, " ".join(context.args[3:]), obtained, total)
    except ValueError as e:
        await update.message.reply_text(str(e))
        return

    await repo.save_test_scores(test_scores)
    await update.message.reply_html(format_test_detail(test_score, _state(context).palette))


async def unscore_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /unscore <test_id> <subject_id> - asks for confirmation."""
    if not update.message or not await require_owner(update, context):
        return

    if not context.args or len(context.args) != 2:
        await update.message.reply_text("Usage: /unscore <test_id> <subject_id>")
        return

    repo: Repository = context.bot_data["repo"]
    test_score = find_test_score(await repo.load_test_scores(), context.args[0])
    if not test_score:
        await update.message.reply_text("Test not found.")
        return

    subject = next((s for s in test_score.subjects if s.id == context.args[1]), None)
    if not subject:
        await update.message.reply_text("Subject not found.")
        return

    await update.message.reply_html(
        f"Remove <b>{escape(subject.name)}</b> from {format_test_title(test_score)}?",
        reply_markup=confirm_cancel_keyboard(f"unscore:{test_score.id}:{subject.id}"),
    )
