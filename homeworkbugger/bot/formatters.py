"""Message text formatters."""

from datetime import date
from html import escape

from homeworkbugger.db.models import (
    ReminderPreferences,
    TestScore,
    TrackedSubject,
    WrittenTally,
)
from homeworkbugger.engine.scores import grade_band, overall_stats, percentage
from homeworkbugger.engine.tracking import item_page, status_numbers
from homeworkbugger.utils.constants import ITEM_STATUSES, STATUS_LABELS
from homeworkbugger.utils.time_utils import format_due, format_weekdays


def _plural(category: str) -> str:
    return f"{category}s"


def format_subject_card(subject: TrackedSubject, palette: dict[str, str]) -> str:
    """Summary of one subject: which item numbers are in which status."""
    title = f"<b>{escape(subject.subject_name)}</b>"
    if subject.course_code:
        title += f" [{escape(subject.course_code)}]"
    title += f" (ID: <code>{subject.id}</code>)"

    lines = [title, f"Total {_plural(subject.category)}: {len(subject.items)}"]
    for status in ITEM_STATUSES:
        numbers = status_numbers(subject, status)  # type: ignore
        lines.append(f"{palette[status]} {STATUS_LABELS[status]}: {numbers or 'None'}")

    return "\n".join(lines)


def format_subject_list(
    subjects: list[TrackedSubject], category: str, palette: dict[str, str]
) -> str:
    """Format the assignments or experiments list."""
    if not subjects:
        return (
            f"No {_plural(category)} yet.\n\n"
            f"Add one: <code>/add {category} 5 Subject Name</code>"
        )

    header = f"<b>{_plural(category).title()} ({len(subjects)})</b>\n"
    return "\n\n".join([header] + [format_subject_card(s, palette) for s in subjects])


def format_subject_detail(
    subject: TrackedSubject, palette: dict[str, str], today: date, page: int = 0
) -> str:
    """Per-item view with status and submission date, one page of items."""
    items, page = item_page(subject, page)
    lines = [f"<b>{escape(subject.subject_name)}</b> (ID: <code>{subject.id}</code>)\n"]

    for item in items:
        line = f"{palette[item.status]} {escape(item.name)} - {STATUS_LABELS[item.status]}"
        if item.submission_date:
            line += f"\n   📅 Due: {format_due(item.submission_date, today)}"
        lines.append(line)

    lines.append("\nTap a button to change an item's status.")
    return "\n".join(lines)


def format_written_tally(tally: WrittenTally) -> str:
    if tally.count == 0:
        return "Nothing written and waiting for submission. 🎉"

    lines = [f"<b>✍️ Written, not yet submitted: {tally.count}</b>\n"]
    lines.extend(f"• {escape(label)}" for label in tally.labels)
    return "\n".join(lines)


def format_preferences(prefs: ReminderPreferences) -> str:
    times = ", ".join(str(t) for t in prefs.times) or "none"
    return (
        f"<b>Reminder Settings</b>\n\n"
        f"🔔 Daily check-in: {'on' if prefs.enabled else 'off'}\n"
        f"🕒 Times: {times}\n"
        f"📆 Days: {format_weekdays(prefs.active_weekdays)}\n\n"
        "Submission reminders are sent 2 days before (09:00), the day before "
        "(18:00) and on the day (08:00) for written or not completed items.\n\n"
        "<b>Commands to change:</b>\n"
        "• /reminders <code>on|off</code>\n"
        "• /times <code>08:00 18:30</code>\n"
        "• /days <code>mon wed fri</code> or <code>all</code>"
    )


def format_test_title(test_score: TestScore) -> str:
    return f"{test_score.test_type} - {test_score.year} SEM {test_score.semester}"


def format_test_list(test_scores: list[TestScore]) -> str:
    if not test_scores:
        return "No tests recorded yet.\n\nAdd one: <code>/addtest UT1 SE 3</code>"

    blocks = [f"<b>Test Scores ({len(test_scores)})</b>"]
    for test_score in test_scores:
        lines = [f"<b>{format_test_title(test_score)}</b> (ID: <code>{test_score.id}</code>)"]
        if test_score.subjects:
            lines.extend(
                f"{escape(s.name)}: {s.marks_obtained:g}/{s.total_marks:g}"
                for s in test_score.subjects
            )
        else:
            lines.append("No subjects added yet")
        blocks.append("\n".join(lines))

    return "\n\n".join(blocks)


def format_test_detail(test_score: TestScore, palette: dict[str, str]) -> str:
    lines = [f"<b>{format_test_title(test_score)}</b> (ID: <code>{test_score.id}</code>)"]

    stats = overall_stats(test_score)
    if stats:
        lines.append(
            f"\n<b>Overall Performance</b>\n"
            f"{palette[stats.grade]} {stats.total_obtained:g}/{stats.total_marks:g} "
            f"({stats.percentage}%)"
        )

    if not test_score.subjects:
        lines.append(
            f"\nNo subjects added yet.\n"
            f"Add one: <code>/score {test_score.id} 42 50 Physics</code>"
        )
        return "\n".join(lines)

    lines.append("")
    for s in test_score.subjects:
        pct = percentage(s.marks_obtained, s.total_marks)
        lines.append(
            f"{palette[grade_band(pct)]} <b>{escape(s.name)}</b> (ID: <code>{s.id}</code>)\n"
            f"   {s.marks_obtained:g}/{s.total_marks:g} - {pct}%"
        )
    return "\n".join(lines)


def format_welcome_message() -> str:
    """Format the welcome message for /start."""
    return """
<b>Welcome to HomeworkBugger!</b> 📚

I keep track of your assignments, experiments and test scores, and I'll remind you before submissions are due.

<b>Quick Start:</b>
• /add assignment 5 Data Structures - Track a subject
• /assignments or /experiments - See your subjects
• /due - Set a submission date
• /help - Full command list

Reminders will be sent to this chat.
""".strip()


def format_help_message() -> str:
    """Format the help message."""
    return """
<b>HomeworkBugger Commands 📚</b>

<b>Subjects:</b>
/add &lt;assignment|experiment&gt; &lt;count&gt; &lt;name&gt; [code] - Add a subject
   e.g. <code>/add experiment 8 Physics Lab [PHY101]</code>
/assignments - All assignment subjects
/experiments - All experiment subjects
/subject &lt;id&gt; - Items with status buttons
/status &lt;id&gt; &lt;item&gt; &lt;status&gt; - completed, written, not_completed, not_given
/due &lt;id&gt; &lt;item&gt; &lt;date|clear&gt; - e.g. <code>/due 1712 3 2026-03-15</code>
/total &lt;id&gt; &lt;count&gt; - Change the number of items
/delete &lt;id&gt; - Delete a subject
/written - Items written but not yet submitted

<b>Test Scores:</b>
/tests - All tests
/addtest &lt;UT1|UT2|Finals&gt; &lt;FE|SE|TE|BE&gt; &lt;1-8&gt; - Add a test
/test &lt;id&gt; - Test details
/score &lt;test id&gt; &lt;obtained&gt; &lt;total&gt; &lt;subject&gt; - Add marks
/unscore &lt;test id&gt; &lt;subject id&gt; - Remove marks

<b>Settings:</b>
/reminders [on|off] - Daily check-in reminder
/times &lt;HH:MM&gt; ... - Check-in times
/days &lt;mon tue ...|all|weekdays&gt; - Check-in days
/theme [light|dark] - Status marker style
/clear - Delete all tracked data
""".strip()
