"""Main entry point for HomeworkBugger bot."""

import logging
import sys

from telegram.ext import Application, CallbackQueryHandler, CommandHandler

from homeworkbugger.bot.callbacks import callback_router
from homeworkbugger.bot.handlers import (
    add_command,
    addtest_command,
    assignments_command,
    clear_command,
    days_command,
    delete_command,
    due_command,
    experiments_command,
    help_command,
    reminders_command,
    score_command,
    start_command,
    status_command,
    subject_command,
    test_command,
    tests_command,
    theme_command,
    times_command,
    total_command,
    unscore_command,
    written_command,
)
from homeworkbugger.config import Config
from homeworkbugger.db.migrations import run_migrations
from homeworkbugger.db.repository import Repository
from homeworkbugger.engine.delivery import JobQueueDelivery
from homeworkbugger.engine.planner import resync_reminders
from homeworkbugger.engine.state import AppState
from homeworkbugger.utils.error_handler import error_handler

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, Config.LOG_LEVEL),
    stream=sys.stdout,
)

logger = logging.getLogger(__name__)

COMMANDS = {
    "start": start_command,
    "help": help_command,
    "assignments": assignments_command,
    "experiments": experiments_command,
    "add": add_command,
    "subject": subject_command,
    "status": status_command,
    "due": due_command,
    "total": total_command,
    "delete": delete_command,
    "written": written_command,
    "reminders": reminders_command,
    "times": times_command,
    "days": days_command,
    "theme": theme_command,
    "clear": clear_command,
    "tests": tests_command,
    "addtest": addtest_command,
    "test": test_command,
    "score": score_command,
    "unscore": unscore_command,
}


async def post_init(application: Application) -> None:
    """Initialize bot resources after application is created."""
    # Initialize database
    await run_migrations(Config.DATABASE_PATH)

    repo = Repository(Config.DATABASE_PATH)
    await repo.connect()
    application.bot_data["repo"] = repo

    # Theme and reminder preferences
    application.bot_data["state"] = await AppState.load(repo)

    if application.job_queue is None:
        raise RuntimeError(
            "JobQueue unavailable; install python-telegram-bot[job-queue]"
        )

    delivery = JobQueueDelivery(application.job_queue, repo, Config.TIMEZONE)
    application.bot_data["delivery"] = delivery
    await delivery.ensure_channel()

    # Jobs live in memory only, so every start schedules everything again
    await resync_reminders(repo, delivery, tz=Config.TIMEZONE)

    logger.info("HomeworkBugger initialized successfully")


async def post_shutdown(application: Application) -> None:
    """Cleanup resources on shutdown."""
    repo: Repository = application.bot_data.get("repo")
    if repo:
        await repo.close()

    logger.info("HomeworkBugger shut down")


def main() -> None:
    """Start the bot."""
    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    application = (
        Application.builder()
        .token(Config.TELEGRAM_BOT_TOKEN)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )

    for name, callback in COMMANDS.items():
        application.add_handler(CommandHandler(name, callback))

    # Callback queries (buttons)
    application.add_handler(CallbackQueryHandler(callback_router))

    application.add_error_handler(error_handler)

    logger.info("Starting HomeworkBugger bot...")
    application.run_polling(allowed_updates=["message", "callback_query"])


if __name__ == "__main__":
    main()
