"""Global error handler for the bot."""

import logging
import traceback

import aiosqlite
from telegram import Update
from telegram.error import BadRequest, Forbidden, TimedOut
from telegram.ext import ContextTypes

logger = logging.getLogger(__name__)

GENERIC_ERROR = (
    "😅 Oops! Something went wrong.\n\n"
    "The error has been logged. Please try again or use /help for assistance."
)


def user_message_for(error: BaseException | None) -> str | None:
    """Reply text for an error, or None when the user can't be reached."""
    if isinstance(error, Forbidden):
        return None
    if isinstance(error, BadRequest):
        return (
            "❌ Invalid request.\n\n"
            "Please check your command syntax and try again. Use /help for examples."
        )
    if isinstance(error, TimedOut):
        return "⏱️ Request timed out.\n\nPlease try again in a moment."
    if isinstance(error, aiosqlite.Error):
        return (
            "💾 Couldn't save your changes.\n\n"
            "Nothing was changed, reminders included. Please try again."
        )
    return GENERIC_ERROR


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Log the failure and tell the owner what happened, if possible."""
    error = context.error
    tb_string = "".join(traceback.format_exception(None, error, error.__traceback__))  # type: ignore
    logger.error(f"Exception while handling an update:\n{tb_string}")

    if not isinstance(update, Update) or not update.effective_message:
        return

    message = user_message_for(error)
    if message is None:
        logger.warning("Bot was blocked by the user; not replying")
        return

    try:
        await update.effective_message.reply_text(message)
    except Exception as e:
        logger.error(f"Failed to send error message to user: {e}")
