"""Notification delivery on top of the bot's job queue.

The planner talks to a delivery collaborator through six calls:
``request_permission``, ``ensure_channel``, ``schedule_recurring``,
``schedule_one_shot``, ``cancel`` and ``list_scheduled``. Handles are opaque
job names.
"""

import logging
import uuid
from datetime import time
from html import escape
from typing import List, Protocol
from zoneinfo import ZoneInfo

from telegram import BotCommand
from telegram.error import TelegramError
from telegram.ext import ContextTypes, JobQueue

from homeworkbugger.db.models import ScheduledNotification, ScheduleRequest
from homeworkbugger.db.repository import Repository
from homeworkbugger.utils.constants import BOT_COMMANDS, WEEKDAY_NAMES

logger = logging.getLogger(__name__)


class Delivery(Protocol):
    """What the planner needs from a notification backend."""

    async def request_permission(self) -> bool: ...

    async def ensure_channel(self) -> None: ...

    async def schedule_recurring(self, request: ScheduleRequest) -> str: ...

    async def schedule_one_shot(self, request: ScheduleRequest) -> str: ...

    async def cancel(self, handle: str) -> None: ...

    async def list_scheduled(self) -> List[ScheduledNotification]: ...


def describe_trigger(request: ScheduleRequest) -> str:
    """Human-readable trigger, e.g. "daily 18:00" or "weekly Mon 09:30"."""
    if request.at is not None:
        return f"once {request.at.strftime('%Y-%m-%d %H:%M')}"

    clock = f"{request.hour:02d}:{request.minute:02d}"
    if request.weekday is None:
        return f"daily {clock}"
    return f"weekly {WEEKDAY_NAMES[request.weekday - 1].title()} {clock}"


def format_notification(request: ScheduleRequest) -> str:
    """HTML message text; titles and bodies carry user-entered subject names."""
    return f"🔔 <b>{escape(request.title)}</b>\n\n{escape(request.body)}"


async def deliver_notification(context: ContextTypes.DEFAULT_TYPE) -> None:
    """Job callback: send the scheduled request to the owner chat."""
    job = context.job
    request: ScheduleRequest = job.data  # type: ignore

    try:
        await context.bot.send_message(
            chat_id=job.chat_id,  # type: ignore
            text=format_notification(request),
            parse_mode="HTML",
        )
        logger.info(f"Delivered notification {job.name}: {request.body}")
    except TelegramError as e:
        logger.error(f"Failed to deliver notification {job.name}: {e}")


class JobQueueDelivery:
    """Delivery collaborator backed by python-telegram-bot's JobQueue."""

    def __init__(self, job_queue: JobQueue, repo: Repository, timezone: str):
        self.job_queue = job_queue
        self.repo = repo
        self.tz = ZoneInfo(timezone)
        self.chat_id: int | None = None

    async def request_permission(self) -> bool:
        """Reminders can only be sent once the owner has started the bot."""
        self.chat_id = await self.repo.get_owner_chat_id()
        return self.chat_id is not None

    async def ensure_channel(self) -> None:
        """Register the command menu shown in Telegram clients."""
        try:
            await self.job_queue.application.bot.set_my_commands(
                [BotCommand(command, description) for command, description in BOT_COMMANDS]
            )
        except TelegramError as e:
            logger.warning(f"Could not register bot commands: {e}")

    async def schedule_recurring(self, request: ScheduleRequest) -> str:
        handle = uuid.uuid4().hex

        # Requests number weekdays 1-7 from Sunday; JobQueue uses 0-6 from Sunday
        if request.weekday is None:
            days = tuple(range(7))
        else:
            days = (request.weekday - 1,)

        self.job_queue.run_daily(
            deliver_notification,
            time=time(request.hour, request.minute, tzinfo=self.tz),  # type: ignore
            days=days,
            data=request,
            name=handle,
            chat_id=self.chat_id,
        )
        logger.debug(f"Scheduled {describe_trigger(request)} as {handle}")
        return handle

    async def schedule_one_shot(self, request: ScheduleRequest) -> str:
        handle = uuid.uuid4().hex
        self.job_queue.run_once(
            deliver_notification,
            when=request.at,  # type: ignore
            data=request,
            name=handle,
            chat_id=self.chat_id,
        )
        logger.debug(f"Scheduled {describe_trigger(request)} as {handle}")
        return handle

    async def cancel(self, handle: str) -> None:
        jobs = self.job_queue.get_jobs_by_name(handle)
        if not jobs:
            raise KeyError(handle)
        for job in jobs:
            job.schedule_removal()

    async def list_scheduled(self) -> List[ScheduledNotification]:
        scheduled = []
        for job in self.job_queue.jobs():
            request = job.data
            if not isinstance(request, ScheduleRequest) or job.removed:
                continue
            scheduled.append(
                ScheduledNotification(
                    handle=job.name,  # type: ignore
                    title=request.title,
                    body=request.body,
                    trigger=describe_trigger(request),
                )
            )
        return scheduled
