"""Telegram reminder adapter — implements ReminderPort.

Schedules fasting reminders as one-off JobQueue jobs that message the owner.
The session id -> job names map lives on the instance.
"""

from __future__ import annotations

import logging
from typing import Callable

from telegram.ext import ContextTypes, JobQueue

from src.core.reminders import Reminder, format_reminder, plan_reminders
from src.core.time_utils import MS_PER_SECOND, now_ms
from src.data.models import FastingSession

logger = logging.getLogger(__name__)


async def _send_reminder(context: ContextTypes.DEFAULT_TYPE) -> None:
    reminder: Reminder = context.job.data
    await context.bot.send_message(
        chat_id=context.job.chat_id,
        text=format_reminder(reminder),
        parse_mode="Markdown",
    )


class TelegramReminderScheduler:
    """Telegram implementation of ReminderPort."""

    def __init__(
        self,
        job_queue: JobQueue,
        chat_id: int,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._job_queue = job_queue
        self._chat_id = chat_id
        self._clock = clock
        self._jobs: dict[str, list[str]] = {}

    def handles_for(self, session_id: str) -> list[str]:
        return list(self._jobs.get(session_id, []))

    async def schedule_reminders(self, session: FastingSession) -> list[str]:
        """Queue the session's future reminders, replacing any earlier ones."""
        if session.id in self._jobs:
            await self.cancel_reminders(session.id)

        now = self._clock()
        names: list[str] = []
        for reminder in plan_reminders(session, now):
            name = f"fast:{session.id}:{reminder.kind}"
            self._job_queue.run_once(
                _send_reminder,
                when=(reminder.fire_at - now) / MS_PER_SECOND,
                data=reminder,
                name=name,
                chat_id=self._chat_id,
            )
            names.append(name)
            logger.info("Reminder '%s' scheduled for fast %s", reminder.kind, session.id)

        self._jobs[session.id] = names
        return list(names)

    async def cancel_reminders(self, session_id: str) -> None:
        """Remove any still-pending reminders for the session."""
        for name in self._jobs.pop(session_id, []):
            for job in self._job_queue.get_jobs_by_name(name):
                job.schedule_removal()
        logger.info("Cancelled reminders for fast %s", session_id)
