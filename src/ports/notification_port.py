"""Reminder port — abstract interface for fasting reminders.

Core modules depend on this protocol, never on a specific delivery channel.
Implementations own their own handle bookkeeping.
"""

from __future__ import annotations

from typing import Protocol

from src.data.models import FastingSession


class ReminderPort(Protocol):
    """Abstract reminder interface used by the fasting engine.

    schedule_reminders skips instants already in the past (not an error);
    cancel_reminders is idempotent.
    """

    async def schedule_reminders(self, session: FastingSession) -> list[str]: ...

    async def cancel_reminders(self, session_id: str) -> None: ...
