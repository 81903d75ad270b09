"""
Phoenix Tracker — Fasting Session Engine.

A fast is either Idle (no active session) or Active (exactly one session
whose end_time is unset). The engine owns the in-memory active session and
keeps it in step with the SessionStore; reminders are scheduled through a
ReminderPort on start and cancelled on end.

The timer itself is a pure `tick` computation. Something outside the engine
(the bot's repeating job) calls `FastingEngine.poll` periodically, which
auto-completes the fast once its target is reached.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from src.core import time_utils
from src.core.errors import InvalidStateError, SessionAlreadyActiveError
from src.data.models import FastingSession

if TYPE_CHECKING:
    from src.ports.notification_port import ReminderPort
    from src.ports.storage_port import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class TickResult:
    """Timer snapshot for one point in time."""

    elapsed: int
    remaining: int
    progress_ratio: float
    percentage: int
    is_due: bool       # target reached


@dataclass
class HistoryStats:
    total_sessions: int          # ended sessions only
    completed_sessions: int
    completion_rate: float       # 0–100
    average_duration: float      # ms
    longest_fast: int            # ms


# ---------------------------------------------------------------------------
# Pure session transitions
# ---------------------------------------------------------------------------


def new_session(hours: float, now: int) -> FastingSession:
    """Build a fresh active session of `hours` starting at `now`."""
    target = time_utils.fast_duration_ms(hours)
    return FastingSession(
        id=str(now),
        start_time=now,
        target_duration=target,
        end_time=None,
        is_completed=False,
    )


def tick(session: FastingSession, now: int) -> TickResult:
    """Compute elapsed/remaining/progress for `session` at `now`.

    For an ended session the clock is frozen at its end_time.
    """
    clock = now if session.end_time is None else session.end_time
    spent = time_utils.elapsed(clock, session.start_time)
    ratio = time_utils.progress_ratio(spent, session.target_duration)
    return TickResult(
        elapsed=spent,
        remaining=time_utils.remaining(clock, session.start_time, session.target_duration),
        progress_ratio=ratio,
        percentage=time_utils.percentage(ratio),
        is_due=spent >= session.target_duration,
    )


def finish_session(
    session: FastingSession, now: int, completed_naturally: bool | None = None,
) -> FastingSession:
    """Return `session` ended at `now`.

    completed_naturally defaults to whether the target was reached.
    Raises InvalidStateError if the session has already ended.
    """
    if session.end_time is not None:
        raise InvalidStateError(f"Fast {session.id} has already ended")
    if completed_naturally is None:
        completed_naturally = tick(session, now).is_due
    return replace(session, end_time=now, is_completed=completed_naturally)


def summarize_history(sessions: list[FastingSession]) -> HistoryStats:
    """Aggregate stats over ended fasts; active ones are ignored."""
    ended = [s for s in sessions if s.end_time is not None]
    completed = sum(1 for s in sessions if s.is_completed)
    durations = [s.end_time - s.start_time for s in ended]

    total = len(ended)
    return HistoryStats(
        total_sessions=total,
        completed_sessions=completed,
        completion_rate=(completed / total) * 100 if total else 0.0,
        average_duration=sum(durations) / len(durations) if durations else 0.0,
        longest_fast=max(durations) if durations else 0,
    )


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class FastingEngine:
    """Runs one user's fasting timer against a store and a reminder channel."""

    def __init__(
        self,
        store: SessionStore,
        reminders: ReminderPort | None = None,
    ) -> None:
        self._store = store
        self._reminders = reminders
        self._active: FastingSession | None = None

    @property
    def active(self) -> FastingSession | None:
        return self._active

    def restore(self) -> FastingSession | None:
        """Reload the active session from the store (e.g. after a restart)."""
        self._active = self._store.get_active_session()
        if self._active is not None:
            logger.info("Restored active fast %s", self._active.id)
        return self._active

    async def resume_reminders(self) -> None:
        """Re-queue reminders for a restored fast; past instants are skipped."""
        if self._active is not None:
            await self._schedule(self._active)

    async def start(self, hours: float, now: int | None = None) -> FastingSession:
        """Start a new fast. Fails if one is already running."""
        if now is None:
            now = time_utils.now_ms()

        if self._active is not None or self._store.get_active_session() is not None:
            raise SessionAlreadyActiveError(
                "A fast is already running. End it before starting a new one."
            )

        session = new_session(hours, now)
        # Nothing is committed in memory until the store accepts the write.
        self._store.save_session(session)
        self._active = session
        logger.info("Fast started: %s (%s h)", session.id, hours)

        await self._schedule(session)
        return session

    def status(self, now: int | None = None) -> TickResult | None:
        """Timer snapshot for the active fast, or None when idle."""
        if self._active is None:
            return None
        if now is None:
            now = time_utils.now_ms()
        return tick(self._active, now)

    async def poll(self, now: int | None = None) -> TickResult | None:
        """Periodic tick. Auto-completes the active fast once it is due."""
        if now is None:
            now = time_utils.now_ms()
        result = self.status(now)
        if result is not None and result.is_due:
            logger.info("Fast %s reached its target, auto-completing", self._active.id)
            await self.end(now=now, completed_naturally=True)
        return result

    async def end(
        self, now: int | None = None, completed_naturally: bool | None = None,
    ) -> FastingSession:
        """End the active fast and return the ended session."""
        if self._active is None:
            raise InvalidStateError("No fast is running")
        if now is None:
            now = time_utils.now_ms()

        ended = finish_session(self._active, now, completed_naturally)
        self._store.save_session(ended)
        self._active = None
        logger.info(
            "Fast ended: %s (%s, %s)",
            ended.id,
            "completed" if ended.is_completed else "stopped early",
            time_utils.format_duration(ended.end_time - ended.start_time),
        )

        await self._cancel(ended.id)
        return ended

    async def delete(self, session_id: str) -> bool:
        """Remove a session from history, cancelling its reminders if active."""
        deleted = self._store.delete_session(session_id)
        if self._active is not None and self._active.id == session_id:
            self._active = None
            await self._cancel(session_id)
        return deleted

    def history(self) -> list[FastingSession]:
        return self._store.get_all_sessions()

    async def _schedule(self, session: FastingSession) -> None:
        if self._reminders is None:
            return
        try:
            handles = await self._reminders.schedule_reminders(session)
            logger.debug("Scheduled %d reminders for fast %s", len(handles), session.id)
        except Exception as exc:
            logger.warning("Failed to schedule reminders for fast %s: %s", session.id, exc)

    async def _cancel(self, session_id: str) -> None:
        if self._reminders is None:
            return
        try:
            await self._reminders.cancel_reminders(session_id)
        except Exception as exc:
            logger.warning("Failed to cancel reminders for fast %s: %s", session_id, exc)
