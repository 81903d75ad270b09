"""Fasting reminder planner — pure business logic.

Works out which reminders a fast should get and when they fire. Delivery is
left to a ReminderPort adapter.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.core.time_utils import MS_PER_HOUR
from src.data.models import FastingSession


@dataclass
class Reminder:
    """A single reminder to deliver at fire_at (epoch ms)."""

    kind: str          # "halfway" | "one_hour_left" | "complete"
    fire_at: int
    title: str
    body: str


def plan_reminders(session: FastingSession, now: int) -> list[Reminder]:
    """Return the reminders for a fast that are still in the future.

    Halfway, one hour left (only for fasts longer than an hour) and
    completion, ordered by fire time. Instants at or before `now` are
    dropped rather than fired late.
    """
    end = session.target_end
    candidates = [
        Reminder(
            kind="halfway",
            fire_at=session.start_time + session.target_duration // 2,
            title="Halfway There!",
            body="You're halfway through your fast! Keep going strong!",
        ),
    ]
    if session.target_duration > MS_PER_HOUR:
        candidates.append(Reminder(
            kind="one_hour_left",
            fire_at=end - MS_PER_HOUR,
            title="Almost Done!",
            body="Just 1 hour left in your fast! You're almost there!",
        ))
    candidates.append(Reminder(
        kind="complete",
        fire_at=end,
        title="Fasting Complete! 🎉",
        body="Congratulations! You have successfully completed your fast.",
    ))

    upcoming = [r for r in candidates if r.fire_at > now]
    upcoming.sort(key=lambda r: r.fire_at)
    return upcoming


def format_reminder(reminder: Reminder) -> str:
    return f"*{reminder.title}*\n{reminder.body}"
