"""Date-keyed completion ledger shared by challenges and rituals.

Pure business logic, no I/O. Entries are bucketed by UTC calendar day:
two timestamps belong to the same day when their UTC year/month/day match.
Lists are never mutated in place; every operation returns a new list.
"""

from __future__ import annotations

import math
from dataclasses import replace
from datetime import date, datetime, timezone

from src.core.time_utils import MS_PER_DAY
from src.data.models import WEEKDAYS, ProgressEntry


def day_key(ms: int) -> date:
    """Return the UTC calendar day containing the instant."""
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).date()


def weekday_tag(ms: int) -> str:
    """Return the weekday tag ("mon".."sun") of the instant's UTC day."""
    return WEEKDAYS[day_key(ms).weekday()]


def find_entry(entries: list[ProgressEntry], when: int) -> int | None:
    """Index of the entry on the same calendar day as `when`, or None."""
    target = day_key(when)
    for i, entry in enumerate(entries):
        if day_key(entry.date) == target:
            return i
    return None


def toggle_day(entries: list[ProgressEntry], when: int) -> list[ProgressEntry]:
    """Flip the entry for `when`'s day, or append a completed one."""
    index = find_entry(entries, when)
    updated = list(entries)
    if index is None:
        updated.append(ProgressEntry(date=when, is_completed=True))
    else:
        current = updated[index]
        updated[index] = replace(current, is_completed=not current.is_completed)
    return updated


def is_completed_on(entries: list[ProgressEntry], when: int) -> bool:
    index = find_entry(entries, when)
    return index is not None and entries[index].is_completed


def completed_count(entries: list[ProgressEntry]) -> int:
    return sum(1 for e in entries if e.is_completed)


def completion_ratio(
    entries: list[ProgressEntry], required_count: int | None = None,
) -> float:
    """Progress towards required_count, or the completed share of tracked days.

    An empty ledger is 0, never NaN.
    """
    done = completed_count(entries)
    if required_count is not None:
        if required_count <= 0:
            return 1.0
        return min(done / required_count, 1.0)
    if not entries:
        return 0.0
    return done / len(entries)


def days_remaining_label(end_date: int | None, now: int) -> str:
    """Human label for the time left until end_date."""
    if end_date is None:
        return "Ongoing"
    days = math.ceil((end_date - now) / MS_PER_DAY)
    if days > 0:
        return f"{days} days remaining"
    return "Completed"


def recent_days(now: int, count: int = 7) -> list[int]:
    """Timestamps for the trailing `count` days ending today, oldest first."""
    return [now - i * MS_PER_DAY for i in range(count - 1, -1, -1)]
