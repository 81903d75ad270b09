"""
Phoenix Tracker — Ritual Tracking.

Rituals are recurring habits scheduled on a set of weekdays at a wall-clock
time. They share the per-day ledger with challenges, but only scheduled
days count towards adherence. Toggling an unscheduled day is accepted here;
it just never affects adherence.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import TYPE_CHECKING

from src.core import progress as ledger
from src.core.errors import ValidationError
from src.core.time_utils import round_half_up
from src.data.models import WEEKDAYS, Ritual, new_id

if TYPE_CHECKING:
    from src.data.db import RitualDB

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def create_ritual(
    title: str,
    description: str,
    days: list[str],
    now: int,
    time: str = "08:00",
) -> Ritual:
    """Validate input and build a new active ritual."""
    if not title or not title.strip():
        raise ValidationError("Ritual title is required")
    if not description or not description.strip():
        raise ValidationError("Ritual description is required")
    if not days:
        raise ValidationError("Pick at least one day for the ritual")

    tags = [d.strip().lower() for d in days]
    unknown = [d for d in tags if d not in WEEKDAYS]
    if unknown:
        raise ValidationError(f"Unknown weekday(s): {', '.join(unknown)}")
    if not _TIME_RE.match(time):
        raise ValidationError(f"Ritual time must be HH:MM, got {time!r}")

    # Keep calendar order and drop duplicates
    ordered = [d for d in WEEKDAYS if d in tags]
    return Ritual(
        id=new_id(),
        title=title.strip(),
        description=description.strip(),
        time=time,
        days=ordered,
        is_active=True,
        progress=[],
    )


def is_scheduled(ritual: Ritual, when: int) -> bool:
    return ledger.weekday_tag(when) in ritual.days


def toggle_ritual_progress(ritual: Ritual, when: int) -> Ritual:
    return replace(ritual, progress=ledger.toggle_day(ritual.progress, when))


def toggle_ritual_active(ritual: Ritual) -> Ritual:
    return replace(ritual, is_active=not ritual.is_active)


def ritual_adherence(ritual: Ritual) -> int:
    """Percentage of tracked scheduled days that were completed (0 if none)."""
    scheduled = [e for e in ritual.progress if is_scheduled(ritual, e.date)]
    if not scheduled:
        return 0
    return round_half_up(100 * ledger.completed_count(scheduled) / len(scheduled))


class RitualService:
    """Ritual operations backed by a RitualDB."""

    def __init__(self, store: RitualDB) -> None:
        self._store = store

    def create(self, now: int, **fields) -> Ritual:
        ritual = create_ritual(now=now, **fields)
        self._store.save_ritual(ritual)
        logger.info("Ritual created: %s '%s' on %s", ritual.id, ritual.title, ",".join(ritual.days))
        return ritual

    def toggle_progress(self, ritual_id: str, when: int) -> Ritual:
        ritual = self._require(ritual_id)
        if not is_scheduled(ritual, when):
            logger.debug("Ritual %s toggled on unscheduled day %s", ritual_id, ledger.day_key(when))
        updated = toggle_ritual_progress(ritual, when)
        self._store.save_ritual(updated)
        return updated

    def toggle_active(self, ritual_id: str) -> Ritual:
        updated = toggle_ritual_active(self._require(ritual_id))
        self._store.save_ritual(updated)
        logger.info("Ritual %s is now %s", ritual_id, "active" if updated.is_active else "paused")
        return updated

    def list_all(self, active_only: bool = False) -> list[Ritual]:
        return self._store.list_rituals(active_only=active_only)

    def get(self, ritual_id: str) -> Ritual:
        return self._require(ritual_id)

    def _require(self, ritual_id: str) -> Ritual:
        ritual = self._store.get_ritual(ritual_id)
        if ritual is None:
            raise ValidationError(f"Ritual {ritual_id} not found")
        return ritual
