"""
Phoenix Tracker — Challenge Tracking.

Challenges are multi-day goals tracked with a per-day completion ledger.
A challenge with `days_required` and a trophy awards the trophy once enough
days are completed; the award is never revoked automatically.

Pure functions build and transform Challenge values; ChallengeService adds
persistence and the hand-off to the fasting engine for fasting challenges.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from src.core import progress as ledger
from src.core.errors import ValidationError
from src.core.time_utils import MS_PER_DAY
from src.data.models import FREQUENCIES, Challenge, FastingPlan, Trophy, new_id

if TYPE_CHECKING:
    from src.core.fasting import FastingEngine
    from src.data.db import ChallengeDB

logger = logging.getLogger(__name__)

# Challenges restarted without days_required run for a month.
DEFAULT_CHALLENGE_DAYS = 30


def create_challenge(
    title: str,
    description: str,
    now: int,
    frequency: str = "daily",
    duration_days: int | None = None,
    kind: str = "custom",
    fasting: FastingPlan | None = None,
    days_required: int | None = None,
    trophy: Trophy | None = None,
) -> Challenge:
    """Validate input and build a new challenge starting at `now`."""
    if not title or not title.strip():
        raise ValidationError("Challenge title is required")
    if not description or not description.strip():
        raise ValidationError("Challenge description is required")
    if frequency not in FREQUENCIES:
        raise ValidationError(f"Unknown frequency: {frequency!r}")
    if duration_days is not None and duration_days <= 0:
        raise ValidationError("Challenge duration must be a positive number of days")
    if days_required is not None and days_required <= 0:
        raise ValidationError("Required days must be a positive number")

    end_date = now + duration_days * MS_PER_DAY if duration_days is not None else None
    return Challenge(
        id=new_id(),
        title=title.strip(),
        description=description.strip(),
        frequency=frequency,
        start_date=now,
        end_date=end_date,
        progress=[],
        kind=kind,
        fasting=fasting,
        days_required=days_required,
        trophy=trophy,
    )


def challenge_progress(challenge: Challenge) -> float:
    return ledger.completion_ratio(challenge.progress, challenge.days_required)


def toggle_challenge_progress(challenge: Challenge, when: int) -> Challenge:
    """Toggle `when`'s day and award the trophy if the target is now met."""
    entries = ledger.toggle_day(challenge.progress, when)
    trophy = challenge.trophy
    if (
        trophy is not None
        and not trophy.awarded
        and challenge.days_required is not None
        and ledger.completed_count(entries) >= challenge.days_required
    ):
        trophy = replace(trophy, awarded=True)
        logger.info("Trophy '%s' awarded for challenge %s", trophy.name, challenge.id)
    return replace(challenge, progress=entries, trophy=trophy)


def restart_challenge(challenge: Challenge, now: int) -> Challenge:
    """Reset the challenge window to start at `now`.

    The window is days_required + 1 days (one day of slack), or a month.
    """
    if challenge.days_required is not None:
        end_date = now + (challenge.days_required + 1) * MS_PER_DAY
    else:
        end_date = now + DEFAULT_CHALLENGE_DAYS * MS_PER_DAY
    return replace(challenge, start_date=now, end_date=end_date)


def preset_challenges(now: int) -> list[Challenge]:
    """The built-in challenge catalog offered to new users."""
    return [
        Challenge(
            id="preset-if-intro",
            title="Intro to I.F. Challenge",
            description="Complete one 12 hr, 16 hr or 20 hour fast.",
            frequency="daily",
            start_date=now,
            end_date=now + 2 * MS_PER_DAY,
            kind="fasting",
            fasting=FastingPlan(duration_hours=16, fasting_type="intermittent"),
            days_required=1,
            trophy=Trophy(
                name="I.F. Beginner",
                description="Successfully completed your first intermittent fast!",
            ),
        ),
        Challenge(
            id="preset-if-3day",
            title="3-Day Fasting Challenge",
            description="Complete 3 consecutive days of a 16 or 20 hour fast.",
            frequency="daily",
            start_date=now,
            end_date=now + 4 * MS_PER_DAY,
            kind="fasting",
            fasting=FastingPlan(duration_hours=16, fasting_type="intermittent"),
            days_required=3,
            trophy=Trophy(
                name="Fasting Warrior",
                description="Successfully completed 3 consecutive days of intermittent fasting!",
            ),
        ),
        Challenge(
            id="preset-omad",
            title="OMAD Challenge",
            description="Eat only one meal a day for 1 Day.",
            frequency="daily",
            start_date=now,
            end_date=now + 2 * MS_PER_DAY,
            kind="fasting",
            fasting=FastingPlan(duration_hours=23, fasting_type="omad"),
            days_required=1,
            trophy=Trophy(
                name="OMAD Initiate",
                description="Successfully completed your first day of One Meal A Day!",
            ),
        ),
        Challenge(
            id="preset-omad-3day",
            title="3-Day OMAD Challenge",
            description="Eat only one meal a day for 3 consecutive days.",
            frequency="daily",
            start_date=now,
            end_date=now + 4 * MS_PER_DAY,
            kind="fasting",
            fasting=FastingPlan(duration_hours=23, fasting_type="omad"),
            days_required=3,
            trophy=Trophy(
                name="OMAD Master",
                description="Successfully completed 3 consecutive days of One Meal A Day!",
            ),
        ),
        Challenge(
            id="preset-personalized",
            title="Personalized Challenge",
            description="Create a custom fasting challenge with AI assistance.",
            frequency="daily",
            start_date=now,
            end_date=None,
            kind="ai-generated",
            trophy=Trophy(
                name="Challenge Creator",
                description="Successfully created and completed your personalized challenge!",
            ),
        ),
    ]


class ChallengeService:
    """Challenge operations backed by a ChallengeDB.

    Each operation computes the new challenge first and only returns it once
    the store has accepted it.
    """

    def __init__(self, store: ChallengeDB, fasting: FastingEngine | None = None) -> None:
        self._store = store
        self._fasting = fasting

    def seed_presets(self, now: int) -> int:
        """Insert catalog challenges that are not stored yet. Returns count added."""
        added = 0
        for preset in preset_challenges(now):
            if self._store.get_challenge(preset.id) is None:
                self._store.save_challenge(preset)
                added += 1
        if added:
            logger.info("Seeded %d preset challenges", added)
        return added

    def create(self, now: int, **fields) -> Challenge:
        challenge = create_challenge(now=now, **fields)
        self._store.save_challenge(challenge)
        logger.info("Challenge created: %s '%s'", challenge.id, challenge.title)
        return challenge

    def toggle_progress(self, challenge_id: str, when: int) -> Challenge:
        challenge = self._require(challenge_id)
        updated = toggle_challenge_progress(challenge, when)
        self._store.save_challenge(updated)
        return updated

    async def start(self, challenge_id: str, now: int) -> Challenge:
        """Restart the challenge window; fasting challenges also start a fast.

        The fast is started first: if it is refused (e.g. one is already
        running) the stored challenge is left untouched. If saving the
        challenge then fails, the fast is deleted again before re-raising.
        """
        challenge = self._require(challenge_id)
        restarted = restart_challenge(challenge, now)

        session = None
        if restarted.kind == "fasting" and self._fasting is not None:
            session = await self._fasting.start(restarted.fasting.duration_hours, now=now)

        try:
            self._store.save_challenge(restarted)
        except Exception:
            if session is not None:
                logger.warning("Saving challenge %s failed, discarding fast %s", restarted.id, session.id)
                await self._fasting.delete(session.id)
            raise
        logger.info("Challenge %s started, ends %s", restarted.id, restarted.end_date)
        return restarted

    def list_all(self) -> list[Challenge]:
        return self._store.list_challenges()

    def _require(self, challenge_id: str) -> Challenge:
        challenge = self._store.get_challenge(challenge_id)
        if challenge is None:
            raise ValidationError(f"Challenge {challenge_id} not found")
        return challenge
