"""
Phoenix Tracker — Data Models.

Everything the tracker persists: fasting sessions, challenges, rituals,
journal entries and the single local user. All instants are epoch
milliseconds; calendar days are bucketed in UTC (see src.core.progress).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from pydantic import BaseModel

from src.core.errors import ValidationError
from src.core.time_utils import fast_duration_ms

FREQUENCIES = ("daily", "weekly", "monthly")
CHALLENGE_KINDS = ("fasting", "custom", "ai-generated")
FASTING_TYPES = ("intermittent", "omad")
WEEKDAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


def new_id() -> str:
    """Short random id for user-created entities, easy to type in a command."""
    return uuid.uuid4().hex[:8]


class UserStats(BaseModel):
    """Optional body/fitness profile, stored as a JSON column."""

    age: int | None = None
    weight: float | None = None
    height: float | None = None
    fitness_level: str | None = None   # "beginner" | "intermediate" | "advanced"
    goals: list[str] = []
    weekly_activity_level: int | None = None  # days per week


@dataclass
class User:
    """The device owner. There is exactly one per local store."""

    id: str
    email: str
    name: str
    profile_image: str | None = None   # URI of a stored image
    stats: UserStats | None = None
    transformation_drivers: list[str] = field(default_factory=list)


@dataclass
class FastingSession:
    """A single fasting attempt.

    end_time is None while the fast is running. is_completed is only True
    when the fast ended after reaching target_duration.
    """

    id: str
    start_time: int
    target_duration: int               # ms, fixed at creation
    end_time: int | None = None
    is_completed: bool = False

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    @property
    def target_end(self) -> int:
        return self.start_time + self.target_duration


@dataclass
class ProgressEntry:
    """One tracked calendar day of a challenge or ritual."""

    date: int
    is_completed: bool


@dataclass
class Trophy:
    name: str
    description: str
    awarded: bool = False
    image: str | None = None


@dataclass
class FastingPlan:
    """Fasting-specific part of a challenge with kind == "fasting"."""

    duration_hours: float
    fasting_type: str = "intermittent"  # "intermittent" | "omad"

    def __post_init__(self) -> None:
        fast_duration_ms(self.duration_hours)
        if self.fasting_type not in FASTING_TYPES:
            raise ValidationError(f"Unknown fasting type: {self.fasting_type!r}")


@dataclass
class Challenge:
    """A multi-day challenge tracked day by day.

    kind tags the variant: a "fasting" challenge must carry a FastingPlan,
    "custom" and "ai-generated" challenges must not.
    """

    id: str
    title: str
    description: str
    frequency: str                      # "daily" | "weekly" | "monthly"
    start_date: int
    end_date: int | None = None         # None = open-ended
    progress: list[ProgressEntry] = field(default_factory=list)
    kind: str = "custom"
    fasting: FastingPlan | None = None
    days_required: int | None = None
    trophy: Trophy | None = None

    def __post_init__(self) -> None:
        if self.kind not in CHALLENGE_KINDS:
            raise ValidationError(f"Unknown challenge kind: {self.kind!r}")
        if self.kind == "fasting" and self.fasting is None:
            raise ValidationError("A fasting challenge needs a fasting plan")
        if self.kind != "fasting" and self.fasting is not None:
            raise ValidationError(f"A {self.kind} challenge cannot carry a fasting plan")


@dataclass
class Ritual:
    """A recurring habit scheduled on specific weekdays."""

    id: str
    title: str
    description: str
    time: str                           # "HH:MM"
    days: list[str]                     # subset of WEEKDAYS
    is_active: bool = True
    progress: list[ProgressEntry] = field(default_factory=list)


@dataclass
class JournalEntry:
    id: str
    date: int
    title: str
    content: str
    mood: str | None = None
    tags: list[str] = field(default_factory=list)
