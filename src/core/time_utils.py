"""Time and duration helpers — pure functions, no I/O.

All instants are integer milliseconds since the Unix epoch.
"""

from __future__ import annotations

import math
import time

from src.core.errors import InvalidDurationError, ValidationError

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def hours_to_ms(hours: float) -> int:
    return int(round(hours * MS_PER_HOUR))


def fast_duration_ms(hours: float) -> int:
    """Convert a fast length to ms, rejecting anything that is not at least 1 ms.

    Raises ValidationError for NaN, infinities and values that round to 0.
    """
    if hours is None or not math.isfinite(hours):
        raise ValidationError("Fasting hours must be a positive number")
    target = hours_to_ms(hours)
    if target <= 0:
        raise ValidationError("Fasting hours must be a positive number")
    return target


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return math.floor(value + 0.5)


def format_clock(ms: int) -> str:
    """Format a duration as HH:MM:SS.

    Hours are not wrapped at 24, so a 36-hour fast reads "36:00:00".
    """
    total_seconds = max(0, int(ms)) // MS_PER_SECOND
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_duration(ms: int) -> str:
    """Format a duration as "<h>h <m>m", e.g. "16h 5m"."""
    ms = max(0, int(ms))
    hours = ms // MS_PER_HOUR
    minutes = (ms % MS_PER_HOUR) // MS_PER_MINUTE
    return f"{hours}h {minutes}m"


def elapsed(now: int, start_time: int) -> int:
    return max(0, now - start_time)


def remaining(now: int, start_time: int, target_duration: int) -> int:
    return max(0, target_duration - elapsed(now, start_time))


def progress_ratio(elapsed_ms: int, target_duration: int) -> float:
    """Fraction of the target reached, clamped to [0, 1].

    Raises InvalidDurationError when target_duration is not positive.
    """
    if target_duration <= 0:
        raise InvalidDurationError(
            f"Target duration must be positive, got {target_duration}"
        )
    ratio = elapsed_ms / target_duration
    return min(max(ratio, 0.0), 1.0)


def percentage(ratio: float) -> int:
    """Convert a ratio to a whole percentage in [0, 100]."""
    return min(max(round_half_up(ratio * 100), 0), 100)
