"""Error types raised by the tracking engines.

Every error is recoverable at the call site: callers surface the message to
the user and keep their previous state.
"""

from __future__ import annotations


class PhoenixError(Exception):
    """Base class for all tracker errors."""


class ValidationError(PhoenixError):
    """A precondition on user input failed (empty field, bad number, bad tag)."""


class InvalidDurationError(ValidationError):
    """A target duration of zero or less was used in a ratio computation."""


class InvalidStateError(PhoenixError):
    """The requested transition is not allowed from the current state."""


class SessionAlreadyActiveError(InvalidStateError):
    """A fast was started while another one is still running."""
