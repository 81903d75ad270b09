"""Storage port — abstract interface for fasting-session persistence.

Core modules depend on this protocol, never on a specific store.
"""

from __future__ import annotations

from typing import Protocol

from src.data.models import FastingSession


class SessionStore(Protocol):
    """Abstract session store used by the fasting engine.

    Writes are durable before the call returns. get_active_session reflects
    the latest saved session whose end_time is unset.
    """

    def save_session(self, session: FastingSession) -> None: ...

    def get_active_session(self) -> FastingSession | None: ...

    def get_all_sessions(self) -> list[FastingSession]: ...

    def delete_session(self, session_id: str) -> bool: ...
