"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides common fixtures like temp DBs and a fixed clock.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("OWNER_USER_ID", "12345")
os.environ.setdefault("DATABASE_PATH", ":memory:")

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

# Monday 2026-01-05 09:00 UTC
MONDAY_9AM = int(datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc).timestamp() * 1000)


@pytest.fixture
def t0():
    """A fixed 'now' on a Monday morning (UTC), in epoch ms."""
    return MONDAY_9AM


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_phoenix.db")


@pytest.fixture
def session_db(tmp_db_path):
    from src.data.db import SessionDB
    return SessionDB(db_path=tmp_db_path)


@pytest.fixture
def user_db(tmp_db_path):
    from src.data.db import UserDB
    return UserDB(db_path=tmp_db_path)


@pytest.fixture
def challenge_db(tmp_db_path):
    from src.data.db import ChallengeDB
    return ChallengeDB(db_path=tmp_db_path)


@pytest.fixture
def ritual_db(tmp_db_path):
    from src.data.db import RitualDB
    return RitualDB(db_path=tmp_db_path)


@pytest.fixture
def journal_db(tmp_db_path):
    from src.data.db import JournalDB
    return JournalDB(db_path=tmp_db_path)


@pytest.fixture
def reminders():
    """A ReminderPort double."""
    port = AsyncMock()
    port.schedule_reminders = AsyncMock(return_value=["halfway", "one_hour_left", "complete"])
    port.cancel_reminders = AsyncMock(return_value=None)
    return port


@pytest.fixture
def engine(session_db, reminders):
    from src.core.fasting import FastingEngine
    return FastingEngine(session_db, reminders)
