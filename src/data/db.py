"""
Phoenix Tracker — Local Database.

The device-local store: fasting history, the user profile, challenges,
rituals and journal entries all persist in a single SQLite file. Every
write is committed before the method returns.

Ledgers (progress lists) and nested values (trophy, fasting plan, user
stats, tags) are stored as JSON text columns.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import asdict
from pathlib import Path

from src.data.models import (
    Challenge,
    FastingPlan,
    FastingSession,
    JournalEntry,
    ProgressEntry,
    Ritual,
    Trophy,
    User,
    UserStats,
)

logger = logging.getLogger(__name__)


def _dump_progress(entries: list[ProgressEntry]) -> str:
    return json.dumps([asdict(e) for e in entries])


def _load_progress(raw: str | None) -> list[ProgressEntry]:
    if not raw:
        return []
    return [ProgressEntry(date=e["date"], is_completed=bool(e["is_completed"])) for e in json.loads(raw)]


class _SQLiteStore:
    """Connection handling shared by every table-specific store."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        raise NotImplementedError


class SessionDB(_SQLiteStore):
    """SQLite-backed fasting history. Implements SessionStore."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS fasting_sessions (
                    id              TEXT    PRIMARY KEY,
                    start_time      INTEGER NOT NULL,
                    end_time        INTEGER,
                    target_duration INTEGER NOT NULL,
                    is_completed    INTEGER NOT NULL DEFAULT 0
                )
            """)
        logger.debug("Fasting sessions table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_session(row: sqlite3.Row) -> FastingSession:
        return FastingSession(
            id=row["id"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            target_duration=row["target_duration"],
            is_completed=bool(row["is_completed"]),
        )

    def save_session(self, session: FastingSession) -> None:
        """Insert or replace a session (matched by id)."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO fasting_sessions
                    (id, start_time, end_time, target_duration, is_completed)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    session.id, session.start_time, session.end_time,
                    session.target_duration, int(session.is_completed),
                ),
            )
        logger.info("Fasting session saved: %s", session.id)

    def get_session(self, session_id: str) -> FastingSession | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM fasting_sessions WHERE id = ?", (session_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_session(row)

    def get_active_session(self) -> FastingSession | None:
        """Return the most recently started session that has not ended."""
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT * FROM fasting_sessions
                WHERE end_time IS NULL
                ORDER BY start_time DESC
                LIMIT 1
                """
            ).fetchone()
        if row is None:
            return None
        return self._row_to_session(row)

    def get_all_sessions(self) -> list[FastingSession]:
        """Return the full history, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM fasting_sessions ORDER BY start_time DESC"
            ).fetchall()
        return [self._row_to_session(r) for r in rows]

    def delete_session(self, session_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM fasting_sessions WHERE id = ?", (session_id,),
            )
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Fasting session %s deleted", session_id)
        return deleted

    def clear(self) -> None:
        """Drop all fasting history (debug/reset)."""
        with self._connect() as conn:
            conn.execute("DELETE FROM fasting_sessions")
        logger.info("All fasting sessions cleared")


class UserDB(_SQLiteStore):
    """SQLite-backed profile of the single local user."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id                     TEXT PRIMARY KEY,
                    email                  TEXT NOT NULL,
                    name                   TEXT NOT NULL,
                    profile_image          TEXT,
                    stats_json             TEXT,
                    transformation_drivers TEXT NOT NULL DEFAULT '[]'
                )
            """)
        logger.debug("Users table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        stats = None
        if row["stats_json"]:
            stats = UserStats.model_validate_json(row["stats_json"])
        return User(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            profile_image=row["profile_image"],
            stats=stats,
            transformation_drivers=json.loads(row["transformation_drivers"] or "[]"),
        )

    def save_user(self, user: User) -> None:
        """Store the user, replacing any previous profile."""
        with self._connect() as conn:
            conn.execute("DELETE FROM users WHERE id != ?", (user.id,))
            conn.execute(
                """
                INSERT OR REPLACE INTO users
                    (id, email, name, profile_image, stats_json, transformation_drivers)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    user.id, user.email, user.name, user.profile_image,
                    user.stats.model_dump_json() if user.stats else None,
                    json.dumps(user.transformation_drivers),
                ),
            )
        logger.info("User saved: %s", user.id)

    def get_user(self) -> User | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users LIMIT 1").fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def set_profile_image(self, image_uri: str) -> None:
        with self._connect() as conn:
            cursor = conn.execute("UPDATE users SET profile_image = ?", (image_uri,))
        if cursor.rowcount == 0:
            raise ValueError("No user data found to update profile image")
        logger.info("Profile image updated")

    def update_stats(self, stats: UserStats) -> None:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE users SET stats_json = ?", (stats.model_dump_json(),),
            )
        if cursor.rowcount == 0:
            raise ValueError("No user data found to update stats")
        logger.info("User stats updated")

    def clear(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM users")
        logger.info("User data cleared")


class ChallengeDB(_SQLiteStore):
    """SQLite-backed challenges with their progress ledgers."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS challenges (
                    id            TEXT    PRIMARY KEY,
                    title         TEXT    NOT NULL,
                    description   TEXT    NOT NULL,
                    frequency     TEXT    NOT NULL DEFAULT 'daily',
                    start_date    INTEGER NOT NULL,
                    end_date      INTEGER,
                    progress_json TEXT    NOT NULL DEFAULT '[]',
                    kind          TEXT    NOT NULL DEFAULT 'custom',
                    fasting_json  TEXT,
                    days_required INTEGER,
                    trophy_json   TEXT
                )
            """)
        logger.debug("Challenges table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_challenge(row: sqlite3.Row) -> Challenge:
        fasting = FastingPlan(**json.loads(row["fasting_json"])) if row["fasting_json"] else None
        trophy = Trophy(**json.loads(row["trophy_json"])) if row["trophy_json"] else None
        return Challenge(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            frequency=row["frequency"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            progress=_load_progress(row["progress_json"]),
            kind=row["kind"],
            fasting=fasting,
            days_required=row["days_required"],
            trophy=trophy,
        )

    def save_challenge(self, challenge: Challenge) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO challenges
                    (id, title, description, frequency, start_date, end_date,
                     progress_json, kind, fasting_json, days_required, trophy_json)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    challenge.id, challenge.title, challenge.description,
                    challenge.frequency, challenge.start_date, challenge.end_date,
                    _dump_progress(challenge.progress), challenge.kind,
                    json.dumps(asdict(challenge.fasting)) if challenge.fasting else None,
                    challenge.days_required,
                    json.dumps(asdict(challenge.trophy)) if challenge.trophy else None,
                ),
            )
        logger.debug("Challenge saved: %s", challenge.id)

    def get_challenge(self, challenge_id: str) -> Challenge | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM challenges WHERE id = ?", (challenge_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_challenge(row)

    def list_challenges(self) -> list[Challenge]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM challenges ORDER BY start_date, id"
            ).fetchall()
        return [self._row_to_challenge(r) for r in rows]

    def delete_challenge(self, challenge_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM challenges WHERE id = ?", (challenge_id,),
            )
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Challenge %s deleted", challenge_id)
        return deleted


class RitualDB(_SQLiteStore):
    """SQLite-backed rituals with their progress ledgers."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS rituals (
                    id            TEXT    PRIMARY KEY,
                    title         TEXT    NOT NULL,
                    description   TEXT    NOT NULL,
                    time          TEXT    NOT NULL DEFAULT '08:00',
                    days          TEXT    NOT NULL,
                    is_active     INTEGER NOT NULL DEFAULT 1,
                    progress_json TEXT    NOT NULL DEFAULT '[]'
                )
            """)
        logger.debug("Rituals table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_ritual(row: sqlite3.Row) -> Ritual:
        return Ritual(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            time=row["time"],
            days=[d for d in row["days"].split(",") if d],
            is_active=bool(row["is_active"]),
            progress=_load_progress(row["progress_json"]),
        )

    def save_ritual(self, ritual: Ritual) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO rituals
                    (id, title, description, time, days, is_active, progress_json)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    ritual.id, ritual.title, ritual.description, ritual.time,
                    ",".join(ritual.days), int(ritual.is_active),
                    _dump_progress(ritual.progress),
                ),
            )
        logger.debug("Ritual saved: %s", ritual.id)

    def get_ritual(self, ritual_id: str) -> Ritual | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM rituals WHERE id = ?", (ritual_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_ritual(row)

    def list_rituals(self, active_only: bool = False) -> list[Ritual]:
        query = "SELECT * FROM rituals"
        if active_only:
            query += " WHERE is_active = 1"
        query += " ORDER BY time, id"
        with self._connect() as conn:
            rows = conn.execute(query).fetchall()
        return [self._row_to_ritual(r) for r in rows]

    def delete_ritual(self, ritual_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM rituals WHERE id = ?", (ritual_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Ritual %s deleted", ritual_id)
        return deleted


class JournalDB(_SQLiteStore):
    """SQLite-backed journal entries."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS journal_entries (
                    id      TEXT    PRIMARY KEY,
                    date    INTEGER NOT NULL,
                    title   TEXT    NOT NULL,
                    content TEXT    NOT NULL,
                    mood    TEXT,
                    tags    TEXT    NOT NULL DEFAULT '[]'
                )
            """)
        logger.debug("Journal table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> JournalEntry:
        return JournalEntry(
            id=row["id"],
            date=row["date"],
            title=row["title"],
            content=row["content"],
            mood=row["mood"],
            tags=json.loads(row["tags"] or "[]"),
        )

    def save_entry(self, entry: JournalEntry) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO journal_entries
                    (id, date, title, content, mood, tags)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.id, entry.date, entry.title, entry.content,
                    entry.mood, json.dumps(entry.tags),
                ),
            )
        logger.debug("Journal entry saved: %s", entry.id)

    def list_entries(self, limit: int | None = None) -> list[JournalEntry]:
        """Return entries newest first, optionally capped at `limit`."""
        query = "SELECT * FROM journal_entries ORDER BY date DESC"
        params: list = []
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_entry(r) for r in rows]

    def delete_entry(self, entry_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM journal_entries WHERE id = ?", (entry_id,),
            )
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Journal entry %s deleted", entry_id)
        return deleted
