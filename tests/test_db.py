"""Tests for src.data.db — SQLite storage."""

import pytest

from src.data.db import ChallengeDB, SessionDB
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

HOUR = 3_600_000


def _session(sid, start, end=None, completed=False):
    return FastingSession(
        id=sid, start_time=start, target_duration=16 * HOUR,
        end_time=end, is_completed=completed,
    )


class TestSessionDB:
    def test_save_and_get(self, session_db, t0):
        s = _session("1", t0)
        session_db.save_session(s)
        assert session_db.get_session("1") == s

    def test_get_missing(self, session_db):
        assert session_db.get_session("nope") is None

    def test_active_session_reflects_latest_save(self, session_db, t0):
        s = _session("1", t0)
        session_db.save_session(s)
        assert session_db.get_active_session() == s

        ended = _session("1", t0, end=t0 + HOUR)
        session_db.save_session(ended)
        assert session_db.get_active_session() is None
        assert session_db.get_all_sessions() == [ended]

    def test_history_newest_first(self, session_db, t0):
        session_db.save_session(_session("old", t0, end=t0 + HOUR))
        session_db.save_session(_session("new", t0 + 2 * HOUR))
        assert [s.id for s in session_db.get_all_sessions()] == ["new", "old"]

    def test_delete(self, session_db, t0):
        session_db.save_session(_session("1", t0))
        assert session_db.delete_session("1") is True
        assert session_db.delete_session("1") is False
        assert session_db.get_active_session() is None

    def test_clear(self, session_db, t0):
        session_db.save_session(_session("1", t0))
        session_db.clear()
        assert session_db.get_all_sessions() == []

    def test_survives_reopen(self, tmp_db_path, t0):
        SessionDB(db_path=tmp_db_path).save_session(_session("1", t0))
        assert SessionDB(db_path=tmp_db_path).get_active_session().id == "1"

    def test_creates_parent_dir(self, tmp_path, t0):
        path = tmp_path / "nested" / "dir" / "phoenix.db"
        SessionDB(db_path=str(path)).save_session(_session("1", t0))
        assert path.exists()


class TestUserDB:
    def test_no_user(self, user_db):
        assert user_db.get_user() is None

    def test_round_trip_with_stats(self, user_db):
        user = User(
            id="u1", email="a@b.c", name="Ana",
            stats=UserStats(age=30, weight=62.5, goals=["energy"]),
            transformation_drivers=["health"],
        )
        user_db.save_user(user)
        assert user_db.get_user() == user

    def test_save_replaces_previous_user(self, user_db):
        user_db.save_user(User(id="u1", email="a@b.c", name="Ana"))
        user_db.save_user(User(id="u2", email="d@e.f", name="Ben"))
        assert user_db.get_user().id == "u2"

    def test_update_stats_and_image(self, user_db):
        user_db.save_user(User(id="u1", email="a@b.c", name="Ana"))
        user_db.update_stats(UserStats(fitness_level="beginner"))
        user_db.set_profile_image("file:///img.jpg")
        user = user_db.get_user()
        assert user.stats.fitness_level == "beginner"
        assert user.profile_image == "file:///img.jpg"

    def test_update_stats_without_user_raises(self, user_db):
        with pytest.raises(ValueError):
            user_db.update_stats(UserStats(age=20))

    def test_clear(self, user_db):
        user_db.save_user(User(id="u1", email="a@b.c", name="Ana"))
        user_db.clear()
        assert user_db.get_user() is None


class TestChallengeDB:
    def test_round_trip_fasting_challenge(self, challenge_db, t0):
        c = Challenge(
            id="c1", title="3-Day", description="Fast", frequency="daily",
            start_date=t0, end_date=t0 + 4 * 24 * HOUR,
            progress=[ProgressEntry(date=t0, is_completed=True)],
            kind="fasting", fasting=FastingPlan(duration_hours=20, fasting_type="omad"),
            days_required=3, trophy=Trophy(name="W", description="d", awarded=True),
        )
        challenge_db.save_challenge(c)
        assert challenge_db.get_challenge("c1") == c

    def test_round_trip_open_ended(self, challenge_db, t0):
        c = Challenge(id="c2", title="t", description="d", frequency="weekly", start_date=t0)
        challenge_db.save_challenge(c)
        assert challenge_db.get_challenge("c2") == c

    def test_upsert_and_delete(self, challenge_db, t0):
        c = Challenge(id="c1", title="t", description="d", frequency="daily", start_date=t0)
        challenge_db.save_challenge(c)
        challenge_db.save_challenge(Challenge(
            id="c1", title="t2", description="d", frequency="daily", start_date=t0,
        ))
        assert [x.title for x in challenge_db.list_challenges()] == ["t2"]
        assert challenge_db.delete_challenge("c1") is True
        assert challenge_db.list_challenges() == []

    def test_shares_file_with_sessions(self, tmp_db_path, t0):
        ChallengeDB(db_path=tmp_db_path)
        sessions = SessionDB(db_path=tmp_db_path)
        sessions.save_session(_session("1", t0))
        assert sessions.get_active_session() is not None


class TestRitualDB:
    def test_round_trip(self, ritual_db, t0):
        r = Ritual(
            id="r1", title="Run", description="5k", time="06:30", days=["mon", "fri"],
            progress=[ProgressEntry(date=t0, is_completed=False)],
        )
        ritual_db.save_ritual(r)
        assert ritual_db.get_ritual("r1") == r

    def test_active_filter_and_order(self, ritual_db):
        ritual_db.save_ritual(Ritual(id="b", title="B", description="d", time="21:00", days=["mon"]))
        ritual_db.save_ritual(Ritual(id="a", title="A", description="d", time="07:00", days=["mon"]))
        ritual_db.save_ritual(Ritual(id="c", title="C", description="d", time="08:00",
                                     days=["tue"], is_active=False))
        assert [r.id for r in ritual_db.list_rituals()] == ["a", "c", "b"]
        assert [r.id for r in ritual_db.list_rituals(active_only=True)] == ["a", "b"]

    def test_delete(self, ritual_db):
        ritual_db.save_ritual(Ritual(id="a", title="A", description="d", time="07:00", days=["mon"]))
        assert ritual_db.delete_ritual("a") is True
        assert ritual_db.get_ritual("a") is None


class TestJournalDB:
    def test_round_trip_and_order(self, journal_db, t0):
        older = JournalEntry(id="1", date=t0, title="Day 1", content="ok", tags=["fast"])
        newer = JournalEntry(id="2", date=t0 + HOUR, title="Day 2", content="good", mood="happy")
        journal_db.save_entry(older)
        journal_db.save_entry(newer)
        assert journal_db.list_entries() == [newer, older]
        assert journal_db.list_entries(limit=1) == [newer]

    def test_delete(self, journal_db, t0):
        journal_db.save_entry(JournalEntry(id="1", date=t0, title="t", content="c"))
        assert journal_db.delete_entry("1") is True
        assert journal_db.delete_entry("1") is False
