"""
Tests for the background retention sweeper.

The sweep loop is driven with asyncio.run and short intervals.
"""

import asyncio
from datetime import timedelta

from fastapi.testclient import TestClient

from app.config import settings
from app.main import app
from app.messages import utcnow
from app.models import Message
from app.retention import RetentionSweeper
from app.storage import SessionLocal


def seed(db):
    now = utcnow()
    db.add_all([
        Message(driver="Tanaka", role="driver", subject="old", timestamp=now - timedelta(days=4), read_flag=False),
        Message(driver="Tanaka", role="company", subject="new", timestamp=now, read_flag=False),
    ])
    db.commit()


def remaining_subjects(db):
    db.expire_all()
    return sorted(m.subject for m in db.query(Message).all())


def run_sweeper(sweeper: RetentionSweeper, seconds: float) -> bool:
    """Start the sweeper, let it run, stop it. Returns whether it was still running."""
    async def scenario():
        sweeper.start()
        await asyncio.sleep(seconds)
        alive = sweeper.running
        await sweeper.stop()
        return alive

    return asyncio.run(scenario())


class TestRetentionSweeper:

    def test_run_once_purges_expired(self, db_session):
        seed(db_session)

        purged = RetentionSweeper(SessionLocal).run_once()

        assert purged == 1
        assert remaining_subjects(db_session) == ["new"]

    def test_periodic_sweep(self, db_session):
        seed(db_session)
        sweeper = RetentionSweeper(SessionLocal, interval_seconds=0.05)

        run_sweeper(sweeper, 0.5)

        assert remaining_subjects(db_session) == ["new"]
        assert sweeper.running is False

    def test_first_sweep_waits_full_interval(self, db_session):
        seed(db_session)
        sweeper = RetentionSweeper(SessionLocal, interval_seconds=60)

        run_sweeper(sweeper, 0.1)

        assert remaining_subjects(db_session) == ["new", "old"]

    def test_failed_sweep_keeps_loop_alive(self, database):
        calls = []

        def broken_factory():
            calls.append(1)
            raise RuntimeError("database unavailable")

        sweeper = RetentionSweeper(broken_factory, interval_seconds=0.02)

        alive = run_sweeper(sweeper, 0.3)

        assert alive is True
        assert len(calls) >= 2

    def test_stop_without_start(self):
        sweeper = RetentionSweeper(SessionLocal)

        asyncio.run(sweeper.stop())

        assert sweeper.running is False

    def test_started_and_stopped_by_lifespan(self, database):
        with TestClient(app):
            sweeper = app.state.retention_sweeper
            assert sweeper.running is True
        assert sweeper.running is False

    def test_disabled_by_setting(self, database, monkeypatch):
        monkeypatch.setattr(settings, "RETENTION_SWEEP_ENABLED", False)

        with TestClient(app):
            assert app.state.retention_sweeper.running is False
