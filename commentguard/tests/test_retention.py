"""Tests for the log retention worker."""

import asyncio
from datetime import datetime, timedelta

from commentguard.models.moderation_log import ModerationLog
from commentguard.services.log_service import insert_log
from commentguard.services.retention_service import RetentionWorker


def _seed(session_factory, ages):
    db = session_factory()
    try:
        for days_ago in ages:
            insert_log(
                db,
                action="approve",
                comment_content=f"comment {days_ago}",
                comment_author="Reader",
                created_at=datetime.utcnow() - timedelta(days=days_ago),
            )
    finally:
        db.close()


def _count(session_factory):
    db = session_factory()
    try:
        return db.query(ModerationLog).count()
    finally:
        db.close()


class TestRetentionWorker:
    def test_cleanup_uses_configured_retention(self, session_factory, settings_service):
        db = session_factory()
        settings_service.update(db, {"log_retention_days": 7})
        db.close()
        _seed(session_factory, [1, 5, 10, 60])

        worker = RetentionWorker(session_factory=session_factory, settings_service=settings_service)

        assert worker.run_cleanup() == 2
        assert _count(session_factory) == 2

    def test_zero_retention_keeps_logs(self, session_factory, settings_service):
        db = session_factory()
        settings_service.update(db, {"log_retention_days": 0})
        db.close()
        _seed(session_factory, [400])

        worker = RetentionWorker(session_factory=session_factory, settings_service=settings_service)

        assert worker.run_cleanup() == 0
        assert _count(session_factory) == 1

    def test_start_runs_cleanup_and_stop_cancels(self, session_factory, settings_service):
        _seed(session_factory, [45])
        worker = RetentionWorker(session_factory=session_factory, settings_service=settings_service)

        async def run():
            await worker.start(interval_seconds=3600)
            await asyncio.sleep(0.5)
            await worker.stop()

        asyncio.run(run())

        # Default retention is 30 days
        assert _count(session_factory) == 0
        assert worker._task.done()

    def test_stop_without_start(self, session_factory, settings_service):
        worker = RetentionWorker(session_factory=session_factory, settings_service=settings_service)
        asyncio.run(worker.stop())
