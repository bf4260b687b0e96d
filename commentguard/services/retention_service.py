"""
Background worker that applies the log retention policy once a day.
"""

import asyncio
import contextlib
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from commentguard.database import SessionLocal
from commentguard.services import log_service
from commentguard.services.settings_service import SettingsService, guard_settings

logger = logging.getLogger(__name__)


class RetentionWorker:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        settings_service: SettingsService = guard_settings,
    ):
        self.session_factory = session_factory
        self.settings_service = settings_service
        self._task: Optional[asyncio.Task] = None
        self._running = False

    def run_cleanup(self) -> int:
        """Delete logs older than the configured retention period."""
        db = self.session_factory()
        try:
            config = self.settings_service.load(db)
            deleted = log_service.clean_old_logs(db, config.log_retention_days)
        finally:
            db.close()

        logger.info(f"Retention cleanup removed {deleted} log entries")
        return deleted

    async def start(self, interval_seconds: int = 86400) -> None:
        if self._running:
            logger.warning("Retention worker already running")
            return

        self._running = True
        self._task = asyncio.create_task(
            self._worker_loop(interval_seconds),
            name="log_retention",
        )
        logger.info(f"Retention worker started (interval={interval_seconds}s)")

    async def stop(self) -> None:
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

        logger.info("Retention worker stopped")

    async def _worker_loop(self, interval_seconds: int) -> None:
        while self._running:
            try:
                await asyncio.to_thread(self.run_cleanup)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Retention cleanup failed")

            await asyncio.sleep(interval_seconds)


retention_worker = RetentionWorker()
