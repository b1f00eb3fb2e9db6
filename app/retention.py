"""
Background sweep that deletes expired messages on a fixed interval.
"""

import asyncio
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.messages import MessageService
from app.metrics import record_retention_sweep

logger = logging.getLogger(__name__)


class RetentionSweeper:
    """
    Periodically purges messages older than the retention window.

    The first sweep runs one full interval after start(); nothing is
    persisted between restarts. A failed sweep is logged and the next
    attempt is simply the next tick.

    Args:
        session_factory: Callable returning a new Session (e.g. SessionLocal)
        interval_seconds: Delay between sweeps
        retention_days: Messages older than this many days are deleted
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        interval_seconds: float = 24 * 60 * 60,
        retention_days: int = 3,
    ):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self.retention_days = retention_days
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> int:
        """Run a single purge on a fresh session. Blocking."""
        db = self.session_factory()
        try:
            return MessageService(db, self.retention_days).purge_expired()
        finally:
            db.close()

    async def _tick(self) -> None:
        try:
            purged = await asyncio.to_thread(self.run_once)
        except Exception as e:
            logger.error(f"Retention sweep failed: {e}")
            record_retention_sweep("error")
            return
        logger.info(f"Retention sweep removed {purged} messages older than {self.retention_days} days")
        record_retention_sweep("ok", purged)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self._tick()

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="retention-sweeper")
        logger.info(f"Retention sweeper started, interval={self.interval_seconds}s")

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if not self.running:
            self._task = None
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.info("Retention sweeper stopped")
        finally:
            self._task = None
