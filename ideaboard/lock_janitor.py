# ideaboard/lock_janitor.py

import asyncio
import logging
from contextlib import suppress
from ideaboard.config import LOCK_JANITOR_INTERVAL_SECONDS
from ideaboard.services.lock_service import IdeaLockService

logger = logging.getLogger(__name__)

class StaleLockJanitor:
    """Periodic background worker that physically clears edit locks whose lease has run out."""

    def __init__(self, lock_service: IdeaLockService, interval_seconds: float | None = None) -> None:
        # interval_seconds: how often to run a cleanup cycle
        self.lock_service = lock_service
        self.interval_seconds = LOCK_JANITOR_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        self._task: asyncio.Task | None = None
        self._stop = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background worker task."""
        if self._task is not None:
            return  # Already started
        if not self.interval_seconds or self.interval_seconds <= 0:
            logger.info("StaleLockJanitor disabled (interval=%s).", self.interval_seconds)
            return
        self._stop.clear()
        logger.info("Starting StaleLockJanitor (interval=%s sec)...", self.interval_seconds)
        self._task = asyncio.create_task(self._run(), name="stale-lock-janitor")

    async def stop(self) -> None:
        """Signal the worker to stop and wait for it to finish."""
        self._stop.set()
        if self._task is None:
            return
        logger.info("Stopping StaleLockJanitor...")
        try:
            await asyncio.wait_for(self._task, timeout=5)
        except asyncio.TimeoutError:
            logger.warning("Lock janitor did not stop in time; cancelling...")
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
        finally:
            self._task = None
        logger.info("StaleLockJanitor stopped.")

    async def run_once(self) -> int:
        return await self.lock_service.clear_stale_locks()

    async def _run(self) -> None:
        """Main loop: clear stale locks periodically until stop is requested."""
        try:
            while not self._stop.is_set():
                try:
                    cleared = await self.run_once()
                    logger.debug("Lock janitor cycle finished. Cleared locks: %s", cleared)
                except Exception:
                    logger.exception("Lock janitor cycle failed with an exception.")
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
                except asyncio.TimeoutError:
                    pass
        finally:
            logger.info("StaleLockJanitor loop exiting.")
