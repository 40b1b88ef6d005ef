"""
Background removal of expired OTP sessions.

Reads already treat expired sessions as absent; this only keeps the table
from growing without bound.
"""
import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class OTPSweeper:
    def __init__(self, sweep: Callable[[], int], interval_seconds: int = 300):
        self.sweep = sweep
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            logger.warning("OTP sweeper already running")
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"OTP sweeper started (every {self.interval_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("OTP sweeper stopped")

    async def run_once(self) -> int:
        # The store is synchronous; keep it off the event loop
        return await asyncio.to_thread(self.sweep)

    async def _run(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Error in OTP sweep: {e}")
            await asyncio.sleep(self.interval_seconds)
