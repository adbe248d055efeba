import asyncio
from typing import Optional

from backend import RoomRegistry
from constants import CLEANUP_INTERVAL
from logging_config import get_logger

logger = get_logger(__name__)


class CleanupSweeper:
    """Periodically reconciles the registry against live connections.

    Catches members whose close path never ran, for example a transport that
    failed without producing a disconnect event.
    """

    def __init__(self, registry: RoomRegistry, interval: float = CLEANUP_INTERVAL):
        self.registry = registry
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        logger.debug(f"Starting cleanup sweeper (every {self.interval}s)")
        self._task = asyncio.create_task(self._run())

    async def stop(self):
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Cleanup sweeper stopped")

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.registry.sweep()
            except Exception as e:
                logger.error(f"Error during room cleanup: {e}", exc_info=True)
