import asyncio
import os
from typing import Callable, Optional

from backend import RoomRegistry
from constants import SHUTDOWN_CLOSE_CODE, SHUTDOWN_CLOSE_REASON, SHUTDOWN_TIMEOUT
from logging_config import get_logger
from sweeper import CleanupSweeper

logger = get_logger(__name__)


class ShutdownCoordinator:
    """Orderly-then-forced termination of the relay.

    Order: stop the sweeper, refuse new connections, close every tracked
    connection with 1000, wait for their close paths to finish. If that takes
    longer than ``timeout`` seconds the process is killed with status 1.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        sweeper: CleanupSweeper,
        timeout: float = SHUTDOWN_TIMEOUT,
        exit_fn: Callable[[int], None] = os._exit,
    ):
        self.registry = registry
        self.sweeper = sweeper
        self.timeout = timeout
        self.exit_fn = exit_fn
        self.server = None
        self.accepting = True
        self.shutting_down = False
        self._task: Optional[asyncio.Future] = None
        self._finished: Optional[asyncio.Event] = None

    def attach_server(self, server):
        """Server whose ``should_exit`` flag is raised once shutdown completes."""
        self.server = server

    def reset(self):
        self.accepting = True
        self.shutting_down = False
        self._task = None
        self._finished = None

    def request_shutdown(self, reason: str = "requested") -> asyncio.Future:
        """Schedule shutdown on the running loop; repeated calls return the same task."""
        if self._task is None:
            self._task = asyncio.ensure_future(self.shutdown(reason))
        return self._task

    async def shutdown(self, reason: str = "requested"):
        if self.shutting_down:
            if self._finished is not None:
                await self._finished.wait()
            return
        self.shutting_down = True
        self.accepting = False
        self._finished = asyncio.Event()
        logger.info(f"Shutting down gracefully ({reason})...")

        try:
            await asyncio.wait_for(self._close_all(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Forced shutdown after {self.timeout}s timeout")
            self._finished.set()
            self.exit_fn(1)
            return

        logger.info("Server closed successfully")
        if self.server is not None:
            self.server.should_exit = True
        self._finished.set()

    async def _close_all(self):
        await self.sweeper.stop()
        connections = self.registry.connections
        logger.info(f"Closing {len(connections)} connection(s)")
        for connection in connections:
            await connection.close(code=SHUTDOWN_CLOSE_CODE, reason=SHUTDOWN_CLOSE_REASON)
        await asyncio.gather(*(connection.wait_closed() for connection in connections))

    def handle_loop_exception(self, loop, context):
        """Event-loop exception handler.

        Failures of tasks and futures are logged and otherwise ignored.
        Anything escaping a plain callback is treated as fatal.
        """
        exception = context.get("exception")
        message = context.get("message", "Unhandled exception in event loop")
        if "future" in context or "task" in context:
            logger.error(f"Unhandled task failure: {message}", exc_info=exception)
            return
        logger.critical(f"Uncaught exception: {message}", exc_info=exception)
        if loop.is_running():
            self.request_shutdown("uncaught exception")
        else:
            self.exit_fn(1)
