import asyncio
from typing import Optional

from constants import HEARTBEAT_INTERVAL
from logging_config import get_logger

logger = get_logger(__name__)


class LivenessMonitor:
    """Checks one connection every ``interval`` seconds.

    Probing happens at the WebSocket protocol level: uvicorn sends ping frames
    (``ws_ping_interval``), browsers answer them automatically, and a peer that
    stops answering has its transport closed. The monitor samples the transport
    on each tick; a connection found closed on one tick and still flagged dead
    on the next is terminated so its close path runs.
    """

    def __init__(self, connection, interval: float = HEARTBEAT_INTERVAL):
        self.connection = connection
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        self.connection.is_alive = True
        self._task = asyncio.create_task(self._run())

    def cancel(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def tick(self) -> bool:
        """Run one probe cycle. Returns False once the connection has been terminated."""
        connection = self.connection
        if not connection.is_alive:
            logger.warning(f"[Heartbeat] Client {connection.short_id} timeout, terminating connection")
            connection.terminate()
            return False
        # An open transport means the peer is still answering protocol pings
        connection.is_alive = connection.is_open
        return True

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            if not self.tick():
                self._task = None
                return
