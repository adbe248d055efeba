import asyncio
import json
import uuid
from typing import Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from constants import SEND_QUEUE_SIZE
from logging_config import get_logger

logger = get_logger(__name__)


class Connection:
    """One peer's WebSocket session.

    Outbound messages go through a queue drained by a single writer task, so
    sends never block the caller and per-connection order is kept.
    """

    def __init__(self, websocket: WebSocket, client_ip: str = "unknown", queue_size: int = SEND_QUEUE_SIZE):
        self.websocket = websocket
        self.connection_id = str(uuid.uuid4())
        self.client_ip = client_ip
        self.room: Optional[str] = None
        self.is_alive = True
        self.terminated = False

        self._outbox: asyncio.Queue = asyncio.Queue(maxsize=max(queue_size, 0))
        self._closing = False
        self._closed = asyncio.Event()
        self._reader: Optional[asyncio.Task] = None
        self._writer: Optional[asyncio.Task] = None

    def __repr__(self):
        return f"<Connection {self.connection_id[:8]} room={self.room!r}>"

    @property
    def short_id(self) -> str:
        return self.connection_id[:8]

    @property
    def is_open(self) -> bool:
        if self.terminated or self._closing or self._closed.is_set():
            return False
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def start(self, reader: asyncio.Task):
        """Attach the task reading inbound frames and start the writer."""
        self._reader = reader
        self._writer = asyncio.create_task(self._drain_outbox())

    def send(self, message: dict) -> bool:
        """Queue a message for delivery. Returns False if it was dropped."""
        if not self.is_open:
            return False
        try:
            self._outbox.put_nowait(json.dumps(message))
        except asyncio.QueueFull:
            logger.warning(f"Send queue full for connection {self.short_id}, dropping {message.get('type')!r} message")
            return False
        return True

    def mark_alive(self):
        self.is_alive = True

    async def _drain_outbox(self):
        while True:
            text = await self._outbox.get()
            try:
                await self.websocket.send_text(text)
            except Exception as e:
                # Peer went away mid-send; the reader will observe the disconnect
                logger.debug(f"Send to connection {self.short_id} failed: {e}")

    async def close(self, code: int = 1000, reason: str = ""):
        """Start the close handshake. The reader finishes once the peer answers."""
        if self._closing or self._closed.is_set():
            return
        self._closing = True
        try:
            await self.websocket.close(code=code, reason=reason)
        except Exception as e:
            logger.debug(f"Error closing WebSocket {self.short_id}: {e}")
            self.terminate()

    def terminate(self):
        """Drop the connection without a close handshake."""
        if self.terminated:
            return
        self.terminated = True
        if self._reader is not None and not self._reader.done():
            self._reader.cancel()

    def mark_closed(self):
        """Called once the close path has run; stops the writer."""
        if self._writer is not None and not self._writer.done():
            self._writer.cancel()
        self._closed.set()

    async def wait_closed(self):
        await self._closed.wait()
