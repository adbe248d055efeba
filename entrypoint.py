import asyncio
import signal

import uvicorn

from constants import ENVIRONMENT, HEARTBEAT_INTERVAL, HOST, LOG_FILE, LOG_LEVEL, PORT
from logging_config import get_logger, setup_logging

# Setup logging before importing app
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)

from app import app, shutdown_coordinator

logger = get_logger(__name__)


class SignalingServer(uvicorn.Server):
    """uvicorn server whose first stop signal goes to the shutdown coordinator.

    The coordinator closes every peer with 1000 before uvicorn tears the
    transports down; a second signal falls through to uvicorn's own handling.
    """

    _loop = None

    async def serve(self, sockets=None):
        self._loop = asyncio.get_running_loop()
        shutdown_coordinator.attach_server(self)
        await super().serve(sockets=sockets)

    def handle_exit(self, sig, frame):
        if self._loop is None or shutdown_coordinator.shutting_down or self.should_exit:
            return super().handle_exit(sig, frame)
        logger.info(f"Received {signal.Signals(sig).name}")
        self._loop.call_soon_threadsafe(shutdown_coordinator.request_shutdown, f"signal {signal.Signals(sig).name}")


def main():
    config = uvicorn.Config(
        app,
        host=HOST,
        port=PORT,
        log_config=None,
        ws_per_message_deflate=False,
        # Liveness probes are protocol ping frames; browsers answer them without client code
        ws_ping_interval=HEARTBEAT_INTERVAL,
        ws_ping_timeout=HEARTBEAT_INTERVAL,
    )
    server = SignalingServer(config)
    logger.info(f"Starting WebRTC Signaling Server on {HOST}:{PORT} (environment: {ENVIRONMENT})")
    logger.info(f"Health check: http://localhost:{PORT}/health")
    if ENVIRONMENT == "production":
        logger.info("Remember to point your frontend at the public wss:// URL of this service")
    else:
        logger.info(f"WebSocket URL: ws://localhost:{PORT}")
    server.run()


if __name__ == "__main__":
    main()
