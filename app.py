import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from backend import room_registry
from connection import Connection
from constants import CORS_ORIGINS, ENVIRONMENT, HEARTBEAT_INTERVAL, LOG_FILE, LOG_LEVEL
from liveness import LivenessMonitor
from logging_config import get_logger, setup_logging
from routers.health import health_router
from shutdown import ShutdownCoordinator
from signaling import MessageRouter
from sweeper import CleanupSweeper

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

message_router = MessageRouter(room_registry)
cleanup_sweeper = CleanupSweeper(room_registry)
shutdown_coordinator = ShutdownCoordinator(room_registry, cleanup_sweeper)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting WebRTC Signaling Server (environment: {ENVIRONMENT})")
    asyncio.get_running_loop().set_exception_handler(shutdown_coordinator.handle_loop_exception)
    shutdown_coordinator.reset()
    cleanup_sweeper.start()
    yield
    await shutdown_coordinator.shutdown("lifespan shutdown")


app = FastAPI(lifespan=lifespan)

# Configure CORS for the status endpoint
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(health_router)

logger.info("FastAPI application initialized")


def get_client_ip(websocket: WebSocket) -> str:
    forwarded = websocket.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return websocket.client.host if websocket.client else "unknown"


async def read_frames(websocket: WebSocket, connection: Connection):
    """Feed inbound frames to the router until the peer disconnects."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
        raw = message.get("text")
        if raw is None:
            raw = message.get("bytes")
        message_router.handle(connection, raw)


@app.websocket("/")
@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Signaling WebSocket. One connection per peer; rooms are joined by message."""
    client_ip = get_client_ip(websocket)

    if not shutdown_coordinator.accepting:
        logger.info(f"WebSocket connection from {client_ip} rejected: server shutting down")
        await websocket.close(code=1001, reason="Server shutting down")
        return

    await websocket.accept()
    if not shutdown_coordinator.accepting:
        # shutdown began while the handshake was in flight
        logger.info(f"WebSocket connection from {client_ip} closed after accept: server shutting down")
        await websocket.close(code=1001, reason="Server shutting down")
        return

    connection = Connection(websocket, client_ip=client_ip)
    room_registry.register(connection)
    logger.info(
        f"[Connect] Client connected from {client_ip} "
        f"(Total: {room_registry.total_connections}, Active: {room_registry.active_connections})"
    )

    monitor = LivenessMonitor(connection, interval=HEARTBEAT_INTERVAL)
    reader = asyncio.create_task(read_frames(websocket, connection))
    connection.start(reader)
    monitor.start()

    try:
        await asyncio.wait({reader})
        if reader.cancelled():
            logger.info(f"Connection {connection.short_id} terminated")
        elif isinstance(reader.exception(), WebSocketDisconnect):
            logger.debug(f"Connection {connection.short_id} closed with code {reader.exception().code}")
        elif reader.exception() is not None:
            error = reader.exception()
            logger.error(f"[Error] WebSocket error on connection {connection.short_id}: {error}", exc_info=error)
    finally:
        # Close path: runs for every way a connection can end
        if not reader.done():
            reader.cancel()
        monitor.cancel()
        room_registry.unregister(connection)
        message_router.disconnect(connection)
        connection.mark_closed()
        logger.info(f"[Disconnect] Client disconnected (Active: {room_registry.active_connections})")
