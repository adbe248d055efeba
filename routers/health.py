from datetime import datetime, timezone

from fastapi import APIRouter

from backend import room_registry
from constants import SERVICE_NAME
from schemas.health import HealthResponse

health_router = APIRouter(tags=["health"])


@health_router.get("/", response_model=HealthResponse)
@health_router.get("/health", response_model=HealthResponse)
async def health():
    """Read-only counters for monitoring. Never mutates registry state."""
    return HealthResponse(
        service=SERVICE_NAME,
        uptime=room_registry.uptime,
        rooms=room_registry.room_count,
        active_connections=room_registry.active_connections,
        total_connections=room_registry.total_connections,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
