from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "ok"
    service: str
    uptime: float
    rooms: int
    active_connections: int = Field(alias="activeConnections")
    total_connections: int = Field(alias="totalConnections")
    timestamp: str
