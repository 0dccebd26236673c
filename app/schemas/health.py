"""Health check response: overall status plus one field per backing store."""

from typing import Literal

from pydantic import BaseModel, Field

Connectivity = Literal["connected", "disconnected"]


class HealthResponse(BaseModel):
    """'degraded' when either Postgres (users) or Redis (sessions) is unreachable."""

    status: Literal["ok", "degraded"] = Field(default="ok")
    environment: str = Field(description="APP_ENV of the running instance")
    database: Connectivity | None = Field(default=None, description="User database")
    session_store: Connectivity | None = Field(default=None, description="Redis session store")
