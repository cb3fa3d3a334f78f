"""Health check response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

HealthStatus = Literal["healthy", "degraded", "unhealthy"]


class LivenessResponse(BaseModel):
    status: Literal["alive"] = "alive"
    timestamp: datetime


class HealthResponse(BaseModel):
    status: HealthStatus
    service: str
    version: str
    environment: str
    timestamp: datetime
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Per-dependency result; optional dependencies only degrade the status",
    )
