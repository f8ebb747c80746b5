from __future__ import annotations

from pydantic import BaseModel, Field


class TargetOut(BaseModel):
    job: str = Field(..., description="Job name (compose service or container name)")
    address: str = Field(..., description="host:port Prometheus scrapes")


class CycleOut(BaseModel):
    drained: int = Field(..., ge=0, description="Events drained from the log")
    coalesced: int = Field(..., ge=0, description="Distinct containers after coalescing")
    targets: int = Field(..., ge=0, description="Targets in the published file")
    published: bool
    reloaded: bool
    message: str
    ts: str | None = None


class HealthOut(BaseModel):
    status: str = "healthy"
    docker: bool
    pending_events: int = Field(0, ge=0)
