"""
Health and status endpoints
Liveness for load balancers, plus threat intelligence cache and lookup health
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
import time

from fastapi import APIRouter, Request
from pydantic import BaseModel

from phishshield.core.config import APP_VERSION
from phishshield.utils.startup import get_init_status

router = APIRouter()

_started_at = time.monotonic()


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
    timestamp: str


class CacheStatus(BaseModel):
    """Threat intelligence cache sizes and lookup configuration"""
    domain_entries: int
    sender_entries: int
    pending_lookups: int
    ttl_hours: float
    lookup_timeout_seconds: float
    domain_providers: List[str]
    sender_provider: str


class StatusResponse(BaseModel):
    initialized: bool
    cache: Optional[CacheStatus] = None
    lookup_failures: Dict[str, int]
    history_size: int


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness check; does not touch the analyzer"""
    return HealthResponse(
        status="healthy",
        version=APP_VERSION,
        uptime_seconds=round(time.monotonic() - _started_at, 2),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/status", response_model=StatusResponse)
async def system_status(request: Request) -> StatusResponse:
    """Cache sizes, provider configuration, failed lookups per check and history size"""
    return StatusResponse(**get_init_status(request.app))
