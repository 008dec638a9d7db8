"""
Liveness and version endpoints
"""

from datetime import datetime, timezone
from fastapi import APIRouter
from schemas.api import HealthResponse, VersionResponse
from core.config import SERVICE_NAME, SERVICE_VERSION

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness only; does not touch the database"""
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc))


@router.get("/version", response_model=VersionResponse)
async def version():
    return VersionResponse(name=SERVICE_NAME, version=SERVICE_VERSION)
