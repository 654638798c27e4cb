"""
Health router for the transcription API
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from ... import __version__
from ..config import APISettings
from ..dependencies import get_api_settings
from ..models import HealthStatus

router = APIRouter()


@router.get("/health", response_model=HealthStatus)
async def get_health(settings: APISettings = Depends(get_api_settings)):
    """
    Health check endpoint

    Returns basic health status without touching any provider
    """
    return HealthStatus(
        status="healthy",
        service=settings.service_name,
        timestamp=datetime.now(timezone.utc),
        version=__version__,
    )
