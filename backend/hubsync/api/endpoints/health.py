"""
Health and Status Endpoints for Monitoring.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from hubsync.core.config import Settings, get_settings

router = APIRouter()
logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    environment: str
    hubspot_configured: bool
    checkpoint_persistence_enabled: bool
    goal_configured: bool


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """
    Health check with the sync engine configuration that matters at runtime.
    """
    return HealthResponse(
        status="healthy",
        environment=settings.app_env,
        hubspot_configured=bool(settings.hubspot_client_id and settings.hubspot_client_secret),
        checkpoint_persistence_enabled=settings.checkpoint_persistence_enabled,
        goal_configured=bool(settings.goal_url),
    )
