"""
Sync Status API Endpoint.
Reports the progress of the current (or last) HubSpot pull.
"""

import logging
from typing import List

from fastapi import APIRouter
from pydantic import BaseModel

from hubsync.services.sync_status import sync_status

router = APIRouter()
logger = logging.getLogger(__name__)


class SyncProgress(BaseModel):
    """Counters of the running pull."""
    accounts_total: int
    accounts_processed: int
    accounts_failed: int
    pages_fetched: int
    events_pushed: int
    current_account: str | None = None
    current_entity_type: str | None = None


class SyncStatusError(BaseModel):
    timestamp: str
    error: str


class SyncStatusResponse(BaseModel):
    """Sync status response."""
    phase: str
    is_running: bool
    current_step: str
    progress: SyncProgress
    errors: List[SyncStatusError]
    started_at: str | None
    completed_at: str | None
    duration_seconds: float


@router.get("/sync-status", response_model=SyncStatusResponse)
async def get_sync_status() -> SyncStatusResponse:
    """
    Current pull status.

    Poll every few seconds while a pull triggered via POST /sync runs.
    """
    status = sync_status.get_status()

    return SyncStatusResponse(
        phase=status["phase"].value,
        is_running=sync_status.is_running(),
        current_step=status["current_step"],
        progress=SyncProgress(**status["progress"]),
        errors=[SyncStatusError(**error) for error in status["errors"]],
        started_at=status["started_at"],
        completed_at=status["completed_at"],
        duration_seconds=status["duration_seconds"],
    )
