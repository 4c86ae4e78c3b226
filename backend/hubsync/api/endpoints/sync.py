"""
Sync Trigger Endpoint.

Starts a HubSpot pull in the background. Progress is reported by
/sync-status.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException, status
from pydantic import BaseModel

from hubsync.services.crm_sync import SyncError, run_pull
from hubsync.services.sync_status import sync_status

router = APIRouter()
logger = logging.getLogger(__name__)


class SyncTriggerResponse(BaseModel):
    """Sync trigger response."""
    status: str
    message: str


async def run_pull_in_background() -> None:
    """Runs one pull; failures are already recorded in the sync status."""
    try:
        result = await run_pull()
        logger.info(result.message)
    except SyncError as e:
        logger.error(f"Pull aborted: {e}")
    except Exception as e:
        logger.error(f"Pull failed unexpectedly: {e}", exc_info=True)
    finally:
        # failures before the orchestrator took over leave the run claimed
        if sync_status.is_running():
            sync_status.complete_sync(success=False)


@router.post(
    "/sync",
    response_model=SyncTriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def trigger_sync(background_tasks: BackgroundTasks) -> SyncTriggerResponse:
    """
    Trigger a pull of every connected HubSpot account.

    The run is claimed before the background task is scheduled, so a second
    request is rejected even if the first pull has not started yet.

    Raises:
        HTTPException 409: If a pull is already running
    """
    if not sync_status.try_start():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A sync is already running",
        )

    background_tasks.add_task(run_pull_in_background)
    logger.info("Pull scheduled")

    return SyncTriggerResponse(
        status="accepted",
        message="Sync started. Poll /api/v1/sync-status for progress.",
    )
