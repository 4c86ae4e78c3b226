"""
Real-time Sync Status Tracking.
Allows monitoring of HubSpot pull progress via API.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict

logger = logging.getLogger(__name__)


class SyncPhase(str, Enum):
    """Sync phases."""
    IDLE = "idle"
    LOADING_DOMAIN = "loading_domain"
    REFRESHING_CREDENTIALS = "refreshing_credentials"
    SYNCING_ENTITIES = "syncing_entities"
    DRAINING_QUEUE = "draining_queue"
    SAVING_CHECKPOINT = "saving_checkpoint"
    COMPLETED = "completed"
    ERROR = "error"


def _empty_progress() -> Dict[str, Any]:
    return {
        "accounts_total": 0,
        "accounts_processed": 0,
        "accounts_failed": 0,
        "pages_fetched": 0,
        "events_pushed": 0,
        "current_account": None,
        "current_entity_type": None,
    }


class SyncStatusTracker:
    """
    Singleton to track sync status across requests.
    Allows real-time monitoring via API.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Initialize status tracking."""
        self.status = {
            "phase": SyncPhase.IDLE,
            "started_at": None,
            "current_step": "Waiting to start...",
            "progress": _empty_progress(),
            "errors": [],
            "completed_at": None,
            "duration_seconds": 0,
        }

    def reset(self):
        """Back to idle (used between test runs)."""
        self._initialize()

    def start_sync(self):
        """Mark sync as started."""
        self.status = {
            "phase": SyncPhase.LOADING_DOMAIN,
            "started_at": datetime.now().isoformat(),
            "current_step": "Loading domain...",
            "progress": _empty_progress(),
            "errors": [],
            "completed_at": None,
            "duration_seconds": 0,
        }
        logger.info("SYNC STARTED - Status tracking enabled")

    def update_phase(self, phase: SyncPhase, step: str):
        """Update current phase."""
        self.status["phase"] = phase
        self.status["current_step"] = step
        logger.debug(f"PHASE: {phase.value.upper()} - {step}")

    def set_accounts_total(self, total: int):
        self.status["progress"]["accounts_total"] = total

    def start_account(self, account_key: str):
        """Mark an account as the one being processed."""
        self.status["progress"]["current_account"] = account_key
        self.status["progress"]["current_entity_type"] = None

    def update_entity(self, entity_type: str):
        """Update the entity type being synced."""
        self.status["progress"]["current_entity_type"] = entity_type
        self.update_phase(SyncPhase.SYNCING_ENTITIES, f"Syncing {entity_type}...")

    def record_page(self, entity_type: str, events: int):
        """Count one fetched page and the events it produced."""
        self.status["progress"]["pages_fetched"] += 1
        self.status["progress"]["events_pushed"] += events
        self.status["current_step"] = (
            f"Syncing {entity_type}... ({self.status['progress']['pages_fetched']} pages)"
        )

    def finish_account(self, success: bool):
        key = "accounts_processed" if success else "accounts_failed"
        self.status["progress"][key] += 1

    def add_error(self, error: str):
        """Add error to tracking."""
        self.status["errors"].append({
            "timestamp": datetime.now().isoformat(),
            "error": error,
        })
        logger.error(f"ERROR: {error}")

    def complete_sync(self, success: bool = True):
        """Mark sync as completed."""
        self.status["phase"] = SyncPhase.COMPLETED if success else SyncPhase.ERROR
        self.status["completed_at"] = datetime.now().isoformat()

        # Calculate duration
        if self.status["started_at"]:
            start = datetime.fromisoformat(self.status["started_at"])
            end = datetime.fromisoformat(self.status["completed_at"])
            self.status["duration_seconds"] = (end - start).total_seconds()

        progress = self.status["progress"]
        if success:
            self.status["current_step"] = "Sync completed successfully!"
            logger.info(f"SYNC COMPLETED - Duration: {self.status['duration_seconds']:.1f}s")
            logger.info(
                f"   Accounts: {progress['accounts_processed']} processed, {progress['accounts_failed']} failed"
            )
            logger.info(f"   Pages: {progress['pages_fetched']}, Events: {progress['events_pushed']}")
        else:
            self.status["current_step"] = "Sync failed with errors"
            logger.error("SYNC FAILED")

    def get_status(self) -> Dict[str, Any]:
        """Get current status."""
        status = self.status.copy()
        status["progress"] = dict(self.status["progress"])
        return status

    def is_running(self) -> bool:
        """Check if sync is currently running."""
        return self.status["phase"] not in [SyncPhase.IDLE, SyncPhase.COMPLETED, SyncPhase.ERROR]

    def try_start(self) -> bool:
        """
        Claims the tracker for a new run.

        Checks and starts in one step, with no await in between.

        Returns:
            False if a run is already in progress
        """
        if self.is_running():
            return False
        self.start_sync()
        return True


# Singleton instance
sync_status = SyncStatusTracker()
