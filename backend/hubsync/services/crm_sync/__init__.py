"""
CRM Sync Services.

Modular services for pulling HubSpot CRM changes into outbound events.
"""

from .errors import (
    AccountSyncError,
    AssociationLookupError,
    CredentialExpiredError,
    CredentialRefreshError,
    DomainNotFoundError,
    EntitySyncError,
    FetchExhaustedError,
    MalformedRecordError,
    NoAccountsError,
    SyncError,
)
from .retrier import Exhausted, Expired, Retrier, Success, SyncOutcome
from .paginator import PageCursor, Paginator
from .event_queue import EventQueue
from .error_tracker import ErrorTracker, ErrorSummary
from .entity_jobs import EntityJobResult, EntitySyncJob
from .account_runner import AccountSyncResult, AccountSyncRunner
from .sync_orchestrator import SyncOrchestrator, SyncRunResult, run_pull

__all__ = [
    "SyncError",
    "CredentialRefreshError",
    "CredentialExpiredError",
    "FetchExhaustedError",
    "AssociationLookupError",
    "MalformedRecordError",
    "EntitySyncError",
    "AccountSyncError",
    "DomainNotFoundError",
    "NoAccountsError",
    "Retrier",
    "Success",
    "Exhausted",
    "Expired",
    "SyncOutcome",
    "Paginator",
    "PageCursor",
    "EventQueue",
    "ErrorTracker",
    "ErrorSummary",
    "EntitySyncJob",
    "EntityJobResult",
    "AccountSyncRunner",
    "AccountSyncResult",
    "SyncOrchestrator",
    "SyncRunResult",
    "run_pull",
]
