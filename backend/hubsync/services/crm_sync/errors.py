"""
Error taxonomy for the sync engine.

Fetch-level errors are raised by the paginator, wrapped by the entity job with
the entity type, and wrapped again by the account runner with the account and
the operation that failed.
"""

import json
from typing import Any, Dict, Optional


class SyncError(Exception):
    """Base class for all sync engine errors."""
    pass


class CredentialRefreshError(SyncError):
    """Raised when the refresh token cannot be exchanged for an access token."""
    pass


class FetchExhaustedError(SyncError):
    """Raised when a remote call failed on every attempt of its retry budget."""

    def __init__(self, entity_type: str, attempts: int, cause: Optional[BaseException] = None):
        self.entity_type = entity_type
        self.attempts = attempts
        self.cause = cause
        super().__init__(f"Failed to fetch {entity_type} after {attempts} tries. Aborting. ({cause})")


class CredentialExpiredError(SyncError):
    """Raised when the access token expired in the middle of a walk."""

    def __init__(self, entity_type: str):
        self.entity_type = entity_type
        super().__init__(f"Access token expired while fetching {entity_type}")


class AssociationLookupError(SyncError):
    """Raised when the contact to company association lookup fails."""
    pass


class MalformedRecordError(SyncError):
    """Raised when a record lacks a field needed to move the watermark forward."""
    pass


class EntitySyncError(SyncError):
    """A single entity job failed."""

    def __init__(self, entity_type: str, cause: BaseException):
        self.entity_type = entity_type
        self.cause = cause
        super().__init__(f"{entity_type} sync failed: {cause}")


class AccountSyncError(SyncError):
    """
    An account run was aborted.

    Carries the structured context reported for the failing account.
    """

    def __init__(
        self,
        error: str,
        account_key: str,
        operation: str,
        api_key: Optional[str] = None,
    ):
        self.error = error
        self.account_key = account_key
        self.operation = operation
        self.api_key = api_key
        super().__init__(json.dumps(self.to_dict()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error,
            "apiKey": self.api_key,
            "accountKey": self.account_key,
            "metadata": {"operation": self.operation},
        }


class DomainNotFoundError(SyncError):
    """No domain could be loaded from the checkpoint store."""
    pass


class NoAccountsError(SyncError):
    """The domain has no connected accounts."""
    pass
