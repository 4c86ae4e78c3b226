"""
Error Tracker for Sync Runs.

Collects per-account failures when a run is configured to continue past a
failing account.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from hubsync.services.crm_sync.errors import AccountSyncError

logger = logging.getLogger(__name__)


@dataclass
class AccountError:
    """Details about one failed account."""
    account_key: str
    operation: str
    error: str
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ErrorSummary:
    """Summary of all errors during a run."""
    account_errors: List[AccountError]
    total_account_errors: int

    def get_error_messages(self, limit: int = 15) -> List[str]:
        """
        Get formatted error messages for API response.

        Args:
            limit: Maximum number of error messages to return

        Returns:
            List of formatted error messages
        """
        return [
            f"Account {err.account_key} ({err.operation}): {err.error}"
            for err in self.account_errors[:limit]
        ]


class ErrorTracker:
    """Tracks account-level errors of one run."""

    def __init__(self):
        """Initialize error tracker."""
        self.account_errors: List[AccountError] = []

    def track_account_error(self, error: AccountSyncError):
        """
        Track a failed account.

        Args:
            error: The structured account error raised by the runner
        """
        account_error = AccountError(
            account_key=error.account_key,
            operation=error.operation,
            error=error.error,
            context=error.to_dict(),
        )
        self.account_errors.append(account_error)

        logger.error(
            f"Account error: {error.account_key} ({error.operation}): {error.error}",
            extra={"account_key": error.account_key, "operation": error.operation},
        )

    def get_summary(self) -> ErrorSummary:
        """
        Get error summary.

        Returns:
            ErrorSummary with all tracked errors
        """
        return ErrorSummary(
            account_errors=list(self.account_errors),
            total_account_errors=len(self.account_errors),
        )

    def has_errors(self) -> bool:
        """Check if any errors were tracked."""
        return len(self.account_errors) > 0

    def clear(self):
        """Clear all tracked errors."""
        self.account_errors.clear()
