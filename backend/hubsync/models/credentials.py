"""
Access credentials issued by a HubSpot token refresh.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class AccessGrant:
    """
    Access token with its absolute expiry.

    Created once per account by the credential refresh and passed explicitly
    to every retried call for that account.
    """
    access_token: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at
