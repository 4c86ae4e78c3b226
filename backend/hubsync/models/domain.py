"""
Domain model - the aggregate holding connected HubSpot accounts.

A Domain owns a list of Accounts (one per HubSpot portal) plus the API key
used to attribute outbound events. Accounts carry the OAuth credentials and
the per-entity watermarks that make each run incremental.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from hubsync.db.base import Base
from hubsync.utils.timestamps import parse_timestamp, to_iso


@dataclass
class Account:
    """One connected HubSpot portal."""

    hub_id: str
    refresh_token: str
    access_token: Optional[str] = None
    access_token_expiry: Optional[datetime] = None
    # entity type name -> last fully synced timestamp
    watermarks: Dict[str, datetime] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hubId": self.hub_id,
            "refreshToken": self.refresh_token,
            "accessToken": self.access_token,
            "accessTokenExpiry": to_iso(self.access_token_expiry),
            "lastPulledDates": {name: to_iso(value) for name, value in self.watermarks.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        watermarks = {}
        for name, value in (data.get("lastPulledDates") or {}).items():
            parsed = parse_timestamp(value)
            if parsed is not None:
                watermarks[name] = parsed

        return cls(
            hub_id=str(data["hubId"]),
            refresh_token=data["refreshToken"],
            access_token=data.get("accessToken"),
            access_token_expiry=parse_timestamp(data.get("accessTokenExpiry")),
            watermarks=watermarks,
        )


@dataclass
class Domain:
    """Aggregate root loaded once per run and mutated in place."""

    api_key: str
    accounts: List[Account] = field(default_factory=list)
    id: Optional[int] = None

    def accounts_payload(self) -> List[Dict[str, Any]]:
        return [account.to_dict() for account in self.accounts]


class DomainRecord(Base):
    """
    SQLAlchemy row backing a Domain.

    Accounts are stored as a JSON document; the sync engine only ever
    rewrites the whole list.
    """

    __tablename__ = "hubspot_domains"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    api_key: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="API key events are attributed to",
    )

    accounts: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Connected HubSpot accounts with tokens and watermarks",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def to_domain(self) -> Domain:
        return Domain(
            id=self.id,
            api_key=self.api_key,
            accounts=[Account.from_dict(item) for item in (self.accounts or [])],
        )

    def __repr__(self) -> str:
        return f"<DomainRecord(id={self.id}, accounts={len(self.accounts or [])})>"
