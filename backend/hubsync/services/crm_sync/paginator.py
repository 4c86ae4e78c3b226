"""
Paginator for HubSpot search endpoints.

HubSpot search rejects offsets beyond a fixed window. Once the next offset
reaches that ceiling, the walk restarts from the modification date of the
last record seen instead of continuing by offset. Records sharing that
boundary timestamp may be delivered twice; none are skipped.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from hubsync.services.crm_sync.errors import (
    CredentialExpiredError,
    FetchExhaustedError,
    MalformedRecordError,
)
from hubsync.models.credentials import AccessGrant
from hubsync.services.crm_sync.retrier import Exhausted, Expired, Retrier
from hubsync.utils.timestamps import parse_timestamp, to_epoch_ms

logger = logging.getLogger(__name__)

SearchCall = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]


@dataclass
class PageCursor:
    """Resumption state: by offset until the ceiling is hit, then by date."""
    after: Optional[int] = None
    last_modified_date: Optional[datetime] = None


def build_date_filter(
    property_name: str,
    lower: Optional[datetime],
    upper: datetime,
) -> Dict[str, Any]:
    """
    Builds the filter group selecting records modified in [lower, upper].

    Args:
        property_name: Modification timestamp property (e.g. "lastmodifieddate")
        lower: Inclusive lower bound, or None for no lower bound
        upper: Inclusive upper bound

    Returns:
        HubSpot filter group
    """
    filters = []
    if lower is not None:
        filters.append({"propertyName": property_name, "operator": "GTE", "value": f"{to_epoch_ms(lower)}"})
    filters.append({"propertyName": property_name, "operator": "LTE", "value": f"{to_epoch_ms(upper)}"})
    return {"filters": filters}


def parse_after(paging: Optional[Dict[str, Any]]) -> Optional[int]:
    """Extracts the next offset token as an int, None if absent or unparseable."""
    raw = ((paging or {}).get("next") or {}).get("after")
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


class Paginator:
    """
    Walks one entity type's search results from a watermark up to a fixed now.

    Usage:
        async for page in Paginator(...):
            ...
    """

    def __init__(
        self,
        search: SearchCall,
        entity_type: str,
        filter_property: str,
        properties: List[str],
        watermark: Optional[datetime],
        now: datetime,
        grant: AccessGrant,
        retrier: Retrier,
        page_size: int = 100,
        offset_ceiling: int = 9900,
    ):
        self.search = search
        self.entity_type = entity_type
        self.filter_property = filter_property
        self.properties = properties
        self.watermark = watermark
        self.now = now
        self.grant = grant
        self.retrier = retrier
        self.page_size = page_size
        self.offset_ceiling = offset_ceiling
        self.cursor = PageCursor()
        self.pages_fetched = 0

    def _lower_bound(self) -> Optional[datetime]:
        bounds = [d for d in (self.watermark, self.cursor.last_modified_date) if d is not None]
        return max(bounds) if bounds else None

    def build_request(self) -> Dict[str, Any]:
        """Builds the search body for the current cursor."""
        lower = self._lower_bound()

        body: Dict[str, Any] = {
            "filterGroups": [build_date_filter(self.filter_property, lower, self.now)],
            "sorts": [{"propertyName": self.filter_property, "direction": "ASCENDING"}],
            "properties": list(self.properties),
            "limit": self.page_size,
        }
        if self.cursor.after is not None:
            body["after"] = self.cursor.after
        return body

    async def _fetch(self, body: Dict[str, Any]) -> Dict[str, Any]:
        outcome = await self.retrier.attempt(
            lambda: self.search(body),
            self.grant,
            label=self.entity_type,
        )
        if isinstance(outcome, Expired):
            raise CredentialExpiredError(self.entity_type)
        if isinstance(outcome, Exhausted):
            raise FetchExhaustedError(self.entity_type, outcome.attempts, outcome.error) from outcome.error
        return outcome.value

    def __aiter__(self) -> AsyncIterator[List[Dict[str, Any]]]:
        return self._walk()

    async def _walk(self) -> AsyncIterator[List[Dict[str, Any]]]:
        while True:
            response = await self._fetch(self.build_request())
            page = response.get("results") or []
            self.pages_fetched += 1
            logger.info(f"Fetched {self.entity_type} page {self.pages_fetched} ({len(page)} records)")

            yield page

            next_after = parse_after(response.get("paging"))
            if next_after is None:
                return

            if next_after >= self.offset_ceiling:
                self._resume_by_date(page)
            else:
                self.cursor.after = next_after

    def _resume_by_date(self, page: List[Dict[str, Any]]) -> None:
        if not page:
            raise MalformedRecordError(
                f"{self.entity_type}: offset ceiling reached on an empty page, cannot resume by date"
            )

        last = page[-1]
        resume_from = parse_timestamp(last.get("updatedAt"))
        if resume_from is None:
            raise MalformedRecordError(
                f"{self.entity_type} record {last.get('id')} has no modification timestamp, cannot resume by date"
            )

        current_lower = self._lower_bound()
        if current_lower is not None and resume_from <= current_lower:
            # the same request would be issued again
            raise MalformedRecordError(
                f"{self.entity_type}: a full result window shares modification date "
                f"{resume_from.isoformat()}, walk cannot advance"
            )

        logger.info(f"{self.entity_type}: offset ceiling reached, resuming from {resume_from.isoformat()}")
        self.cursor.after = None
        self.cursor.last_modified_date = resume_from
