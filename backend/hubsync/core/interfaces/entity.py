"""
Abstract Entity Definition Interface.
Defines what the sync engine needs to know about one synced entity type.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from hubsync.models.event import OutboundEvent


class EntityDefinition(ABC):
    """
    Base class for one synced entity type (contacts, companies, meetings).

    The sync engine stays agnostic of the entity: it searches
    `object_type` filtered on `filter_property`, asks for `properties`,
    and turns each record into at most one event via `project`.
    """

    name: str
    object_type: str
    filter_property: str
    properties: List[str]

    async def prepare(self, client: Any, page: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Loads per-page context needed by `project` (e.g. associations).

        Args:
            client: HubSpot client of the current account
            page: Records of the current page

        Returns:
            Context passed to `project` for every record of the page
        """
        return {}

    @abstractmethod
    def project(
        self,
        record: Dict[str, Any],
        watermark: Optional[datetime],
        context: Dict[str, Any],
    ) -> Optional[OutboundEvent]:
        """
        Builds the outbound event for a record.

        Returns:
            The event, or None if the record is skipped
        """
        pass
