"""
Entity Sync Job.

Pulls one entity type for one account: walks the search results modified
since the account's watermark, projects each record into at most one event,
pushes the events to the queue, and advances the watermark once the whole
walk has succeeded.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from hubsync.core.interfaces.entity import EntityDefinition
from hubsync.integrations.hubspot.client import HubSpotAPIError, HubSpotClient
from hubsync.models.credentials import AccessGrant
from hubsync.models.domain import Account, Domain
from hubsync.services.checkpoint_store import CheckpointStrategy
from hubsync.services.crm_sync.errors import (
    AssociationLookupError,
    EntitySyncError,
    SyncError,
)
from hubsync.services.crm_sync.event_queue import EventQueue
from hubsync.services.crm_sync.paginator import Paginator
from hubsync.services.crm_sync.retrier import Retrier
from hubsync.services.sync_status import sync_status
from hubsync.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


@dataclass
class EntityJobResult:
    """Result of one entity job."""
    entity_type: str
    pages: int
    records: int
    events: int
    watermark: datetime


class EntitySyncJob:
    """Runs one entity definition against one account."""

    def __init__(
        self,
        definition: EntityDefinition,
        client: HubSpotClient,
        retrier: Retrier,
        checkpoint: CheckpointStrategy,
        page_size: int = 100,
        offset_ceiling: int = 9900,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.definition = definition
        self.client = client
        self.retrier = retrier
        self.checkpoint = checkpoint
        self.page_size = page_size
        self.offset_ceiling = offset_ceiling
        self._clock = clock

    @property
    def entity_type(self) -> str:
        return self.definition.name

    async def run(
        self,
        domain: Domain,
        account: Account,
        queue: EventQueue,
        grant: AccessGrant,
    ) -> EntityJobResult:
        """
        Syncs the entity type for the account.

        Args:
            domain: Aggregate the account belongs to (checkpointed on success)
            account: Account whose watermark is read and advanced
            queue: Destination of the projected events
            grant: Access grant from this account's credential refresh

        Returns:
            EntityJobResult with page, record and event counts

        Raises:
            EntitySyncError: Wrapping the fetch, expiry, association or
                malformed-record failure that stopped the walk
        """
        watermark = account.watermarks.get(self.entity_type)
        # upper bound for the whole walk
        now = self._clock()

        logger.info(
            f"Syncing {self.entity_type} for account {account.hub_id} "
            f"(since {watermark.isoformat() if watermark else 'beginning'})"
        )
        sync_status.update_entity(self.entity_type)

        paginator = Paginator(
            search=lambda body: self.client.search(self.definition.object_type, body),
            entity_type=self.entity_type,
            filter_property=self.definition.filter_property,
            properties=self.definition.properties,
            watermark=watermark,
            now=now,
            grant=grant,
            retrier=self.retrier,
            page_size=self.page_size,
            offset_ceiling=self.offset_ceiling,
        )

        records = 0
        events = 0
        try:
            async for page in paginator:
                context = await self._prepare(page)
                page_events = 0
                for record in page:
                    event = self.definition.project(record, watermark, context)
                    if event is None:
                        continue
                    await queue.push(event)
                    page_events += 1

                records += len(page)
                events += page_events
                sync_status.record_page(self.entity_type, page_events)
        except SyncError as e:
            raise EntitySyncError(self.entity_type, e) from e

        account.watermarks[self.entity_type] = now
        await self.checkpoint.save(domain)

        logger.info(
            f"Finished {self.entity_type} for account {account.hub_id}: "
            f"{paginator.pages_fetched} pages, {records} records, {events} events"
        )

        return EntityJobResult(
            entity_type=self.entity_type,
            pages=paginator.pages_fetched,
            records=records,
            events=events,
            watermark=now,
        )

    async def _prepare(self, page):
        try:
            return await self.definition.prepare(self.client, page)
        except HubSpotAPIError as e:
            raise AssociationLookupError(f"{self.entity_type} association lookup failed: {e}") from e
