"""
Sync Orchestrator.

Coordinates one pull from HubSpot across every account of the domain.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from hubsync.core.config import Settings, get_settings
from hubsync.core.interfaces.entity import EntityDefinition
from hubsync.integrations.hubspot.client import HubSpotClient
from hubsync.integrations.hubspot.entities import build_entity_registry
from hubsync.models.domain import Domain
from hubsync.services.checkpoint_store import (
    CheckpointStrategy,
    DomainRepository,
    get_checkpoint_strategy,
    get_domain_repository,
)
from hubsync.services.crm_sync.account_runner import AccountSyncRunner
from hubsync.services.crm_sync.entity_jobs import EntitySyncJob
from hubsync.services.crm_sync.error_tracker import ErrorTracker
from hubsync.services.crm_sync.errors import (
    AccountSyncError,
    DomainNotFoundError,
    NoAccountsError,
)
from hubsync.services.crm_sync.event_queue import EventQueue
from hubsync.services.crm_sync.retrier import Retrier
from hubsync.services.sink import EventSink, get_event_sink
from hubsync.services.sync_status import sync_status

logger = logging.getLogger(__name__)


@dataclass
class SyncRunResult:
    """Result of a pull."""
    status: str
    accounts_processed: int
    accounts_failed: int
    events_pushed: int
    message: str
    errors: List[str]

    @property
    def is_success(self) -> bool:
        """Check if sync was fully successful."""
        return self.status == "success" and len(self.errors) == 0

    @property
    def is_partial_success(self) -> bool:
        """Check if some accounts failed while others completed."""
        return self.status == "partial_success"


class SyncOrchestrator:
    """
    Orchestrates a pull.

    Responsibilities:
    - Load the domain once
    - Run accounts strictly one after another, each with a fresh queue
    - Abort on the first failing account, or record it and continue
    """

    def __init__(
        self,
        repository: DomainRepository,
        client: HubSpotClient,
        checkpoint: CheckpointStrategy,
        sink_factory: Callable[[Domain], EventSink],
        settings: Optional[Settings] = None,
        retrier: Optional[Retrier] = None,
        registry: Optional[Dict[str, EntityDefinition]] = None,
    ):
        """
        Args:
            repository: Source of the domain aggregate
            client: HubSpot client
            checkpoint: Checkpoint strategy (no-op unless persistence is enabled)
            sink_factory: Builds the event sink for a domain
            settings: Optional settings override
            retrier: Optional retrier override
            registry: Optional entity registry override
        """
        self.settings = settings or get_settings()
        self.repository = repository
        self.client = client
        self.checkpoint = checkpoint
        self.sink_factory = sink_factory
        self.retrier = retrier or Retrier(
            max_attempts=self.settings.retry_attempts,
            base_delay=self.settings.retry_base_delay_seconds,
        )
        self.registry = registry or build_entity_registry(self.settings.action_date_offset_ms)
        self.error_tracker = ErrorTracker()

    def _build_job(self, definition: EntityDefinition) -> EntitySyncJob:
        return EntitySyncJob(
            definition=definition,
            client=self.client,
            retrier=self.retrier,
            checkpoint=self.checkpoint,
            page_size=self.settings.search_page_size,
            offset_ceiling=self.settings.offset_ceiling,
        )

    def _build_queue(self, domain: Domain, sink: EventSink) -> EventQueue:
        return EventQueue(sink, flush_threshold=self.settings.flush_threshold, api_key=domain.api_key)

    async def pull(self) -> SyncRunResult:
        """
        Pulls every account of the domain.

        Returns:
            SyncRunResult with account and event counts

        Raises:
            DomainNotFoundError: If no domain is stored
            NoAccountsError: If the domain has no accounts
            AccountSyncError: For the first failing account, unless
                CONTINUE_ON_ACCOUNT_ERROR is set
        """
        sync_status.start_sync()
        self.error_tracker.clear()

        try:
            result = await self._pull()
        except Exception as e:
            sync_status.add_error(str(e))
            sync_status.complete_sync(success=False)
            raise

        sync_status.complete_sync(success=result.status != "error")
        return result

    async def _pull(self) -> SyncRunResult:
        domain = await self.repository.find_one()
        if domain is None:
            raise DomainNotFoundError(
                "Failed to retrieve data from hubspot as domain information could not be retrieved"
            )
        if not domain.accounts:
            raise NoAccountsError("There are no associated domain accounts to pull data from")

        sync_status.set_accounts_total(len(domain.accounts))
        logger.info(f"Pulling {len(domain.accounts)} HubSpot accounts")

        sink = self.sink_factory(domain)
        runner = AccountSyncRunner.for_registry(
            client=self.client,
            registry=self.registry,
            job_factory=self._build_job,
            checkpoint=self.checkpoint,
            queue_factory=lambda d: self._build_queue(d, sink),
        )

        processed = 0
        events = 0
        try:
            for account in domain.accounts:
                try:
                    account_result = await runner.run(domain, account)
                except AccountSyncError as e:
                    sync_status.finish_account(success=False)
                    if not self.settings.continue_on_account_error:
                        raise
                    self.error_tracker.track_account_error(e)
                    sync_status.add_error(str(e))
                    continue

                sync_status.finish_account(success=True)
                processed += 1
                events += account_result.events
        finally:
            await sink.aclose()

        return self._build_result(processed, events)

    def _build_result(self, processed: int, events: int) -> SyncRunResult:
        summary = self.error_tracker.get_summary()
        failed = summary.total_account_errors
        errors = summary.get_error_messages()

        if not self.error_tracker.has_errors():
            status = "success"
            message = f"Pull completed: {processed} accounts synced, {events} events"
        elif processed:
            status = "partial_success"
            message = f"Partial pull: {processed} accounts synced, {failed} failed, {events} events"
        else:
            status = "error"
            message = f"Pull failed for all {failed} accounts"

        logger.info(message)

        return SyncRunResult(
            status=status,
            accounts_processed=processed,
            accounts_failed=failed,
            events_pushed=events,
            message=message,
            errors=errors,
        )


async def run_pull(settings: Optional[Settings] = None) -> SyncRunResult:
    """
    Builds an orchestrator from configuration and runs one pull.

    Args:
        settings: Optional settings override

    Returns:
        SyncRunResult of the pull
    """
    settings = settings or get_settings()
    repository = get_domain_repository()
    checkpoint = get_checkpoint_strategy(repository, settings)

    async with HubSpotClient(
        client_id=settings.hubspot_client_id,
        client_secret=settings.hubspot_client_secret,
        api_base_url=settings.hubspot_api_base_url,
        timeout=settings.http_timeout_seconds,
    ) as client:
        orchestrator = SyncOrchestrator(
            repository=repository,
            client=client,
            checkpoint=checkpoint,
            sink_factory=lambda domain: get_event_sink(domain.api_key, settings),
            settings=settings,
        )
        return await orchestrator.pull()
