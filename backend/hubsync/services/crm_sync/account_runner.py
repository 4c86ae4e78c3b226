"""
Account Sync Runner.

Runs one account through a fixed sequence of steps:

    refreshAccessToken -> processContacts -> processCompanies
    -> processMeetings -> drainQueue -> saveCheckpoint

The first failing step aborts the account. Entity jobs that completed
before the failure keep their advanced watermarks, and the events they
pushed are still handed to the sink when the queue is closed. Retrying is
the Retrier's job, not the runner's.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from hubsync.core.interfaces.entity import EntityDefinition
from hubsync.integrations.hubspot.client import HubSpotAuthError, HubSpotClient
from hubsync.models.credentials import AccessGrant
from hubsync.models.domain import Account, Domain
from hubsync.services.checkpoint_store import CheckpointStrategy
from hubsync.services.crm_sync.entity_jobs import EntityJobResult, EntitySyncJob
from hubsync.services.crm_sync.errors import AccountSyncError, CredentialRefreshError
from hubsync.services.crm_sync.event_queue import EventQueue
from hubsync.services.sync_status import SyncPhase, sync_status

logger = logging.getLogger(__name__)


def operation_name(entity_type: str) -> str:
    """processContacts, processCompanies, processMeetings, ..."""
    return f"process{entity_type[:1].upper()}{entity_type[1:]}"


@dataclass
class AccountSyncResult:
    """Result of one account run."""
    account_key: str
    jobs: List[EntityJobResult] = field(default_factory=list)

    @property
    def events(self) -> int:
        return sum(job.events for job in self.jobs)


class AccountSyncRunner:
    """Sequential per-account state machine."""

    def __init__(
        self,
        client: HubSpotClient,
        jobs: List[EntitySyncJob],
        checkpoint: CheckpointStrategy,
        queue_factory: Callable[[Domain], EventQueue],
    ):
        """
        Args:
            client: HubSpot client shared by all steps of the account
            jobs: Entity jobs in execution order
            checkpoint: Checkpoint strategy invoked after token change and at the end
            queue_factory: Builds a fresh event queue per account
        """
        self.client = client
        self.jobs = jobs
        self.checkpoint = checkpoint
        self.queue_factory = queue_factory

    @classmethod
    def for_registry(
        cls,
        client: HubSpotClient,
        registry: Dict[str, EntityDefinition],
        job_factory: Callable[[EntityDefinition], EntitySyncJob],
        checkpoint: CheckpointStrategy,
        queue_factory: Callable[[Domain], EventQueue],
    ) -> "AccountSyncRunner":
        """Builds one job per registered entity, keeping registry order."""
        jobs = [job_factory(definition) for definition in registry.values()]
        return cls(client, jobs, checkpoint, queue_factory)

    async def run(self, domain: Domain, account: Account) -> AccountSyncResult:
        """
        Syncs every entity type of one account.

        Raises:
            AccountSyncError: With the failing operation and the account key
        """
        account_key = account.hub_id
        result = AccountSyncResult(account_key=account_key)
        sync_status.start_account(account_key)
        logger.info(f"Processing account {account_key}")

        sync_status.update_phase(SyncPhase.REFRESHING_CREDENTIALS, f"Refreshing token for {account_key}...")
        grant = await self._step(domain, account, "refreshAccessToken", self._refresh_credentials(domain, account))

        queue = self.queue_factory(domain)

        try:
            for job in self.jobs:
                job_result = await self._step(
                    domain,
                    account,
                    operation_name(job.entity_type),
                    job.run(domain, account, queue, grant),
                )
                result.jobs.append(job_result)

            sync_status.update_phase(SyncPhase.DRAINING_QUEUE, f"Draining queue for {account_key}...")
            await self._step(domain, account, "drainQueue", queue.drain())

            sync_status.update_phase(SyncPhase.SAVING_CHECKPOINT, f"Saving checkpoint for {account_key}...")
            await self._step(domain, account, "saveCheckpoint", self.checkpoint.save(domain))
        finally:
            # nothing left after a successful drain
            await queue.close()

        logger.info(f"Finished processing account {account_key} ({result.events} events)")
        return result

    async def _step(self, domain: Domain, account: Account, operation: str, coro):
        try:
            return await coro
        except Exception as e:
            logger.error(f"Account {account.hub_id} failed at {operation}: {e}", exc_info=True)
            raise AccountSyncError(
                error=str(e),
                account_key=account.hub_id,
                operation=operation,
                api_key=domain.api_key,
            ) from e

    async def _refresh_credentials(self, domain: Domain, account: Account) -> AccessGrant:
        try:
            grant = await self.client.refresh_access_token(account.refresh_token)
        except HubSpotAuthError as e:
            raise CredentialRefreshError(str(e)) from e

        account.access_token_expiry = grant.expires_at
        if account.access_token != grant.access_token:
            account.access_token = grant.access_token
            await self.checkpoint.save(domain)

        return grant
