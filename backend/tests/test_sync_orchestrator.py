"""
Tests for the SyncOrchestrator.
"""

from datetime import timedelta

import pytest
from unittest.mock import AsyncMock, MagicMock

from conftest import NOW, RecordingSink, make_record
from hubsync.integrations.hubspot.client import HubSpotAuthError
from hubsync.models.credentials import AccessGrant
from hubsync.models.domain import Account, Domain
from hubsync.services.checkpoint_store import DomainRepository, DurableCheckpoint, NoOpCheckpoint
from hubsync.services.crm_sync import (
    AccountSyncError,
    DomainNotFoundError,
    NoAccountsError,
    Retrier,
    SyncOrchestrator,
)
from hubsync.services.sync_status import SyncPhase, sync_status


def make_domain(*hub_ids):
    return Domain(
        api_key="key-1",
        accounts=[Account(hub_id=hub_id, refresh_token=f"refresh-{hub_id}") for hub_id in hub_ids],
    )


def make_client():
    """One new contact per account, nothing else."""
    client = MagicMock()
    client.refresh_access_token = AsyncMock(
        return_value=AccessGrant(access_token="token", expires_at=NOW + timedelta(minutes=30))
    )

    async def search(object_type, body):
        if object_type == "contacts":
            return {"results": [make_record(1, "2023-06-01T00:00:00Z", email="a@b.com")]}
        return {"results": []}

    client.search = AsyncMock(side_effect=search)
    client.read_company_associations = AsyncMock(return_value={})
    return client


def make_repository(domain):
    repository = MagicMock()
    repository.find_one = AsyncMock(return_value=domain)
    return repository


def make_orchestrator(repository, client, settings, sink, checkpoint=None):
    return SyncOrchestrator(
        repository=repository,
        client=client,
        checkpoint=checkpoint or NoOpCheckpoint(),
        sink_factory=lambda domain: sink,
        settings=settings,
        retrier=Retrier(max_attempts=2, base_delay=0.0, sleep=AsyncMock()),
    )


@pytest.mark.asyncio
class TestSyncOrchestrator:
    """Tests for a whole pull."""

    async def test_missing_domain(self, settings, sink):
        orchestrator = make_orchestrator(make_repository(None), make_client(), settings, sink)

        with pytest.raises(DomainNotFoundError):
            await orchestrator.pull()

        assert sync_status.get_status()["phase"] == SyncPhase.ERROR

    async def test_domain_without_accounts(self, settings, sink):
        orchestrator = make_orchestrator(make_repository(make_domain()), make_client(), settings, sink)

        with pytest.raises(NoAccountsError, match="There are no associated domain accounts to pull data from"):
            await orchestrator.pull()

    async def test_pulls_every_account(self, settings, sink):
        domain = make_domain("hub-1", "hub-2")
        client = make_client()
        orchestrator = make_orchestrator(make_repository(domain), client, settings, sink)

        result = await orchestrator.pull()

        assert result.is_success
        assert result.accounts_processed == 2
        assert result.events_pushed == 2
        # one drain per account
        assert [len(batch) for batch in sink.batches] == [1, 1]
        assert sink.closed
        assert [c.args[0] for c in client.refresh_access_token.await_args_list] == ["refresh-hub-1", "refresh-hub-2"]
        for account in domain.accounts:
            assert set(account.watermarks) == {"contacts", "companies", "meetings"}

        status = sync_status.get_status()
        assert status["phase"] == SyncPhase.COMPLETED
        assert status["progress"]["accounts_processed"] == 2
        assert status["progress"]["events_pushed"] == 2

    async def test_first_failing_account_aborts_run(self, settings, sink):
        client = make_client()
        client.refresh_access_token.side_effect = HubSpotAuthError("invalid_grant")
        orchestrator = make_orchestrator(make_repository(make_domain("hub-1", "hub-2")), client, settings, sink)

        with pytest.raises(AccountSyncError) as exc_info:
            await orchestrator.pull()

        assert exc_info.value.account_key == "hub-1"
        assert exc_info.value.operation == "refreshAccessToken"
        assert client.refresh_access_token.await_count == 1
        assert sink.closed
        assert sync_status.get_status()["phase"] == SyncPhase.ERROR

    async def test_continue_on_account_error(self, settings, sink):
        settings.continue_on_account_error = True
        client = make_client()
        grant = AccessGrant(access_token="token", expires_at=NOW + timedelta(minutes=30))
        client.refresh_access_token.side_effect = [HubSpotAuthError("invalid_grant"), grant]
        orchestrator = make_orchestrator(make_repository(make_domain("hub-1", "hub-2")), client, settings, sink)

        result = await orchestrator.pull()

        assert result.is_partial_success
        assert result.accounts_processed == 1
        assert result.accounts_failed == 1
        assert result.events_pushed == 1
        assert "Account hub-1 (refreshAccessToken)" in result.errors[0]

    async def test_durable_checkpoint_persists_watermarks(self, settings, session_maker):
        repository = DomainRepository(session_maker)
        await repository.save(make_domain("hub-1"))
        orchestrator = make_orchestrator(
            repository, make_client(), settings, RecordingSink(), checkpoint=DurableCheckpoint(repository)
        )

        await orchestrator.pull()
        stored = await repository.find_one()

        assert stored.accounts[0].access_token == "token"
        assert set(stored.accounts[0].watermarks) == {"contacts", "companies", "meetings"}

    async def test_noop_checkpoint_leaves_store_untouched(self, settings, session_maker):
        repository = DomainRepository(session_maker)
        await repository.save(make_domain("hub-1"))
        orchestrator = make_orchestrator(repository, make_client(), settings, RecordingSink())

        await orchestrator.pull()
        stored = await repository.find_one()

        assert stored.accounts[0].access_token is None
        assert stored.accounts[0].watermarks == {}
