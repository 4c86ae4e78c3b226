"""
Tests for the checkpoint store on SQLite.
"""

from datetime import datetime, timezone

import pytest
from unittest.mock import AsyncMock

from hubsync.models.domain import Account, Domain
from hubsync.services.checkpoint_store import (
    DomainRepository,
    DurableCheckpoint,
    NoOpCheckpoint,
    get_checkpoint_strategy,
)

WATERMARK = datetime(2023, 6, 1, 8, 30, tzinfo=timezone.utc)


def make_domain():
    return Domain(
        api_key="key-1",
        accounts=[
            Account(
                hub_id="hub-1",
                refresh_token="refresh",
                access_token="access",
                access_token_expiry=WATERMARK,
                watermarks={"contacts": WATERMARK},
            ),
            Account(hub_id="hub-2", refresh_token="refresh-2"),
        ],
    )


class TestAccountSerialization:
    """Tests for the stored account document."""

    def test_round_trip_keeps_watermarks(self):
        account = make_domain().accounts[0]

        restored = Account.from_dict(account.to_dict())

        assert restored == account

    def test_stored_keys(self):
        data = make_domain().accounts[0].to_dict()

        assert data["hubId"] == "hub-1"
        assert data["lastPulledDates"] == {"contacts": "2023-06-01T08:30:00+00:00"}

    def test_unparseable_watermark_is_ignored(self):
        account = Account.from_dict({"hubId": 7, "refreshToken": "r", "lastPulledDates": {"contacts": "never"}})

        assert account.hub_id == "7"
        assert account.watermarks == {}


@pytest.mark.asyncio
class TestDomainRepository:
    """Tests for loading and saving the domain aggregate."""

    async def test_find_one_without_domain(self, session_maker):
        assert await DomainRepository(session_maker).find_one() is None

    async def test_save_and_reload(self, session_maker):
        repository = DomainRepository(session_maker)
        domain = make_domain()

        await repository.save(domain)
        loaded = await repository.find_one()

        assert domain.id is not None
        assert loaded.id == domain.id
        assert loaded.api_key == "key-1"
        assert [a.hub_id for a in loaded.accounts] == ["hub-1", "hub-2"]
        assert loaded.accounts[0].watermarks == {"contacts": WATERMARK}

    async def test_save_updates_in_place(self, session_maker):
        repository = DomainRepository(session_maker)
        domain = make_domain()
        await repository.save(domain)
        first_id = domain.id

        later = datetime(2023, 7, 1, tzinfo=timezone.utc)
        domain.accounts[1].watermarks["meetings"] = later
        await repository.save(domain)
        loaded = await repository.find_one()

        assert loaded.id == first_id
        assert loaded.accounts[1].watermarks == {"meetings": later}


@pytest.mark.asyncio
class TestCheckpointStrategies:
    """Tests for the persistence toggle."""

    async def test_noop_does_not_write(self, session_maker):
        domain = make_domain()

        await NoOpCheckpoint().save(domain)

        assert domain.id is None
        assert await DomainRepository(session_maker).find_one() is None

    async def test_durable_writes_through(self, session_maker):
        repository = DomainRepository(session_maker)
        domain = make_domain()

        await DurableCheckpoint(repository).save(domain)

        assert (await repository.find_one()).id == domain.id

    async def test_strategy_follows_setting(self, settings):
        repository = AsyncMock()

        assert isinstance(get_checkpoint_strategy(repository, settings), NoOpCheckpoint)

        settings.checkpoint_persistence_enabled = True
        assert isinstance(get_checkpoint_strategy(repository, settings), DurableCheckpoint)
