"""
Shared fixtures for the sync engine tests.
"""

from datetime import datetime, timedelta, timezone
from typing import List

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from hubsync.core.config import Settings
from hubsync.db.base import Base
from hubsync.models import domain  # noqa: F401
from hubsync.models.credentials import AccessGrant
from hubsync.models.event import OutboundEvent
from hubsync.services.sink import EventSink
from hubsync.services.sync_status import sync_status

NOW = datetime(2023, 7, 1, 12, 0, 0, tzinfo=timezone.utc)


class RecordingSink(EventSink):
    """Keeps every batch it receives."""

    def __init__(self):
        self.batches: List[List[OutboundEvent]] = []
        self.closed = False

    def send(self, events):
        self.batches.append(list(events))

    async def aclose(self):
        self.closed = True

    @property
    def events(self) -> List[OutboundEvent]:
        return [event for batch in self.batches for event in batch]


def make_record(record_id, created_at, updated_at=None, **properties):
    """Builds a raw HubSpot search result."""
    return {
        "id": str(record_id),
        "createdAt": created_at,
        "updatedAt": updated_at or created_at,
        "properties": properties,
    }


@pytest.fixture(autouse=True)
def reset_sync_status():
    """The status tracker is a process-wide singleton."""
    sync_status.reset()
    yield
    sync_status.reset()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        hubspot_client_id="cid",
        hubspot_client_secret="secret",
        retry_base_delay_seconds=0.0,
    )


@pytest.fixture
def grant():
    return AccessGrant(access_token="token", expires_at=NOW + timedelta(minutes=30))


@pytest.fixture
def expired_grant():
    return AccessGrant(access_token="token", expires_at=NOW - timedelta(seconds=1))


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
async def session_maker(tmp_path):
    """Session factory on a throwaway SQLite database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'hubsync.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()
