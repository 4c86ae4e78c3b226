"""
Checkpoint Store.

The DomainRepository reads and writes the Domain aggregate. Whether the
sync engine actually writes checkpoints is a separate strategy chosen by
configuration: persistence is disabled by default, so runs leave the
stored watermarks untouched unless CHECKPOINT_PERSISTENCE_ENABLED is set.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hubsync.core.config import Settings, get_settings
from hubsync.db.session import get_session_maker
from hubsync.models.domain import Domain, DomainRecord

logger = logging.getLogger(__name__)


class DomainRepository:
    """SQLAlchemy-backed access to the (single) Domain aggregate."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def find_one(self) -> Optional[Domain]:
        """
        Loads the first domain.

        Returns:
            Domain, or None if no domain is stored
        """
        async with self.session_maker() as session:
            result = await session.execute(select(DomainRecord).order_by(DomainRecord.id).limit(1))
            record = result.scalar_one_or_none()

        if record is None:
            return None
        return record.to_domain()

    async def save(self, domain: Domain) -> Domain:
        """
        Writes the domain's accounts (tokens and watermarks).

        Inserts a new row when the domain has no id yet.
        """
        async with self.session_maker() as session:
            async with session.begin():
                record = await session.get(DomainRecord, domain.id) if domain.id is not None else None
                if record is None:
                    record = DomainRecord(api_key=domain.api_key)
                    session.add(record)
                record.api_key = domain.api_key
                record.accounts = domain.accounts_payload()
                await session.flush()
                domain.id = record.id

        logger.debug(f"Saved domain {domain.id} ({len(domain.accounts)} accounts)")
        return domain


class CheckpointStrategy(ABC):
    """Decides whether and how sync progress is persisted."""

    @abstractmethod
    async def save(self, domain: Domain) -> None:
        pass


class NoOpCheckpoint(CheckpointStrategy):
    """Persistence disabled: watermarks only live in memory for the run."""

    async def save(self, domain: Domain) -> None:
        logger.debug("Checkpoint persistence disabled, skipping save")


class DurableCheckpoint(CheckpointStrategy):
    """Writes the domain back through the repository."""

    def __init__(self, repository: DomainRepository):
        self.repository = repository

    async def save(self, domain: Domain) -> None:
        await self.repository.save(domain)


def get_domain_repository() -> DomainRepository:
    """Repository bound to the configured database."""
    return DomainRepository(get_session_maker())


def get_checkpoint_strategy(
    repository: DomainRepository,
    settings: Optional[Settings] = None,
) -> CheckpointStrategy:
    """
    Selects the checkpoint strategy from CHECKPOINT_PERSISTENCE_ENABLED.

    Args:
        repository: Repository used when persistence is enabled
        settings: Optional settings override
    """
    settings = settings or get_settings()
    if settings.checkpoint_persistence_enabled:
        logger.info("Checkpoint persistence enabled")
        return DurableCheckpoint(repository)
    logger.info("Checkpoint persistence disabled")
    return NoOpCheckpoint()
