"""
Retrier for remote HubSpot calls.

Wraps one call with a bounded retry budget and exponential backoff, and
stops early when the access token has expired, since no retry can succeed
until the credentials are refreshed.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from hubsync.models.credentials import AccessGrant
from hubsync.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class Exhausted:
    error: Optional[BaseException]
    attempts: int


@dataclass(frozen=True)
class Expired:
    attempts: int


SyncOutcome = Union[Success, Exhausted, Expired]


class Retrier:
    """
    Bounded retry with exponential backoff.

    States: trying -> success | backoff -> trying | exhausted | expired.
    The only state kept is the attempt counter of the current call.
    """

    def __init__(
        self,
        max_attempts: int = 2,
        base_delay: float = 5.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            max_attempts: Total attempts including the first call
            base_delay: Backoff unit in seconds; delay is base_delay * 2 ** attempts
            sleep: Awaitable sleep, injectable for tests
            clock: Returns the current aware datetime
        """
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep
        self._clock = clock

    async def attempt(
        self,
        call: Callable[[], Awaitable[T]],
        grant: AccessGrant,
        label: str = "request",
    ) -> SyncOutcome:
        """
        Runs the call until it succeeds, the budget is spent or the token expires.

        Args:
            call: Zero-argument coroutine factory; invoked again on every retry
            grant: Access grant of the account the call belongs to
            label: Name used in log messages (e.g. the entity type)

        Returns:
            Success(value), Exhausted(error) or Expired()
        """
        attempts = 0

        while True:
            try:
                return Success(await call())
            except Exception as e:
                attempts += 1
                last_error = e

            if attempts >= self.max_attempts:
                logger.error(f"Failed to fetch {label} after {attempts} tries: {last_error}")
                return Exhausted(error=last_error, attempts=attempts)

            if grant.is_expired(self._clock()):
                logger.warning(f"Access token expired while fetching {label}")
                return Expired(attempts=attempts)

            delay = self.base_delay * (2 ** attempts)
            logger.warning(f"Error fetching {label}: {last_error}. Retrying in {delay:.0f}s.")
            await self._sleep(delay)
