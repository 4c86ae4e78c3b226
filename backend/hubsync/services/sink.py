"""
Event Sinks.

A sink receives ordered batches of outbound events. Hand-off is
fire-and-forget: send() returns immediately and delivery failures are
logged, never raised back into the sync engine.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Set

import httpx

from hubsync.core.config import Settings, get_settings
from hubsync.models.event import OutboundEvent

logger = logging.getLogger(__name__)


class EventSink(ABC):
    """Destination for batches of outbound events."""

    @abstractmethod
    def send(self, events: List[OutboundEvent]) -> None:
        """Hands a batch over without waiting for acknowledgement."""
        pass

    async def aclose(self) -> None:
        """Releases resources; waits for deliveries still in flight."""
        return None


class LoggingSink(EventSink):
    """Sink used when no goal endpoint is configured."""

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key

    def send(self, events: List[OutboundEvent]) -> None:
        logger.info(f"Goal: {len(events)} actions (apiKey: {self.api_key})")
        for event in events:
            logger.debug(f"  {event.action_name} @ {event.action_date.isoformat()}")


class HttpGoalSink(EventSink):
    """
    Posts batches to the goal endpoint as background tasks.

    Payload: {"apiKey": ..., "actions": [event.to_dict(), ...]}
    """

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._pending: Set[asyncio.Task] = set()

    def send(self, events: List[OutboundEvent]) -> None:
        payload = {
            "apiKey": self.api_key,
            "actions": [event.to_dict() for event in events],
        }
        task = asyncio.create_task(self._deliver(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, payload: dict) -> None:
        count = len(payload["actions"])
        try:
            response = await self._client.post(self.url, json=payload)
            if response.status_code >= 400:
                logger.error(f"Goal endpoint rejected {count} actions: {response.status_code} - {response.text}")
                return
            logger.debug(f"Delivered {count} actions to goal endpoint")
        except httpx.RequestError as e:
            logger.error(f"Network error delivering {count} actions: {e}")

    async def aclose(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self._client.aclose()


def get_event_sink(api_key: Optional[str] = None, settings: Optional[Settings] = None) -> EventSink:
    """
    Builds the sink configured by GOAL_URL.

    Args:
        api_key: Domain API key attached to every batch
        settings: Optional settings override

    Returns:
        HttpGoalSink if GOAL_URL is set, LoggingSink otherwise
    """
    settings = settings or get_settings()
    if settings.goal_url:
        return HttpGoalSink(settings.goal_url, api_key=api_key, timeout=settings.http_timeout_seconds)
    return LoggingSink(api_key=api_key)
