"""
Event Queue for outbound sync events.

Events are pushed into an unbounded channel and staged by a single consumer
task in arrival order. Whenever the stage grows past the flush threshold, a
full batch is cut off and handed to the sink. Sink hand-off is not awaited:
delivery is at-least-once with no retry on the sink side.
"""

import asyncio
import logging
from typing import List, Optional

from hubsync.models.event import OutboundEvent
from hubsync.services.sink import EventSink

logger = logging.getLogger(__name__)


class EventQueue:
    """
    Ordered buffer with automatic size-triggered flush.

    Contract: push(), length(), drain(), close(). The consumer task is an
    implementation detail and is started on the first push.
    """

    def __init__(
        self,
        sink: EventSink,
        flush_threshold: int = 2000,
        api_key: Optional[str] = None,
    ):
        """
        Args:
            sink: Receives batches of events
            flush_threshold: Batch size handed to the sink once the stage exceeds it
            api_key: Domain API key, used for log context only
        """
        self.sink = sink
        self.flush_threshold = flush_threshold
        self.api_key = api_key

        self._channel: asyncio.Queue = asyncio.Queue()
        self._staged: List[OutboundEvent] = []
        self._consumer: Optional[asyncio.Task] = None

        self.pushed = 0
        self.flushes = 0

    async def push(self, event: OutboundEvent) -> None:
        """Enqueues one event. Never blocks, never fails."""
        self._ensure_consumer()
        self._channel.put_nowait(event)
        self.pushed += 1

    def length(self) -> int:
        """Number of pushed events not yet staged by the consumer."""
        return self._channel.qsize()

    def staged(self) -> int:
        """Number of staged events waiting for the next flush."""
        return len(self._staged)

    async def drain(self) -> bool:
        """
        Waits for every pending push, then flushes whatever is staged.

        Safe to call more than once; later calls flush only new events.

        Returns:
            True once everything has been handed to the sink
        """
        if self._consumer is not None:
            await self._channel.join()
        await self.close()
        return True

    async def close(self) -> None:
        """
        Stops the consumer and hands every event not yet flushed to the sink.

        Used when an account run is aborted: events pushed by entity jobs
        that already advanced their watermarks are still delivered.
        """
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None

        while not self._channel.empty():
            self._staged.append(self._channel.get_nowait())
            self._channel.task_done()

        while self._staged:
            batch = self._staged[:self.flush_threshold]
            self._staged = self._staged[self.flush_threshold:]
            self._flush(batch)

    def active(self) -> bool:
        """True while the consumer task is running."""
        return self._consumer is not None and not self._consumer.done()

    def _ensure_consumer(self) -> None:
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.create_task(self._consume(), name="event-queue-consumer")

    async def _consume(self) -> None:
        while True:
            event = await self._channel.get()
            try:
                self._stage(event)
            finally:
                self._channel.task_done()

    def _stage(self, event: OutboundEvent) -> None:
        # no await between the size check and the swap
        self._staged.append(event)
        if len(self._staged) > self.flush_threshold:
            batch = self._staged[:self.flush_threshold]
            self._staged = self._staged[self.flush_threshold:]
            self._flush(batch)

    def _flush(self, batch: List[OutboundEvent]) -> None:
        self.flushes += 1
        logger.info(
            f"Flushing {len(batch)} actions to sink",
            extra={"api_key": self.api_key, "count": len(batch)},
        )
        try:
            self.sink.send(batch)
        except Exception as e:
            # the core never waits on sink acknowledgement
            logger.error(f"Sink rejected batch of {len(batch)} actions: {e}", exc_info=True)
