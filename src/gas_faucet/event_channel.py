"""
Ordered single-producer channel carrying EventReports to the orchestrator.

Wraps an asyncio.Queue with explicit close semantics so that a dead
producer is observable by the consumer.
"""

import asyncio
import logging

from .errors import ChannelClosedError, EventPipelineError
from .models import EventReport

logger = logging.getLogger(__name__)

_CLOSED = object()


class EventChannel:
    """
    FIFO channel between the SubscriptionClient and the GiftOrchestrator.

    Unbounded by default. Items are delivered in publish order. Once
    closed, publishing fails and receiving drains what is left before
    raising ChannelClosedError.
    """

    def __init__(self, maxsize: int = 0):
        """
        Initialize the channel.

        Args:
            maxsize: Maximum number of queued reports (0 for unbounded)
        """
        # One extra slot keeps room for the close marker on a bounded queue
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize + 1 if maxsize else 0)
        self._maxsize = maxsize
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, report: EventReport) -> None:
        """
        Enqueue a report without waiting.

        Raises:
            ChannelClosedError: If the channel was closed
            EventPipelineError: If the channel is full
        """
        if self._closed:
            raise ChannelClosedError("Event channel is closed")
        if self._maxsize and self._queue.qsize() >= self._maxsize:
            raise EventPipelineError(f"Event channel is full ({self._maxsize} pending reports)")
        self._queue.put_nowait(report)

    async def receive(self) -> EventReport:
        """
        Wait for the next report.

        Raises:
            ChannelClosedError: Once the channel is closed and drained
        """
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker for any other waiting receiver
            self._queue.put_nowait(_CLOSED)
            raise ChannelClosedError("Event channel is closed")
        return item

    def close(self) -> None:
        """Close the channel. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        logger.debug("Event channel closed")

    def qsize(self) -> int:
        return self._queue.qsize()
