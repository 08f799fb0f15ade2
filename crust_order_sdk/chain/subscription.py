"""
Notification subscriptions for watched extrinsics.

A subscription is an ordered, cancellable stream of ChainNotification
objects. Producers push notifications into it; the observer consumes it
with ``async for`` inside ``async with`` so that it is always released.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..models import ChainNotification

logger = logging.getLogger(__name__)

_END_OF_STREAM = object()


class NotificationSubscription:
    """
    Queue-backed notification stream for a single submitted transaction.

    Args:
        tx_hash: Hash of the watched extrinsic
        on_unsubscribe: Optional coroutine function run once when the
            subscription is released
    """

    def __init__(
        self,
        tx_hash: str,
        on_unsubscribe: Optional[Callable[[], Awaitable[None]]] = None
    ):
        self.tx_hash = tx_hash
        self._queue: "asyncio.Queue" = asyncio.Queue()
        self._on_unsubscribe = on_unsubscribe
        self._closed = False
        self._finished = False
        self.delivered = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of queued notifications not yet consumed"""
        size = self._queue.qsize()
        return size - 1 if self._finished and size else size

    def push(self, notification: ChainNotification) -> None:
        """Queue a notification; dropped silently once unsubscribed."""
        if self._closed or self._finished:
            logger.debug(f"Dropping {notification.status.value} for released subscription {self.tx_hash[:10]}...")
            return
        self._queue.put_nowait(notification)

    def fail(self, error: BaseException) -> None:
        """Terminate the stream with an error raised to the consumer."""
        if self._closed or self._finished:
            return
        self._finished = True
        self._queue.put_nowait(error)

    def finish(self) -> None:
        """Mark the end of the stream; the consumer's iteration stops."""
        if self._closed or self._finished:
            return
        self._finished = True
        self._queue.put_nowait(_END_OF_STREAM)

    async def unsubscribe(self) -> None:
        """Release the subscription. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._on_unsubscribe is not None:
            try:
                await self._on_unsubscribe()
            except Exception as e:
                logger.warning(f"Error releasing subscription for {self.tx_hash[:10]}...: {e}")
        logger.debug(f"Unsubscribed from {self.tx_hash[:10]}...")

    def __aiter__(self) -> "NotificationSubscription":
        return self

    async def __anext__(self) -> ChainNotification:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END_OF_STREAM:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        self.delivered += 1
        return item

    async def __aenter__(self) -> "NotificationSubscription":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.unsubscribe()
