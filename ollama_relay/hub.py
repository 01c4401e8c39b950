"""Broadcast hub shared by every connected client.

Every published string goes to every current subscriber. Each subscriber
has its own bounded buffer; when a slow client lets it fill up, the oldest
unread message is dropped for that client only and publishing never waits.

All methods must be called from the event loop thread.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 32


class Subscription:
    """One consumer's view of the hub.

    Iterate with ``async for message in subscription`` or call ``recv()``.
    Close it (or use it as a context manager) to stop receiving.
    """

    def __init__(self, hub: "BroadcastHub", capacity: int):
        self._hub = hub
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=capacity)
        self.missed = 0  # messages dropped because this subscriber lagged
        self.closed = False

    def _deliver(self, message: str) -> None:
        if self._queue.full():
            self._queue.get_nowait()
            self.missed += 1
            logger.debug(f"Subscriber lagging, dropped oldest message ({self.missed} total)")
        self._queue.put_nowait(message)

    @property
    def pending(self) -> int:
        """Messages buffered and not yet received."""
        return self._queue.qsize()

    async def recv(self) -> str:
        """Wait for the next message."""
        return await self._queue.get()

    def recv_nowait(self) -> str:
        """Return the next buffered message or raise ``asyncio.QueueEmpty``."""
        return self._queue.get_nowait()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._hub._unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> str:
        if self.closed:
            raise StopAsyncIteration
        return await self.recv()


class BroadcastHub:
    """Multi-producer, multi-consumer fan-out channel.

    Created once at startup and handed to each session; there is no
    module-level instance.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"Hub capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._subscribers: dict[int, Subscription] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        """Register a consumer for messages published from now on."""
        subscription = Subscription(self, self.capacity)
        self._subscribers[id(subscription)] = subscription
        logger.debug(f"Subscriber added ({len(self._subscribers)} total)")
        return subscription

    def publish(self, message: str) -> int:
        """Deliver ``message`` to every subscriber.

        Returns:
            Number of subscribers the message was delivered to
        """
        subscribers = list(self._subscribers.values())
        for subscription in subscribers:
            subscription._deliver(message)
        return len(subscribers)

    def _unsubscribe(self, subscription: Subscription) -> None:
        self._subscribers.pop(id(subscription), None)
        logger.debug(f"Subscriber removed ({len(self._subscribers)} left)")
