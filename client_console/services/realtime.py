"""Real-time change notifications for table rows.

Writers publish a ChangeEvent after every committed insert/update/delete;
subscribers register interest in a table, optionally narrowed to one event
type and/or one row id, and get an async callback per matching event.

``ChangeFeed`` fans events out inside one process. ``RedisChangeFeed`` relays
them through Redis pub/sub so every API worker sees every write.
"""

import asyncio
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from client_console.core.config import settings
from client_console.schemas.realtime import ChangeEvent, ChangeEventType

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[ChangeEvent], Awaitable[None]]

ALL_EVENTS = "*"

# First reconnect delay of the Redis relay; doubles up to REALTIME_RECONNECT_MAX_DELAY
RECONNECT_INITIAL_DELAY = 0.5


class Subscription:
    """Handle for one registered listener."""

    def __init__(
        self,
        feed: "ChangeFeed",
        table: str,
        callback: ChangeCallback,
        event: str = ALL_EVENTS,
        row_id: Optional[str] = None,
    ) -> None:
        self._feed = feed
        self.table = table
        self.callback = callback
        self.event = event
        self.row_id = row_id
        self.last_delivery: Optional[asyncio.Task] = None

    def matches(self, change: ChangeEvent) -> bool:
        if change.table != self.table:
            return False
        if self.event != ALL_EVENTS and change.event_type.value != self.event:
            return False
        if self.row_id is not None and change.row_id != self.row_id:
            return False
        return True

    def unsubscribe(self) -> None:
        self._feed._remove(self)


class ChangeFeed:
    """In-process change notification fan-out."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._deliveries: set[asyncio.Task] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        event: str = ALL_EVENTS,
        row_id: Optional[Any] = None,
    ) -> Subscription:
        """
        Register a listener.

        Args:
            table: Table to watch
            callback: Coroutine function called with each matching event
            event: 'INSERT', 'UPDATE', 'DELETE' or '*' for all
            row_id: Only deliver events for this row id

        Returns:
            Subscription handle; call unsubscribe() to stop receiving events
        """
        if event != ALL_EVENTS:
            event = ChangeEventType(event).value
        subscription = Subscription(
            self,
            table,
            callback,
            event=event,
            row_id=str(row_id) if row_id is not None else None,
        )
        self._subscriptions.append(subscription)
        logger.debug(
            f"Subscribed to {table} (event={event}, row_id={subscription.row_id}, "
            f"total={self.subscriber_count})"
        )
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def publish(self, change: ChangeEvent) -> None:
        """
        Schedule delivery of an event to every matching subscriber.

        Callbacks run as background tasks, not inside the publisher's call.
        Each subscription still sees its events in publish order.
        """
        self._dispatch(change)

    def _dispatch(self, change: ChangeEvent) -> None:
        for subscription in self._subscriptions:
            if not subscription.matches(change):
                continue
            task = asyncio.create_task(
                self._deliver(subscription, change, subscription.last_delivery)
            )
            subscription.last_delivery = task
            self._deliveries.add(task)
            task.add_done_callback(self._deliveries.discard)

    async def _deliver(
        self,
        subscription: Subscription,
        change: ChangeEvent,
        previous: Optional[asyncio.Task],
    ) -> None:
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        if subscription not in self._subscriptions:
            return
        try:
            await subscription.callback(change)
        except Exception:
            # One broken listener must not stop delivery to the others
            logger.exception(
                f"Change listener failed for {change.table} {change.event_type.value}"
            )

    async def drain(self) -> None:
        """Wait until every delivery scheduled so far (and any it triggers) has run."""
        while self._deliveries:
            await asyncio.gather(*self._deliveries)

    async def start(self) -> None:
        """Start background delivery (nothing to do in-process)."""

    async def stop(self) -> None:
        """Stop background delivery and drop all subscriptions."""
        self._subscriptions.clear()
        for task in list(self._deliveries):
            task.cancel()
        await asyncio.gather(*self._deliveries, return_exceptions=True)
        self._deliveries.clear()


class RedisChangeFeed(ChangeFeed):
    """Change feed relayed through Redis pub/sub channels '<prefix>:<table>'."""

    def __init__(self, redis_url: str, channel_prefix: str) -> None:
        super().__init__()
        self._redis_url = redis_url
        self._channel_prefix = channel_prefix
        self._redis: aioredis.Redis | None = None
        self._pubsub: Any = None
        self._listener: asyncio.Task | None = None

    def _channel(self, table: str) -> str:
        return f"{self._channel_prefix}:{table}"

    async def start(self) -> None:
        """Connect to Redis and start relaying events to local subscribers."""
        self._redis = aioredis.from_url(self._redis_url, encoding="utf-8", decode_responses=True)
        await self._subscribe()
        self._listener = asyncio.create_task(self._listen())
        logger.info(f"Realtime relay started on {self._channel('*')}")

    async def _subscribe(self) -> None:
        self._pubsub = self._redis.pubsub()
        await self._pubsub.psubscribe(self._channel("*"))

    async def _close_pubsub(self) -> None:
        if self._pubsub is None:
            return
        try:
            await self._pubsub.aclose()
        except RedisError as e:
            logger.debug(f"Ignoring error while closing broken pub/sub connection: {e}")
        self._pubsub = None

    async def _listen(self) -> None:
        """Relay messages to local subscribers, reconnecting with backoff on Redis errors."""
        delay = RECONNECT_INITIAL_DELAY
        while True:
            try:
                if self._pubsub is None:
                    await self._subscribe()
                    logger.info(f"Realtime relay resubscribed to {self._channel('*')}")
                async for message in self._pubsub.listen():
                    delay = RECONNECT_INITIAL_DELAY
                    if message.get("type") != "pmessage":
                        continue
                    try:
                        change = ChangeEvent.model_validate_json(message["data"])
                    except ValueError as e:
                        logger.warning(f"Dropping malformed change event: {e}")
                        continue
                    self._dispatch(change)
                logger.warning("Realtime relay subscription ended, resubscribing")
                await self._close_pubsub()
            except RedisError:
                logger.exception(f"Realtime relay lost Redis, reconnecting in {delay:.1f}s")
                await self._close_pubsub()
                await asyncio.sleep(delay)
                delay = min(delay * 2, settings.REALTIME_RECONNECT_MAX_DELAY)

    async def publish(self, change: ChangeEvent) -> None:
        """Publish to Redis; delivery happens through the listener in every worker."""
        if self._redis is None:
            raise RuntimeError("RedisChangeFeed.publish called before start()")
        await self._redis.publish(self._channel(change.table), change.model_dump_json())

    async def stop(self) -> None:
        """Stop the relay and close the Redis connection."""
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        await self._close_pubsub()
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
        await super().stop()
        logger.info("Realtime relay stopped")


def make_change_event(
    table: str,
    event_type: ChangeEventType,
    new: Optional[dict[str, Any]] = None,
    old: Optional[dict[str, Any]] = None,
) -> ChangeEvent:
    """Build a change event stamped with the current time."""
    return ChangeEvent(
        table=table,
        event_type=event_type,
        new=new,
        old=old,
        committed_at=datetime.now(timezone.utc),
    )


@lru_cache
def get_change_feed() -> ChangeFeed:
    """Get the process-wide change feed configured by REALTIME_BACKEND."""
    if settings.REALTIME_BACKEND == "redis":
        return RedisChangeFeed(settings.REDIS_URL, settings.REALTIME_CHANNEL_PREFIX)
    return ChangeFeed()
