"""Change events and the derived-aggregate cache they invalidate."""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Hashable, Optional, TypeVar

from .config import settings
from .observability import metrics_collector

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ChangeEvent(str, Enum):
    """Writes that other parts of the system may need to react to."""
    BOOKING_CREATED = "booking_created"
    BOOKING_STATUS_CHANGED = "booking_status_changed"
    PAYMENT_SUBMITTED = "payment_submitted"
    PAYMENT_VERIFIED = "payment_verified"
    PACKAGE_CHANGED = "package_changed"
    NOTIFICATION_CREATED = "notification_created"
    NOTIFICATION_READ = "notification_read"


class Aggregate(str, Enum):
    """Derived values computed from many rows and cached between requests."""
    DASHBOARD_STATS = "dashboard_stats"
    UNREAD_NOTIFICATIONS = "unread_notifications"
    PACKAGE_CATALOG = "package_catalog"


# Aggregates scoped per user; every other aggregate is global
SCOPED_AGGREGATES = frozenset({Aggregate.UNREAD_NOTIFICATIONS})

INVALIDATION_MAP: dict[ChangeEvent, tuple[Aggregate, ...]] = {
    ChangeEvent.BOOKING_CREATED: (Aggregate.DASHBOARD_STATS,),
    ChangeEvent.BOOKING_STATUS_CHANGED: (Aggregate.DASHBOARD_STATS,),
    ChangeEvent.PAYMENT_SUBMITTED: (Aggregate.DASHBOARD_STATS,),
    ChangeEvent.PAYMENT_VERIFIED: (Aggregate.DASHBOARD_STATS,),
    ChangeEvent.PACKAGE_CHANGED: (Aggregate.PACKAGE_CATALOG, Aggregate.DASHBOARD_STATS),
    ChangeEvent.NOTIFICATION_CREATED: (Aggregate.UNREAD_NOTIFICATIONS,),
    ChangeEvent.NOTIFICATION_READ: (Aggregate.UNREAD_NOTIFICATIONS,),
}

CacheKey = tuple[Aggregate, Optional[Hashable]]


def cache_key(aggregate: Aggregate, scope: Optional[Hashable] = None) -> CacheKey:
    """Build the cache key of an aggregate; global aggregates ignore the scope."""
    return (aggregate, scope if aggregate in SCOPED_AGGREGATES else None)


def affected_keys(event: ChangeEvent, scope: Optional[Hashable] = None) -> set[CacheKey]:
    """Cache keys a change event invalidates."""
    return {cache_key(aggregate, scope) for aggregate in INVALIDATION_MAP[event]}


class AggregateCache:
    """
    Cache of derived aggregates with debounced invalidation.

    publish() records the keys an event invalidates. Keys published within
    one debounce window are coalesced and dropped together when the window
    closes or when flush() is called. Until then readers keep getting the
    previously computed value.

    Every flushed key gets a new generation. A computation that started
    under an older generation returns its value without storing it.
    """

    def __init__(self, debounce_seconds: float = 0.5):
        self.debounce_seconds = debounce_seconds
        self._values: dict[CacheKey, Any] = {}
        self._pending: set[CacheKey] = set()
        self._generations: dict[CacheKey, int] = {}
        self._epoch = 0
        self._flush_task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> frozenset[CacheKey]:
        return frozenset(self._pending)

    def peek(self, aggregate: Aggregate, scope: Optional[Hashable] = None) -> Any:
        return self._values.get(cache_key(aggregate, scope))

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._values

    async def get_or_compute(
        self,
        aggregate: Aggregate,
        compute: Callable[[], Awaitable[T]],
        scope: Optional[Hashable] = None,
    ) -> T:
        """Return the cached aggregate, computing and storing it on a miss."""
        key = cache_key(aggregate, scope)
        if key in self._values:
            return self._values[key]

        generation = (self._epoch, self._generations.get(key, 0))
        value = await compute()
        if generation == (self._epoch, self._generations.get(key, 0)):
            self._values[key] = value
        else:
            logger.debug(
                "Discarded aggregate computed before an invalidation",
                extra={"aggregate": aggregate.value}
            )
        return value

    def publish(self, event: ChangeEvent, scope: Optional[Hashable] = None) -> set[CacheKey]:
        """
        Record a change event.

        Args:
            event: The change that happened
            scope: User id for per-user aggregates

        Returns:
            The cache keys scheduled for invalidation
        """
        keys = affected_keys(event, scope)
        self._pending.update(keys)

        logger.debug(
            "Change event published",
            extra={"event": event.value, "scope": str(scope) if scope else None}
        )

        if self.debounce_seconds <= 0:
            self.flush()
            return keys

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to schedule on; apply now
            self.flush()
            return keys

        if self._flush_task is None or self._flush_task.done():
            self._flush_task = loop.create_task(self._flush_later())
        return keys

    async def _flush_later(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._flush_task = None
        self.flush()

    def flush(self) -> int:
        """Apply every pending invalidation now. Returns the number of keys dropped."""
        if self._flush_task is not None and not self._flush_task.done():
            self._flush_task.cancel()
        self._flush_task = None

        dropped = 0
        for key in self._pending:
            aggregate, _ = key
            self._generations[key] = self._generations.get(key, 0) + 1
            if self._values.pop(key, None) is not None:
                dropped += 1
            metrics_collector.record_invalidation(aggregate.value)
        self._pending.clear()

        if dropped:
            logger.debug("Aggregates invalidated", extra={"dropped": dropped})
        return dropped

    def clear(self) -> None:
        """Drop all cached values and pending invalidations."""
        if self._flush_task is not None and not self._flush_task.done():
            self._flush_task.cancel()
        self._flush_task = None
        self._epoch += 1
        self._values.clear()
        self._pending.clear()
        self._generations.clear()

    async def close(self) -> None:
        """Flush outstanding invalidations and stop the pending timer."""
        task = self._flush_task
        self.flush()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass


# Global aggregate cache instance
aggregate_cache = AggregateCache(debounce_seconds=settings.invalidation_debounce_seconds)
