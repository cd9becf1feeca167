from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from domain.models.quote import AggregateResult, CacheEntry


def utc_now() -> datetime:
    return datetime.now(UTC)


class QuoteCache:
    """Single-slot, in-process cache for the aggregated quote set.

    Reads and writes never await, so under asyncio they complete without
    interleaving with other tasks.
    """

    CACHE_KEY = "all-quotes"

    def __init__(self, ttl: timedelta = timedelta(seconds=30), clock: Callable[[], datetime] = utc_now):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self) -> AggregateResult | None:
        entry = self._entries.get(self.CACHE_KEY)
        if entry is None:
            return None

        if self._clock() - entry.cached_at >= self.ttl:
            return None

        return entry.data

    def set(self, result: AggregateResult) -> CacheEntry:
        entry = CacheEntry(data=result, cached_at=self._clock())
        self._entries[self.CACHE_KEY] = entry
        return entry

    def age(self) -> timedelta | None:
        entry = self._entries.get(self.CACHE_KEY)
        if entry is None:
            return None
        return self._clock() - entry.cached_at

    def clear(self) -> None:
        self._entries.pop(self.CACHE_KEY, None)
