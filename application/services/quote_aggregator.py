import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import replace
from datetime import UTC, datetime

from application.services.pricing import calculate_averages, calculate_slippage
from application.services.status_tracker import StatusTracker
from domain.exceptions.quote import AggregationError, SourceError
from domain.models.quote import AggregateResult, Quote, QuoteAverages, SlippageRecord
from infrastructure.cache.quote_cache import QuoteCache
from infrastructure.providers.base import QuoteSource

logger = logging.getLogger(__name__)

QuoteWriter = Callable[[Sequence[Quote]], Awaitable[None]]


class QuoteAggregator:
    """Fans out to every quote source, tolerates partial failure and caches the aggregate.

    The status tracker and cache are injected so several aggregators (or tests) can
    run side by side without sharing state. ``persist`` is an optional coroutine
    function that stores a batch of quotes; it runs in a detached task and its
    failures are only logged.
    """

    def __init__(
        self,
        sources: Sequence[QuoteSource],
        status_tracker: StatusTracker,
        cache: QuoteCache,
        persist: QuoteWriter | None = None,
    ):
        self.sources = list(sources)
        self.status_tracker = status_tracker
        self.cache = cache
        self.persist = persist
        self._pending_writes: set[asyncio.Task] = set()

    async def get_all_quotes(self) -> AggregateResult:
        cached = self.cache.get()
        if cached is not None:
            logger.debug("Serving quotes from cache")
            return replace(cached, cached=True)

        start_time = time.time()
        outcomes = await asyncio.gather(
            *(source.fetch() for source in self.sources), return_exceptions=True
        )

        try:
            quotes = self._collect(outcomes)
            now = datetime.now(UTC)
            result = AggregateResult(
                quotes=tuple(quotes),
                averages=calculate_averages(quotes, now=now),
                status=self.status_tracker.snapshot(),
                timestamp=now,
                cached=False,
            )
            self.cache.set(result)
        except Exception as e:
            raise AggregationError(f"Failed to aggregate quotes: {e}") from e

        fallback_count = sum(1 for q in quotes if q.is_fallback)
        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Aggregated {len(quotes)}/{len(self.sources)} quotes ({fallback_count} fallback) in {duration_ms}ms",
            extra={
                "extra_data": {
                    "quotes": len(quotes),
                    "sources": len(self.sources),
                    "fallbacks": fallback_count,
                    "duration_ms": duration_ms,
                    "average_buy_price": result.averages.average_buy_price,
                }
            },
        )

        if quotes and self.persist is not None:
            self._schedule_write(result.quotes)

        return result

    def _collect(self, outcomes: list) -> list[Quote]:
        quotes = []
        for source, outcome in zip(self.sources, outcomes, strict=True):
            if isinstance(outcome, Quote):
                self.status_tracker.record_success(source.name)
                quotes.append(outcome)
                continue

            if isinstance(outcome, SourceError):
                reason = outcome.reason
            elif isinstance(outcome, Exception):
                reason = f"{outcome.__class__.__name__}: {outcome}"
            else:
                # BaseException such as CancelledError
                raise outcome

            logger.warning(f"Source {source.name} failed: {reason}")
            self.status_tracker.record_failure(source.name, reason)
        return quotes

    def _schedule_write(self, quotes: Sequence[Quote]) -> None:
        task = asyncio.create_task(self._write(quotes), name="persist-quotes")
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _write(self, quotes: Sequence[Quote]) -> None:
        try:
            await self.persist(quotes)
            logger.debug(f"Persisted {len(quotes)} quotes")
        except Exception:
            logger.error("Failed to persist quotes", exc_info=True)

    async def drain(self) -> None:
        """Wait for outstanding persistence writes."""
        if self._pending_writes:
            await asyncio.gather(*self._pending_writes, return_exceptions=True)

    def invalidate(self) -> None:
        self.cache.clear()

    async def get_quotes_for(self, target: str | None = None) -> list[Quote]:
        result = await self.get_all_quotes()
        if target is None:
            return list(result.quotes)
        return [q for q in result.quotes if q.currency == target]

    async def get_averages(self, target: str | None = None) -> QuoteAverages:
        quotes = await self.get_quotes_for(target)
        return calculate_averages(quotes)

    async def get_slippage(self, target: str | None = None) -> list[SlippageRecord]:
        quotes = await self.get_quotes_for(target)
        return calculate_slippage(quotes, calculate_averages(quotes))
