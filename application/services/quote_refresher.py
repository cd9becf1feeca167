import asyncio
import logging

from application.services.quote_aggregator import QuoteAggregator

logger = logging.getLogger(__name__)


class QuoteRefresher:
    """
    Background task that re-aggregates quotes on a fixed interval.

    This keeps the cache warm and the history table growing regardless of
    request traffic.
    """

    def __init__(self, aggregator: QuoteAggregator, interval_seconds: float = 30):
        self.aggregator = aggregator
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh_once(self) -> None:
        self.aggregator.invalidate()
        try:
            result = await self.aggregator.get_all_quotes()
        except Exception:
            logger.error("Quote refresh cycle failed", exc_info=True)
            return
        logger.info(f"Refresh cycle complete: {len(result.quotes)} quotes")

    async def _run(self) -> None:
        while True:
            await self.refresh_once()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.is_running:
            return
        logger.info(f"Starting quote refresher (every {self.interval_seconds}s)")
        self._task = asyncio.create_task(self._run(), name="quote-refresher")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Quote refresher stopped")
