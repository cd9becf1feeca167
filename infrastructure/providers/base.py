import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from domain.exceptions.quote import SourceError
from domain.models.quote import BASE_CURRENCY, Quote, RateSource

logger = logging.getLogger(__name__)

PRICE_PLACES = Decimal("0.0001")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36"
)

HTML_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Referer": "https://www.google.com/",
    "Cache-Control": "no-cache",
}

JSON_HEADERS = {"Accept": "application/json"}


@dataclass(frozen=True)
class Extraction:
    """Raw prices pulled from a provider before validation."""
    buy: Decimal | None
    sell: Decimal | None
    rate_source: RateSource


def split_mid_rate(mid: Decimal, spread: Decimal) -> tuple[Decimal, Decimal]:
    """Derive buy/sell from a single mid rate, half the spread on each side."""
    half = spread / 2
    return mid * (1 - half), mid * (1 + half)


def complete_one_side(
    buy: Decimal | None, sell: Decimal | None, spread: Decimal
) -> tuple[Decimal | None, Decimal | None]:
    """Fill in a missing side of the quote by applying spread to the side we have."""
    if buy and not sell:
        return buy, buy * (1 + spread)
    if sell and not buy:
        return sell / (1 + spread), sell
    return buy, sell


class QuoteSource(ABC):
    """A single USD quote provider.

    ``fetch()`` returns a fully validated Quote or raises SourceError. Sources that
    define FALLBACK_BUY/FALLBACK_SELL return a quote flagged ``is_fallback`` at those
    static placeholder rates instead of failing, when fallbacks are allowed.
    """

    FALLBACK_BUY: Decimal | None = None
    FALLBACK_SELL: Decimal | None = None
    # (low, high) exclusive bounds a real quote must fall within, None to skip the check
    PLAUSIBLE_RANGE: tuple[Decimal, Decimal] | None = None
    MAX_ATTEMPTS = 1

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: int = 10,
        allow_fallback: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
        retry_wait=None,
    ):
        self.timeout = timeout
        self.allow_fallback = allow_fallback
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=4)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": user_agent},
            follow_redirects=True,
        )

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def currency(self) -> str:
        ...

    @property
    @abstractmethod
    def source_url(self) -> str:
        ...

    @property
    def has_fallback(self) -> bool:
        return self.FALLBACK_BUY is not None and self.FALLBACK_SELL is not None

    @abstractmethod
    async def _extract(self) -> Extraction:
        ...

    async def fetch(self) -> Quote:
        try:
            extraction = await self._extract()
            return self._build_quote(extraction)
        except Exception as e:
            error = e if isinstance(e, SourceError) else SourceError(self.name, self._describe(e))
            if not (self.allow_fallback and self.has_fallback):
                if error is e:
                    raise
                raise error from e

            logger.warning(f"{self.name} extraction failed ({error.reason}), using fallback rate")
            return self._fallback_quote()

    def _build_quote(self, extraction: Extraction) -> Quote:
        buy, sell = extraction.buy, extraction.sell
        if buy is None or sell is None:
            raise SourceError(self.name, "could not find both buy and sell prices")
        if buy <= 0 or sell <= 0:
            raise SourceError(self.name, f"non-positive price (buy={buy}, sell={sell})")

        buy = buy.quantize(PRICE_PLACES, rounding=ROUND_HALF_UP)
        sell = sell.quantize(PRICE_PLACES, rounding=ROUND_HALF_UP)
        if sell < buy:
            raise SourceError(self.name, f"sell price {sell} is below buy price {buy}")
        if self.PLAUSIBLE_RANGE and not (self._plausible(buy) and self._plausible(sell)):
            low, high = self.PLAUSIBLE_RANGE
            raise SourceError(
                self.name, f"price outside plausible range {low}-{high} (buy={buy}, sell={sell})"
            )

        return Quote(
            currency=self.currency,
            base_currency=BASE_CURRENCY,
            source=self.name,
            source_url=self.source_url,
            buy=buy,
            sell=sell,
            timestamp=datetime.now(UTC),
            is_fallback=False,
            rate_source=extraction.rate_source,
        )

    def _plausible(self, rate: Decimal | None) -> bool:
        if rate is None:
            return False
        if self.PLAUSIBLE_RANGE is None:
            return True
        low, high = self.PLAUSIBLE_RANGE
        return low < rate < high

    def _fallback_quote(self) -> Quote:
        return Quote(
            currency=self.currency,
            base_currency=BASE_CURRENCY,
            source=self.name,
            source_url=self.source_url,
            buy=self.FALLBACK_BUY,
            sell=self.FALLBACK_SELL,
            timestamp=datetime.now(UTC),
            is_fallback=True,
            rate_source=RateSource.FALLBACK,
        )

    def _describe(self, error: Exception) -> str:
        if isinstance(error, httpx.HTTPStatusError):
            return f"HTTP error {error.response.status_code}"
        if isinstance(error, httpx.RequestError):
            return f"request failed: {error.__class__.__name__}"
        return f"parsing error: {error}"

    async def _request(
        self, url: str, params: dict | None = None, headers: dict | None = None
    ) -> httpx.Response:
        """GET with the source's retry policy; raises httpx errors after the last attempt."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.MAX_ATTEMPTS),
            wait=self.retry_wait,
            retry=retry_if_exception_type(httpx.HTTPError),
            reraise=True,
        ):
            with attempt:
                response = await self._client.get(
                    url, params=params, headers=headers, timeout=self.timeout
                )
                response.raise_for_status()
        return response

    async def _get_json(self, url: str, params: dict | None = None, headers: dict | None = None):
        response = await self._request(url, params=params, headers={**JSON_HEADERS, **(headers or {})})
        return response.json()

    async def _get_html(self, url: str, headers: dict | None = None) -> str:
        response = await self._request(url, headers={**HTML_HEADERS, **(headers or {})})
        return response.text

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
