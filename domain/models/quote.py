from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

BASE_CURRENCY = "USD"
SUPPORTED_CURRENCIES = ("ARS", "BRL")
# Applied whenever a quote has no sell side, so averages, slippage and stored rows agree
SELL_SUBSTITUTE_SPREAD = Decimal("0.02")
FOUR_PLACES = Decimal("0.0001")


def format_decimal(value: Decimal) -> str:
    """Format to exactly 4 decimal places, rounding half up."""
    return str(value.quantize(FOUR_PLACES, rounding=ROUND_HALF_UP))


class RateSource(str, Enum):
    API = "api"
    WEB_SCRAPING = "web_scraping"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Quote:
    currency: str
    source: str
    source_url: str
    buy: Decimal
    sell: Decimal | None
    timestamp: datetime
    base_currency: str = BASE_CURRENCY
    is_fallback: bool = False
    rate_source: RateSource = RateSource.API

    @property
    def effective_sell(self) -> Decimal:
        """The sell price, or buy plus SELL_SUBSTITUTE_SPREAD when the quote has none."""
        if self.sell is not None:
            return self.sell
        return self.buy * (1 + SELL_SUBSTITUTE_SPREAD)


@dataclass(frozen=True)
class SourceStatus:
    source: str
    success: bool
    error: str | None
    last_attempt: datetime
    consecutive_failures: int = 0


@dataclass(frozen=True)
class QuoteAverages:
    average_buy_price: str | None  # 4 decimal places, None when quote_count == 0
    average_sell_price: str | None
    quote_count: int
    timestamp: datetime


@dataclass(frozen=True)
class AggregateResult:
    quotes: tuple[Quote, ...]
    averages: QuoteAverages
    status: Mapping[str, SourceStatus]
    timestamp: datetime
    cached: bool = False


@dataclass(frozen=True)
class SlippageRecord:
    source: str
    source_url: str
    buy_price: Decimal
    sell_price: Decimal
    buy_price_slippage: str  # percent
    sell_price_slippage: str
    timestamp: datetime


@dataclass(frozen=True)
class CacheEntry:
    data: AggregateResult
    cached_at: datetime


@dataclass(frozen=True)
class PersistedRate:
    base_currency: str
    target_currency: str
    source: str
    buy_rate: Decimal
    sell_rate: Decimal
    timestamp: datetime
    source_url: str | None = None


@dataclass(frozen=True)
class PersistedAverages:
    avg_buy_rate: str | None
    avg_sell_rate: str | None
    source_count: int
    sources: list[str] = field(default_factory=list)
