"""
Cross-source averages and per-source slippage.

Both computations use ``Quote.effective_sell`` for quotes without a sell side and
``format_decimal`` for output, the same conventions the rate repository applies
to persisted rows.
"""
from collections.abc import Sequence
from datetime import UTC, datetime
from decimal import Decimal

from domain.models.quote import Quote, QuoteAverages, SlippageRecord, format_decimal

HUNDRED = Decimal("100")


def has_valid_buy(quote: Quote) -> bool:
    return quote.buy is not None and quote.buy > 0


def calculate_averages(quotes: Sequence[Quote], now: datetime | None = None) -> QuoteAverages:
    timestamp = now or datetime.now(UTC)
    counted = [q for q in quotes if has_valid_buy(q)]

    if not counted:
        return QuoteAverages(
            average_buy_price=None,
            average_sell_price=None,
            quote_count=0,
            timestamp=timestamp,
        )

    count = len(counted)
    buy_sum = sum((q.buy for q in counted), Decimal(0))
    sell_sum = sum((q.effective_sell for q in counted), Decimal(0))

    return QuoteAverages(
        average_buy_price=format_decimal(buy_sum / count),
        average_sell_price=format_decimal(sell_sum / count),
        quote_count=count,
        timestamp=timestamp,
    )


def calculate_slippage(
    quotes: Sequence[Quote], averages: QuoteAverages | None, now: datetime | None = None
) -> list[SlippageRecord]:
    """Percentage deviation of each quote from the averages, in input order."""
    if (
        not quotes
        or averages is None
        or averages.average_buy_price is None
        or averages.average_sell_price is None
    ):
        return []

    timestamp = now or datetime.now(UTC)
    avg_buy = Decimal(averages.average_buy_price)
    avg_sell = Decimal(averages.average_sell_price)

    records = []
    for quote in quotes:
        if not has_valid_buy(quote):
            continue
        sell = quote.effective_sell
        records.append(
            SlippageRecord(
                source=quote.source,
                source_url=quote.source_url,
                buy_price=quote.buy,
                sell_price=sell,
                buy_price_slippage=format_decimal((quote.buy - avg_buy) / avg_buy * HUNDRED),
                sell_price_slippage=format_decimal((sell - avg_sell) / avg_sell * HUNDRED),
                timestamp=timestamp,
            )
        )
    return records
