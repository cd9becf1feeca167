from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from domain.models.quote import (
	AggregateResult,
	PersistedAverages,
	PersistedRate,
	Quote,
	QuoteAverages,
	SlippageRecord,
	SourceStatus,
)


class QuoteResponse(BaseModel):
	currency: str = Field(..., description='Target currency code')
	base_currency: str = Field(..., description='Base currency code, always USD')
	source: str = Field(..., description='Provider name')
	source_url: str = Field(..., description='Page or API the quote was read from')
	buy_price: Decimal = Field(..., description='Buy price in target currency per USD')
	sell_price: Decimal = Field(..., description='Sell price in target currency per USD')
	timestamp: datetime = Field(..., description='When the quote was observed')
	is_fallback: bool = Field(..., description='True when the static placeholder rate was used')
	rate_source: str = Field(..., description='api, web_scraping or fallback')

	@classmethod
	def from_domain(cls, quote: Quote) -> 'QuoteResponse':
		return cls(
			currency=quote.currency,
			base_currency=quote.base_currency,
			source=quote.source,
			source_url=quote.source_url,
			buy_price=quote.buy,
			sell_price=quote.effective_sell,
			timestamp=quote.timestamp,
			is_fallback=quote.is_fallback,
			rate_source=quote.rate_source.value,
		)


class AveragesResponse(BaseModel):
	base_currency: str = 'USD'
	target_currency: str | None = Field(None, description='Currency filter, all quotes when absent')
	average_buy_price: str | None = Field(..., description='4 decimal places, null without quotes')
	average_sell_price: str | None = Field(..., description='4 decimal places, null without quotes')
	quote_count: int
	timestamp: datetime

	model_config = ConfigDict(
		json_schema_extra={
			'example': {
				'base_currency': 'USD',
				'target_currency': 'BRL',
				'average_buy_price': '5.2000',
				'average_sell_price': '5.3000',
				'quote_count': 3,
				'timestamp': '2025-09-27T10:30:00Z',
			}
		}
	)

	@classmethod
	def from_domain(cls, averages: QuoteAverages, target: str | None = None) -> 'AveragesResponse':
		return cls(
			target_currency=target,
			average_buy_price=averages.average_buy_price,
			average_sell_price=averages.average_sell_price,
			quote_count=averages.quote_count,
			timestamp=averages.timestamp,
		)


class SourceStatusResponse(BaseModel):
	source: str
	success: bool
	error: str | None
	last_attempt: datetime
	consecutive_failures: int
	healthy: bool

	@classmethod
	def from_domain(cls, status: SourceStatus, healthy: bool) -> 'SourceStatusResponse':
		return cls(
			source=status.source,
			success=status.success,
			error=status.error,
			last_attempt=status.last_attempt,
			consecutive_failures=status.consecutive_failures,
			healthy=healthy,
		)


class QuotesResponse(BaseModel):
	timestamp: datetime
	cached: bool
	quotes: list[QuoteResponse]
	averages: AveragesResponse
	status: dict[str, SourceStatusResponse]

	@classmethod
	def from_domain(cls, result: AggregateResult, threshold: int) -> 'QuotesResponse':
		return cls(
			timestamp=result.timestamp,
			cached=result.cached,
			quotes=[QuoteResponse.from_domain(q) for q in result.quotes],
			averages=AveragesResponse.from_domain(result.averages),
			status={
				name: SourceStatusResponse.from_domain(
					s, healthy=s.success and s.consecutive_failures < threshold
				)
				for name, s in result.status.items()
			},
		)


class SlippageResponse(BaseModel):
	source: str
	source_url: str
	buy_price: Decimal
	sell_price: Decimal
	buy_price_slippage: str = Field(..., description='Percent deviation from the average buy price')
	sell_price_slippage: str = Field(..., description='Percent deviation from the average sell price')
	timestamp: datetime

	@classmethod
	def from_domain(cls, record: SlippageRecord) -> 'SlippageResponse':
		return cls(
			source=record.source,
			source_url=record.source_url,
			buy_price=record.buy_price,
			sell_price=record.sell_price,
			buy_price_slippage=record.buy_price_slippage,
			sell_price_slippage=record.sell_price_slippage,
			timestamp=record.timestamp,
		)


class PersistedRateResponse(BaseModel):
	source: str
	source_url: str | None
	buy_rate: Decimal
	sell_rate: Decimal
	timestamp: datetime

	@classmethod
	def from_domain(cls, rate: PersistedRate) -> 'PersistedRateResponse':
		return cls(
			source=rate.source,
			source_url=rate.source_url,
			buy_rate=rate.buy_rate,
			sell_rate=rate.sell_rate,
			timestamp=rate.timestamp,
		)


class HistoryResponse(BaseModel):
	base_currency: str
	target_currency: str
	hours: int
	avg_buy_rate: str | None
	avg_sell_rate: str | None
	source_count: int
	rates: list[PersistedRateResponse]

	@classmethod
	def from_domain(
		cls,
		base: str,
		target: str,
		hours: int,
		averages: PersistedAverages,
		rates: list[PersistedRate],
	) -> 'HistoryResponse':
		return cls(
			base_currency=base,
			target_currency=target,
			hours=hours,
			avg_buy_rate=averages.avg_buy_rate,
			avg_sell_rate=averages.avg_sell_rate,
			source_count=averages.source_count,
			rates=[PersistedRateResponse.from_domain(r) for r in rates],
		)


class HealthResponse(BaseModel):
	status: str
	timestamp: datetime
	environment: str


class StatusResponse(BaseModel):
	timestamp: datetime
	healthy_sources: int
	total_sources: int
	sources: dict[str, SourceStatusResponse]


class ErrorResponse(BaseModel):
	error: str
	details: str | None = None
