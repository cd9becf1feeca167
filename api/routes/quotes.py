from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_aggregator, get_history_service
from api.schemas import (
	AveragesResponse,
	ErrorResponse,
	HistoryResponse,
	QuotesResponse,
	SlippageResponse,
)
from application.services import QuoteAggregator, QuoteHistoryService, StatusTracker
from domain.exceptions.quote import InvalidCurrencyError
from domain.models.quote import BASE_CURRENCY, SUPPORTED_CURRENCIES

router = APIRouter(tags=['quotes'])

CurrencyQuery = Annotated[str | None, Query(min_length=3, max_length=5)]


def normalize_pair(base: str | None, target: str | None) -> tuple[str, str | None]:
	base = (base or BASE_CURRENCY).upper()
	target = target.upper() if target else None

	if base != BASE_CURRENCY:
		raise InvalidCurrencyError(f'Only {BASE_CURRENCY} is supported as base currency, got {base}')
	if target is not None and target not in SUPPORTED_CURRENCIES:
		raise InvalidCurrencyError(
			f'Currency {target} is not supported, expected one of {", ".join(SUPPORTED_CURRENCIES)}'
		)
	return base, target


@router.get(
	'/quotes',
	response_model=QuotesResponse,
	status_code=status.HTTP_200_OK,
	summary='Aggregated quotes from every source',
)
async def get_quotes(
	aggregator: Annotated[QuoteAggregator, Depends(get_aggregator)],
) -> QuotesResponse:
	result = await aggregator.get_all_quotes()
	return QuotesResponse.from_domain(result, threshold=StatusTracker.FAILURE_THRESHOLD)


@router.get(
	'/average',
	response_model=AveragesResponse,
	status_code=status.HTTP_200_OK,
	summary='Average buy and sell price across sources',
	responses={400: {'model': ErrorResponse}},
)
async def get_average(
	aggregator: Annotated[QuoteAggregator, Depends(get_aggregator)],
	base: CurrencyQuery = None,
	target: CurrencyQuery = None,
) -> AveragesResponse:
	_, target = normalize_pair(base, target)
	averages = await aggregator.get_averages(target)
	return AveragesResponse.from_domain(averages, target=target)


@router.get(
	'/slippage',
	response_model=list[SlippageResponse],
	status_code=status.HTTP_200_OK,
	summary='Per-source percentage deviation from the average',
	responses={400: {'model': ErrorResponse}},
)
async def get_slippage(
	aggregator: Annotated[QuoteAggregator, Depends(get_aggregator)],
	base: CurrencyQuery = None,
	target: CurrencyQuery = None,
) -> list[SlippageResponse]:
	_, target = normalize_pair(base, target)
	records = await aggregator.get_slippage(target)
	return [SlippageResponse.from_domain(r) for r in records]


@router.get(
	'/history',
	response_model=HistoryResponse,
	status_code=status.HTTP_200_OK,
	summary='Stored observations for a currency pair',
	responses={400: {'model': ErrorResponse}, 500: {'model': ErrorResponse}},
)
async def get_history(
	history: Annotated[QuoteHistoryService, Depends(get_history_service)],
	target: Annotated[str, Query(min_length=3, max_length=5)],
	base: CurrencyQuery = None,
	hours: Annotated[int, Query(gt=0, le=24 * 30)] = 24,
) -> HistoryResponse:
	base, target = normalize_pair(base, target)
	rates = await history.get_history(base, target, hours=hours)
	averages = await history.get_averages(base, target)
	return HistoryResponse.from_domain(base, target, hours, averages, rates)
