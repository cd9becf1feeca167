# nosec B101

import asyncio
import logging
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from application.services.quote_aggregator import QuoteAggregator
from application.services.status_tracker import StatusTracker
from domain.exceptions.quote import AggregationError, PersistenceError, SourceError
from infrastructure.cache.quote_cache import QuoteCache
from tests.factories import make_quote, make_source


@pytest.fixture
def tracker():
    return StatusTracker()


@pytest.fixture
def cache():
    return QuoteCache(ttl=timedelta(seconds=30))


def build_aggregator(sources, tracker, cache, persist=None):
    return QuoteAggregator(sources=sources, status_tracker=tracker, cache=cache, persist=persist)


@pytest.mark.asyncio
async def test_partial_failure_returns_remaining_quotes(tracker, cache):
    sources = [
        make_source('A', make_quote(source='A', buy='5.0', sell='5.1')),
        make_source('B', error=SourceError('B', 'HTTP error 503')),
        make_source('C', make_quote(source='C', buy='5.4', sell='5.5')),
    ]
    aggregator = build_aggregator(sources, tracker, cache)

    result = await aggregator.get_all_quotes()

    assert [q.source for q in result.quotes] == ['A', 'C']
    assert result.cached is False
    assert result.averages.quote_count == 2
    assert result.averages.average_buy_price == '5.2000'
    assert tracker.get('A').consecutive_failures == 0
    assert tracker.get('B').consecutive_failures == 1
    assert tracker.get('B').error == 'HTTP error 503'
    assert tracker.get('C').consecutive_failures == 0
    assert result.status['B'].success is False


@pytest.mark.asyncio
async def test_unexpected_exception_is_recorded_as_failure(tracker, cache):
    sources = [make_source('A', error=ValueError('bad payload'))]
    aggregator = build_aggregator(sources, tracker, cache)

    result = await aggregator.get_all_quotes()

    assert result.quotes == ()
    assert tracker.get('A').error == 'ValueError: bad payload'


@pytest.mark.asyncio
async def test_all_sources_failing_yields_empty_result(tracker, cache, failing_source):
    aggregator = build_aggregator([failing_source], tracker, cache)

    result = await aggregator.get_all_quotes()

    assert result.quotes == ()
    assert result.averages.quote_count == 0
    assert result.averages.average_buy_price is None
    assert result.averages.average_sell_price is None


@pytest.mark.asyncio
async def test_second_call_within_ttl_is_served_from_cache(tracker, cache):
    source = make_source('A')
    aggregator = build_aggregator([source], tracker, cache)

    first = await aggregator.get_all_quotes()
    second = await aggregator.get_all_quotes()

    assert source.fetch.await_count == 1
    assert second.cached is True
    assert second.quotes == first.quotes
    assert second.averages == first.averages
    assert second.timestamp == first.timestamp


@pytest.mark.asyncio
async def test_invalidate_forces_refetch(tracker, cache):
    source = make_source('A')
    aggregator = build_aggregator([source], tracker, cache)

    await aggregator.get_all_quotes()
    aggregator.invalidate()
    result = await aggregator.get_all_quotes()

    assert source.fetch.await_count == 2
    assert result.cached is False


@pytest.mark.asyncio
async def test_fallback_quotes_count_as_success(tracker, cache):
    quote = make_quote(source='Ambito', buy='900', sell='920', currency='ARS', is_fallback=True)
    aggregator = build_aggregator([make_source('Ambito', quote)], tracker, cache)

    result = await aggregator.get_all_quotes()

    assert result.quotes[0].is_fallback is True
    assert tracker.is_healthy('Ambito') is True


@pytest.mark.asyncio
async def test_quotes_are_persisted_in_background(tracker, cache):
    persist = AsyncMock()
    aggregator = build_aggregator([make_source('A'), make_source('B')], tracker, cache, persist)

    result = await aggregator.get_all_quotes()
    await aggregator.drain()

    persist.assert_awaited_once()
    assert list(persist.await_args.args[0]) == list(result.quotes)


@pytest.mark.asyncio
async def test_nothing_is_persisted_when_every_source_fails(tracker, cache, failing_source):
    persist = AsyncMock()
    aggregator = build_aggregator([failing_source], tracker, cache, persist)

    await aggregator.get_all_quotes()
    await aggregator.drain()

    persist.assert_not_awaited()


@pytest.mark.asyncio
async def test_persistence_failure_is_logged_not_raised(tracker, cache, caplog):
    persist = AsyncMock(side_effect=PersistenceError('database is locked'))
    aggregator = build_aggregator([make_source('A')], tracker, cache, persist)

    with caplog.at_level(logging.ERROR):
        result = await aggregator.get_all_quotes()
        await aggregator.drain()

    assert len(result.quotes) == 1
    assert 'Failed to persist quotes' in caplog.text


@pytest.mark.asyncio
async def test_response_does_not_wait_for_persistence(tracker, cache):
    release = asyncio.Event()

    async def slow_persist(quotes):
        await release.wait()

    aggregator = build_aggregator([make_source('A')], tracker, cache, slow_persist)

    result = await aggregator.get_all_quotes()

    assert len(result.quotes) == 1
    assert len(aggregator._pending_writes) == 1
    release.set()
    await aggregator.drain()
    assert not aggregator._pending_writes


@pytest.mark.asyncio
async def test_averaging_failure_raises_aggregation_error(tracker, cache, monkeypatch):
    def broken(*args, **kwargs):
        raise ArithmeticError('boom')

    monkeypatch.setattr('application.services.quote_aggregator.calculate_averages', broken)
    aggregator = build_aggregator([make_source('A')], tracker, cache)

    with pytest.raises(AggregationError):
        await aggregator.get_all_quotes()


@pytest.mark.asyncio
async def test_target_filter(tracker, cache):
    sources = [
        make_source('Ambito', make_quote(source='Ambito', buy='1000', sell='1020', currency='ARS')),
        make_source('Wise', make_quote(source='Wise', buy='5.0', sell='5.1', currency='BRL')),
    ]
    aggregator = build_aggregator(sources, tracker, cache)

    ars = await aggregator.get_quotes_for('ARS')
    averages = await aggregator.get_averages('BRL')
    slippage = await aggregator.get_slippage('BRL')

    assert [q.source for q in ars] == ['Ambito']
    assert averages.average_buy_price == '5.0000'
    assert averages.quote_count == 1
    assert [r.source for r in slippage] == ['Wise']
    assert slippage[0].buy_price_slippage == '0.0000'
    assert len(await aggregator.get_quotes_for()) == 2


@pytest.mark.asyncio
async def test_cycle_summary_carries_structured_fields(tracker, cache, caplog):
    sources = [
        make_source('A', make_quote(source='A', buy='5.0', sell='5.1', is_fallback=True)),
        make_source('B', error=SourceError('B', 'HTTP error 503')),
    ]
    aggregator = build_aggregator(sources, tracker, cache)

    with caplog.at_level(logging.INFO, logger='application.services.quote_aggregator'):
        await aggregator.get_all_quotes()

    summary = next(r for r in caplog.records if r.getMessage().startswith('Aggregated'))
    assert summary.extra_data['quotes'] == 1
    assert summary.extra_data['sources'] == 2
    assert summary.extra_data['fallbacks'] == 1
    assert summary.extra_data['average_buy_price'] == '5.0000'
