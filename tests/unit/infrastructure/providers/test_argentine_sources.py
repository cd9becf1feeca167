# nosec B101

from decimal import Decimal
from unittest.mock import Mock

import httpx
import pytest

from domain.exceptions.quote import SourceError
from domain.models.quote import RateSource
from infrastructure.providers import AmbitoSource, CronistaSource, DolarHoySource
from tests.factories import mock_client, mock_response

AMBITO_HTML = '''
<html><body>
  <div class="variation-max-min">
    <span data-testid="dolar-compra">$ 1.187,50</span>
    <span data-testid="dolar-venta">$ 1.212,50</span>
  </div>
</body></html>
'''

AMBITO_LABELS_HTML = '''
<html><body>
  <table><tr>
    <td>Compra $ 1.190,00</td>
    <td>Venta $ 1.240,00</td>
  </tr></table>
</body></html>
'''

CRONISTA_HTML = '''
<html><body>
  <div data-market-currency="USD">
    <span class="buy-value">$1.195,00</span>
    <span class="sell-value">$1.235,00</span>
  </div>
</body></html>
'''


@pytest.mark.asyncio
async def test_ambito_scrapes_buy_and_sell():
    client = mock_client(mock_response(text=AMBITO_HTML))
    source = AmbitoSource(client=client)

    quote = await source.fetch()

    assert quote.source == 'Ambito'
    assert quote.currency == 'ARS'
    assert quote.base_currency == 'USD'
    assert quote.buy == Decimal('1187.5000')
    assert quote.sell == Decimal('1212.5000')
    assert quote.rate_source == RateSource.WEB_SCRAPING
    assert quote.is_fallback is False
    assert client.get.call_args[0][0] == AmbitoSource.SOURCE_URL


def test_ambito_label_strategy():
    source = AmbitoSource(client=Mock())

    assert source.parse_html(AMBITO_LABELS_HTML) == (Decimal('1190.00'), Decimal('1240.00'))


def test_ambito_completes_missing_sell_with_spread():
    source = AmbitoSource(client=Mock())
    html = '<span data-testid="dolar-compra">$ 1.000,00</span>'

    buy, sell = source.parse_html(html)

    assert buy == Decimal('1000.00')
    assert sell == Decimal('1020.0000')


def test_ambito_without_prices_raises():
    source = AmbitoSource(client=Mock())

    with pytest.raises(SourceError, match='could not find exchange rates'):
        source.parse_html('<html><body>Mantenimiento</body></html>')


@pytest.mark.asyncio
async def test_ambito_falls_back_on_http_error():
    client = mock_client(mock_response(status_code=403))
    source = AmbitoSource(client=client)

    quote = await source.fetch()

    assert quote.is_fallback is True
    assert quote.rate_source == RateSource.FALLBACK
    assert quote.buy == Decimal('900.00')
    assert quote.sell == Decimal('920.00')


@pytest.mark.asyncio
async def test_ambito_raises_when_fallback_disabled():
    client = mock_client(mock_response(status_code=403))
    source = AmbitoSource(client=client, allow_fallback=False)

    with pytest.raises(SourceError) as exc_info:
        await source.fetch()

    assert exc_info.value.source == 'Ambito'
    assert exc_info.value.reason == 'HTTP error 403'


@pytest.mark.asyncio
async def test_cronista_scrapes_buy_and_sell():
    source = CronistaSource(client=mock_client(mock_response(text=CRONISTA_HTML)))

    quote = await source.fetch()

    assert quote.buy == Decimal('1195.0000')
    assert quote.sell == Decimal('1235.0000')


def test_cronista_missing_sell_uses_two_percent():
    source = CronistaSource(client=Mock())

    buy, sell = source.parse_html('<span class="buy-value">$800,00</span>')

    assert buy == Decimal('800.00')
    assert sell == Decimal('816.0000')


@pytest.mark.asyncio
async def test_cronista_falls_back_on_timeout():
    source = CronistaSource(client=mock_client(httpx.ReadTimeout('timed out')))

    quote = await source.fetch()

    assert quote.is_fallback is True
    assert quote.buy == Decimal('800.00')
    assert quote.sell == Decimal('820.00')


@pytest.mark.asyncio
async def test_dolarhoy_reads_api():
    client = mock_client(mock_response(json_data={'compra': '1180.00', 'venta': '1220.00'}))
    source = DolarHoySource(client=client)

    quote = await source.fetch()

    assert quote.buy == Decimal('1180.0000')
    assert quote.sell == Decimal('1220.0000')
    assert quote.rate_source == RateSource.API
    assert quote.source_url == DolarHoySource.SOURCE_URL
    assert client.get.call_args[0][0] == DolarHoySource.API_URL


@pytest.mark.asyncio
async def test_dolarhoy_has_no_fallback():
    source = DolarHoySource(client=mock_client(mock_response(status_code=500)))

    assert source.has_fallback is False
    with pytest.raises(SourceError, match='HTTP error 500'):
        await source.fetch()


@pytest.mark.asyncio
async def test_dolarhoy_rejects_unparseable_payload():
    source = DolarHoySource(client=mock_client(mock_response(json_data={'compra': 'N/A'})))

    with pytest.raises(SourceError, match='unable to parse'):
        await source.fetch()


@pytest.mark.asyncio
async def test_sell_below_buy_is_rejected():
    client = mock_client(mock_response(json_data={'compra': '1220.00', 'venta': '1180.00'}))
    source = DolarHoySource(client=client)

    with pytest.raises(SourceError, match='below buy price'):
        await source.fetch()


@pytest.mark.asyncio
async def test_owned_client_is_closed():
    source = DolarHoySource()
    source._client = mock_client()

    await source.close()

    source._client.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_shared_client_is_not_closed():
    client = mock_client()
    source = DolarHoySource(client=client)

    await source.close()

    client.aclose.assert_not_awaited()


@pytest.mark.asyncio
async def test_dolarhoy_reads_dot_decimal_strings():
    client = mock_client(mock_response(json_data={'compra': '1180.125', 'venta': '1220.875'}))

    quote = await DolarHoySource(client=client).fetch()

    assert quote.buy == Decimal('1180.1250')
    assert quote.sell == Decimal('1220.8750')


@pytest.mark.asyncio
async def test_dolarhoy_reads_localized_strings():
    client = mock_client(mock_response(json_data={'compra': '1.180,50', 'venta': '1.220,50'}))

    quote = await DolarHoySource(client=client).fetch()

    assert quote.buy == Decimal('1180.5000')
    assert quote.sell == Decimal('1220.5000')
