import logging
import secrets
from decimal import Decimal

import httpx
from bs4 import BeautifulSoup

from domain.exceptions.quote import SourceError
from domain.models.quote import RateSource
from infrastructure.providers.base import (
    Extraction,
    QuoteSource,
    complete_one_side,
    split_mid_rate,
)
from infrastructure.providers.parsing import find_decimal_prices, find_price, parse_rate

logger = logging.getLogger(__name__)


class NubankSource(QuoteSource):
    API_URL = 'https://api.nubank.com.br/api/currency'
    SOURCE_URL = 'https://www.nubank.com.br/cambio/'
    # The API exposes a single mid rate; the page shows one or both sides
    MID_RATE_SPREAD = Decimal('0.01')
    ONE_SIDED_SPREAD = Decimal('0.01')
    FALLBACK_BUY = Decimal('5.15')
    FALLBACK_SELL = Decimal('5.25')
    PLAUSIBLE_RANGE = (Decimal('1'), Decimal('10'))
    MAX_ATTEMPTS = 3

    @property
    def name(self) -> str:
        return 'Nubank'

    @property
    def currency(self) -> str:
        return 'BRL'

    @property
    def source_url(self) -> str:
        return self.SOURCE_URL

    async def _extract(self) -> Extraction:
        try:
            mid = await self._fetch_api_rate()
            buy, sell = split_mid_rate(mid, self.MID_RATE_SPREAD)
            return Extraction(buy=buy, sell=sell, rate_source=RateSource.API)
        except (httpx.HTTPError, SourceError, ValueError, AttributeError) as e:
            logger.info(f'Nubank API failed, falling back to web scraping: {e}')

        html = await self._get_html(self.SOURCE_URL, headers={'Referer': 'https://www.nubank.com.br/'})
        buy, sell = self.parse_html(html)
        return Extraction(buy=buy, sell=sell, rate_source=RateSource.WEB_SCRAPING)

    async def _fetch_api_rate(self) -> Decimal:
        data = await self._get_json(
            self.API_URL,
            headers={
                'Origin': 'https://www.nubank.com.br',
                'X-Correlation-Id': f'WEB-APP.{secrets.token_hex(4)}',
            },
        )
        currencies = data.get('currencies') if isinstance(data, dict) else None
        usd = next(
            (c for c in currencies or [] if c.get('code') == 'USD' and c.get('currency') == 'BRL'),
            None,
        )
        mid = parse_rate(usd.get('amount')) if usd else None
        if not self._plausible(mid):
            raise SourceError(self.name, 'no plausible USD rate in Nubank API response')
        return mid

    def parse_html(self, html: str) -> tuple[Decimal, Decimal]:
        soup = BeautifulSoup(html, 'html.parser')
        strategies = [self._by_test_id, self._by_class, self._by_body_text]

        partial = None
        for strategy in strategies:
            buy, sell = strategy(soup)
            if buy and sell:
                return buy, sell
            if partial is None and (buy or sell):
                partial = (buy, sell)

        if partial is None:
            raise SourceError(self.name, 'could not find exchange rates on Nubank page')
        return complete_one_side(*partial, self.ONE_SIDED_SPREAD)

    def _by_test_id(self, soup: BeautifulSoup):
        return (
            self._price(soup, '[data-testid*="buy"], [data-testid*="compra"]'),
            self._price(soup, '[data-testid*="sell"], [data-testid*="venda"]'),
        )

    def _by_class(self, soup: BeautifulSoup):
        return (
            self._price(soup, '.currency-quote__currency-buy-value'),
            self._price(soup, '.currency-quote__currency-sell-value'),
        )

    def _by_body_text(self, soup: BeautifulSoup):
        """First two numbers on the page that fall inside PLAUSIBLE_RANGE."""
        rates = [p for p in find_decimal_prices(soup.get_text(' ', strip=True)) if self._plausible(p)]
        return (
            rates[0] if rates else None,
            rates[1] if len(rates) > 1 else None,
        )

    @staticmethod
    def _price(soup: BeautifulSoup, selector: str) -> Decimal | None:
        element = soup.select_one(selector)
        return find_price(element.get_text(strip=True)) if element else None
