from decimal import Decimal

from bs4 import BeautifulSoup

from domain.exceptions.quote import SourceError
from domain.models.quote import RateSource
from infrastructure.providers.base import Extraction, QuoteSource, complete_one_side
from infrastructure.providers.parsing import find_price, parse_price


class AmbitoSource(QuoteSource):
    """Official dollar (USD→ARS) from the Ámbito dollar page."""

    SOURCE_URL = 'https://www.ambito.com/contenidos/dolar.html'
    # Ámbito sometimes only renders one side of the quote
    ONE_SIDED_SPREAD = Decimal('0.02')
    FALLBACK_BUY = Decimal('900.00')
    FALLBACK_SELL = Decimal('920.00')

    @property
    def name(self) -> str:
        return 'Ambito'

    @property
    def currency(self) -> str:
        return 'ARS'

    @property
    def source_url(self) -> str:
        return self.SOURCE_URL

    async def _extract(self) -> Extraction:
        html = await self._get_html(self.SOURCE_URL)
        buy, sell = self.parse_html(html)
        return Extraction(buy=buy, sell=sell, rate_source=RateSource.WEB_SCRAPING)

    def parse_html(self, html: str) -> tuple[Decimal, Decimal]:
        soup = BeautifulSoup(html, 'html.parser')
        strategies = [self._by_test_id, self._by_class, self._by_label]

        partial = None
        for strategy in strategies:
            buy, sell = strategy(soup)
            if buy and sell:
                return buy, sell
            if partial is None and (buy or sell):
                partial = (buy, sell)

        if partial is None:
            raise SourceError(self.name, 'could not find exchange rates on Ambito page')
        return complete_one_side(*partial, self.ONE_SIDED_SPREAD)

    @staticmethod
    def _text(soup: BeautifulSoup, selector: str) -> str | None:
        element = soup.select_one(selector)
        return element.get_text(strip=True) if element else None

    def _by_test_id(self, soup: BeautifulSoup):
        return (
            parse_price(self._text(soup, '[data-testid="dolar-compra"]')),
            parse_price(self._text(soup, '[data-testid="dolar-venta"]')),
        )

    def _by_class(self, soup: BeautifulSoup):
        return (
            parse_price(self._text(soup, '.dolar-value-compra')),
            parse_price(self._text(soup, '.dolar-value-venta')),
        )

    def _by_label(self, soup: BeautifulSoup):
        buy = sell = None
        for element in soup.find_all(['p', 'span', 'div', 'td']):
            text = element.get_text(' ', strip=True)
            # skip containers that wrap both labels
            if len(text) > 60:
                continue
            lowered = text.lower()
            if buy is None and ('compra' in lowered or 'buy' in lowered):
                buy = find_price(text)
            elif sell is None and ('venta' in lowered or 'sell' in lowered):
                sell = find_price(text)
        return buy, sell
