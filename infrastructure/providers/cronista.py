from decimal import Decimal

from bs4 import BeautifulSoup

from domain.exceptions.quote import SourceError
from domain.models.quote import RateSource
from infrastructure.providers.base import Extraction, QuoteSource
from infrastructure.providers.parsing import find_price


class CronistaSource(QuoteSource):
    SOURCE_URL = 'https://www.cronista.com/MercadosOnline/moneda.html?id=ARSB'
    ONE_SIDED_SPREAD = Decimal('0.02')
    FALLBACK_BUY = Decimal('800.00')
    FALLBACK_SELL = Decimal('820.00')

    @property
    def name(self) -> str:
        return 'Cronista'

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
        buy = self._first_price(soup, ['.buy-value', '[data-market-currency="USD"] .buy-value'])
        sell = self._first_price(soup, ['.sell-value', '[data-market-currency="USD"] .sell-value'])

        if not buy:
            raise SourceError(self.name, 'could not extract buy price from Cronista')

        return buy, sell or buy * (1 + self.ONE_SIDED_SPREAD)

    @staticmethod
    def _first_price(soup: BeautifulSoup, selectors: list[str]) -> Decimal | None:
        for selector in selectors:
            element = soup.select_one(selector)
            if element is None:
                continue
            price = find_price(element.get_text(strip=True))
            if price:
                return price
        return None
