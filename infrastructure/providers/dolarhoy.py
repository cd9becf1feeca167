from domain.exceptions.quote import SourceError
from domain.models.quote import RateSource
from infrastructure.providers.base import Extraction, QuoteSource
from infrastructure.providers.parsing import parse_price, parse_rate


class DolarHoySource(QuoteSource):
    API_URL = 'https://dolarhoy.com/api/dolaroficial'
    SOURCE_URL = 'https://www.dolarhoy.com/cotizaciondolaroficial'

    @property
    def name(self) -> str:
        return 'DolarHoy'

    @property
    def currency(self) -> str:
        return 'ARS'

    @property
    def source_url(self) -> str:
        return self.SOURCE_URL

    async def _extract(self) -> Extraction:
        data = await self._get_json(self.API_URL)
        if not isinstance(data, dict):
            raise SourceError(self.name, 'unexpected response shape')

        buy = self._parse(data.get('compra'))
        sell = self._parse(data.get('venta'))
        if buy is None or sell is None:
            raise SourceError(self.name, 'unable to parse DolarHoy quote')

        return Extraction(buy=buy, sell=sell, rate_source=RateSource.API)

    @staticmethod
    def _parse(value):
        # dot-decimal first; "1.180,50" style strings only parse as a localized price
        return parse_rate(value) or parse_price(value)
