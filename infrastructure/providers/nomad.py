from decimal import Decimal

from domain.exceptions.quote import SourceError
from domain.models.quote import RateSource
from infrastructure.providers.base import Extraction, QuoteSource
from infrastructure.providers.parsing import parse_rate


class NomadSource(QuoteSource):
    API_URL = 'https://api.nomadglobal.com/api/v1/exchange-rates'
    SOURCE_URL = 'https://www.nomadprelo.com.br/cambio'
    PLAUSIBLE_RANGE = (Decimal('1'), Decimal('10'))

    @property
    def name(self) -> str:
        return 'Nomad'

    @property
    def currency(self) -> str:
        return 'BRL'

    @property
    def source_url(self) -> str:
        return self.SOURCE_URL

    async def _extract(self) -> Extraction:
        data = await self._get_json(self.API_URL)
        rates = data.get('rates') if isinstance(data, dict) else None

        usd_to_brl = next(
            (
                rate for rate in rates or []
                if rate.get('source_currency') == 'USD' and rate.get('target_currency') == 'BRL'
            ),
            None,
        )
        if usd_to_brl is None:
            raise SourceError(self.name, 'USD to BRL rate not found in response')

        return Extraction(
            buy=parse_rate(usd_to_brl.get('buy_rate')),
            sell=parse_rate(usd_to_brl.get('sell_rate')),
            rate_source=RateSource.API,
        )
