from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from sqlalchemy import and_, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from domain.models.quote import PersistedAverages, PersistedRate, Quote, format_decimal
from infrastructure.persistence.models.quote import ExchangeRateDB, HistoricalRateDB, SourceDB


class RateRepository:
	"""Persistence gateway for quote observations.

	Writes go through the caller's session; the caller owns the transaction, so a
	batch saved with ``save_quotes`` commits or rolls back as a whole.
	"""

	def __init__(self, db_session: AsyncSession):
		self.db_session = db_session
		self._source_ids: dict[str, int] = {}

	async def get_source_id(self, name: str, url: str | None = None) -> int:
		if name in self._source_ids:
			return self._source_ids[name]

		result = await self.db_session.execute(select(SourceDB).filter(SourceDB.name == name))
		source = result.scalars().first()
		if source is None:
			source = SourceDB(name=name, url=url or '')
			self.db_session.add(source)
			await self.db_session.flush()

		self._source_ids[name] = source.id
		return source.id

	def _insert(self, table):
		dialect = self.db_session.get_bind().dialect.name
		if dialect == 'postgresql':
			return postgresql.insert(table)
		return sqlite.insert(table)

	async def upsert_rate(
		self,
		base_currency: str,
		target_currency: str,
		source: str,
		buy_rate: Decimal,
		sell_rate: Decimal,
		timestamp: datetime,
		source_url: str | None = None,
	) -> None:
		source_id = await self.get_source_id(source, source_url)
		values = {
			'base_currency': base_currency,
			'target_currency': target_currency,
			'source_id': source_id,
			'buy_rate': buy_rate,
			'sell_rate': sell_rate,
			'timestamp': timestamp,
		}

		stmt = self._insert(ExchangeRateDB).values(**values)
		stmt = stmt.on_conflict_do_update(
			index_elements=['base_currency', 'target_currency', 'source_id', 'timestamp'],
			set_={'buy_rate': stmt.excluded.buy_rate, 'sell_rate': stmt.excluded.sell_rate},
		)
		await self.db_session.execute(stmt)

		self.db_session.add(HistoricalRateDB(**values))

	async def save_quotes(self, quotes: Sequence[Quote]) -> int:
		for quote in quotes:
			await self.upsert_rate(
				base_currency=quote.base_currency,
				target_currency=quote.currency,
				source=quote.source,
				buy_rate=quote.buy,
				sell_rate=quote.effective_sell,
				timestamp=quote.timestamp,
				source_url=quote.source_url,
			)
		await self.db_session.flush()
		return len(quotes)

	async def get_latest_rates(
		self, base_currency: str, target_currency: str, limit: int | None = None
	) -> list[PersistedRate]:
		stmt = (
			select(ExchangeRateDB)
			.filter(
				ExchangeRateDB.base_currency == base_currency,
				ExchangeRateDB.target_currency == target_currency,
			)
			.order_by(ExchangeRateDB.timestamp.desc(), ExchangeRateDB.id.desc())
		)
		if limit is not None:
			stmt = stmt.limit(limit)

		result = await self.db_session.execute(stmt)
		return [self._to_domain(r) for r in result.scalars().all()]

	async def get_historical_rates(
		self, base_currency: str, target_currency: str, hours: int = 24
	) -> list[PersistedRate]:
		since = datetime.now(UTC) - timedelta(hours=hours)
		stmt = (
			select(HistoricalRateDB, SourceDB.name, SourceDB.url)
			.outerjoin(SourceDB, HistoricalRateDB.source_id == SourceDB.id)
			.filter(
				HistoricalRateDB.base_currency == base_currency,
				HistoricalRateDB.target_currency == target_currency,
				HistoricalRateDB.timestamp >= since,
			)
			.order_by(HistoricalRateDB.timestamp.desc(), HistoricalRateDB.id.desc())
		)
		result = await self.db_session.execute(stmt)
		return [
			PersistedRate(
				base_currency=r.base_currency,
				target_currency=r.target_currency,
				source=name or 'unknown',
				source_url=url,
				buy_rate=r.buy_rate,
				sell_rate=r.sell_rate,
				timestamp=r.timestamp,
			)
			for r, name, url in result.all()
		]

	async def get_averages(self, base_currency: str, target_currency: str) -> PersistedAverages:
		"""Averages over the most recent row of each source for the pair."""
		latest = (
			select(
				ExchangeRateDB.source_id,
				func.max(ExchangeRateDB.timestamp).label('latest'),
			)
			.filter(
				ExchangeRateDB.base_currency == base_currency,
				ExchangeRateDB.target_currency == target_currency,
			)
			.group_by(ExchangeRateDB.source_id)
			.subquery()
		)
		stmt = (
			select(ExchangeRateDB)
			.join(
				latest,
				and_(
					ExchangeRateDB.source_id == latest.c.source_id,
					ExchangeRateDB.timestamp == latest.c.latest,
				),
			)
			.filter(
				ExchangeRateDB.base_currency == base_currency,
				ExchangeRateDB.target_currency == target_currency,
				ExchangeRateDB.buy_rate > 0,
			)
		)
		rows = (await self.db_session.execute(stmt)).scalars().unique().all()

		if not rows:
			return PersistedAverages(avg_buy_rate=None, avg_sell_rate=None, source_count=0)

		count = len(rows)
		return PersistedAverages(
			avg_buy_rate=format_decimal(sum((Decimal(r.buy_rate) for r in rows), Decimal(0)) / count),
			avg_sell_rate=format_decimal(sum((Decimal(r.sell_rate) for r in rows), Decimal(0)) / count),
			source_count=count,
			sources=sorted(r.source.name for r in rows),
		)

	async def get_active_sources(self) -> list[tuple[str, str]]:
		result = await self.db_session.execute(
			select(SourceDB).filter(SourceDB.is_active.is_(True)).order_by(SourceDB.id)
		)
		return [(s.name, s.url) for s in result.scalars().all()]

	@staticmethod
	def _to_domain(row: ExchangeRateDB) -> PersistedRate:
		return PersistedRate(
			base_currency=row.base_currency,
			target_currency=row.target_currency,
			source=row.source.name if row.source else 'unknown',
			source_url=row.source.url if row.source else None,
			buy_rate=row.buy_rate,
			sell_rate=row.sell_rate,
			timestamp=row.timestamp,
		)
