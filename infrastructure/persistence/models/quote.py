from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
	DECIMAL,
	Boolean,
	DateTime,
	ForeignKey,
	Index,
	Integer,
	String,
	UniqueConstraint,
	func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
	pass


class SourceDB(Base):
	__tablename__ = 'sources'

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
	url: Mapped[str] = mapped_column(String(255), nullable=False, default='')
	is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), nullable=False, server_default=func.now()
	)


class ExchangeRateDB(Base):
	"""Latest observation per (pair, source, timestamp); upserted."""

	__tablename__ = 'exchange_rates'

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	base_currency: Mapped[str] = mapped_column(String(5), nullable=False)
	target_currency: Mapped[str] = mapped_column(String(5), nullable=False)
	source_id: Mapped[int] = mapped_column(
		ForeignKey('sources.id', ondelete='CASCADE'), nullable=False
	)
	buy_rate: Mapped[Decimal] = mapped_column(DECIMAL(precision=18, scale=6), nullable=False)
	sell_rate: Mapped[Decimal] = mapped_column(DECIMAL(precision=18, scale=6), nullable=False)
	timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), nullable=False, server_default=func.now()
	)

	source: Mapped[SourceDB] = relationship(lazy='joined')

	__table_args__ = (
		Index('idx_exchange_rates_currency_pair', 'base_currency', 'target_currency'),
		Index('idx_exchange_rates_timestamp', 'timestamp'),
		UniqueConstraint(
			'base_currency', 'target_currency', 'source_id', 'timestamp',
			name='uq_exchange_rates_pair_source_timestamp',
		),
	)


class HistoricalRateDB(Base):
	"""Append-only log of every observation."""

	__tablename__ = 'historical_rates'

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	base_currency: Mapped[str] = mapped_column(String(5), nullable=False)
	target_currency: Mapped[str] = mapped_column(String(5), nullable=False)
	source_id: Mapped[int | None] = mapped_column(
		ForeignKey('sources.id', ondelete='SET NULL'), nullable=True
	)
	buy_rate: Mapped[Decimal] = mapped_column(DECIMAL(precision=18, scale=6), nullable=False)
	sell_rate: Mapped[Decimal] = mapped_column(DECIMAL(precision=18, scale=6), nullable=False)
	timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), nullable=False, server_default=func.now()
	)

	__table_args__ = (
		Index('idx_historical_rates_currency_pair', 'base_currency', 'target_currency'),
		Index('idx_historical_rates_timestamp', 'timestamp'),
	)
