import logging
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError

from domain.exceptions.quote import PersistenceError
from domain.models.quote import PersistedAverages, PersistedRate, Quote
from infrastructure.persistence.database import Database
from infrastructure.persistence.repositories.rate import RateRepository

logger = logging.getLogger(__name__)


class QuoteHistoryService:
    """Reads and writes persisted quote observations, one transaction per call."""

    def __init__(self, database: Database):
        self.database = database

    async def save_quotes(self, quotes: Sequence[Quote]) -> None:
        try:
            async with self.database.session() as session:
                saved = await RateRepository(session).save_quotes(quotes)
        except Exception as e:
            raise PersistenceError(f"Failed to store {len(quotes)} quotes: {e}") from e
        logger.info(f"Stored {saved} quotes")

    async def get_latest_rates(self, base: str, target: str, limit: int | None = None) -> list[PersistedRate]:
        try:
            async with self.database.session() as session:
                return await RateRepository(session).get_latest_rates(base, target, limit=limit)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read latest {base}/{target} rates: {e}") from e

    async def get_history(self, base: str, target: str, hours: int = 24) -> list[PersistedRate]:
        try:
            async with self.database.session() as session:
                return await RateRepository(session).get_historical_rates(base, target, hours=hours)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read {base}/{target} history: {e}") from e

    async def get_averages(self, base: str, target: str) -> PersistedAverages:
        try:
            async with self.database.session() as session:
                return await RateRepository(session).get_averages(base, target)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to average stored {base}/{target} rates: {e}") from e
