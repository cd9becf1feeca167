import logging
from datetime import timedelta

import httpx

from application.services import QuoteAggregator, QuoteHistoryService, QuoteRefresher, StatusTracker
from config.settings import Settings, get_settings
from infrastructure.cache.quote_cache import QuoteCache
from infrastructure.persistence.database import Database
from infrastructure.providers import QuoteSource, build_sources

logger = logging.getLogger(__name__)


class AppDependencies:
	"""Container for application-wide singleton dependencies."""

	db: Database | None = None
	http_client: httpx.AsyncClient | None = None
	sources: list[QuoteSource] | None = None
	status_tracker: StatusTracker | None = None
	cache: QuoteCache | None = None
	history: QuoteHistoryService | None = None
	aggregator: QuoteAggregator | None = None
	refresher: QuoteRefresher | None = None


deps = AppDependencies()


def init_dependencies(settings: Settings | None = None) -> None:
	"""Initialize all singleton dependencies. Called at app startup."""
	logger.info('Initializing dependencies...')
	settings = settings or get_settings()

	deps.db = Database(settings.DATABASE_URL)
	deps.http_client = httpx.AsyncClient(
		timeout=settings.REQUEST_TIMEOUT_SECONDS,
		headers={'User-Agent': settings.USER_AGENT},
		follow_redirects=True,
	)
	deps.sources = build_sources(
		settings.ENABLED_SOURCES,
		client=deps.http_client,
		timeout=settings.REQUEST_TIMEOUT_SECONDS,
		allow_fallback=settings.FALLBACK_QUOTES_ENABLED,
	)
	deps.status_tracker = StatusTracker()
	deps.cache = QuoteCache(ttl=timedelta(seconds=settings.QUOTE_CACHE_TTL_SECONDS))
	deps.history = QuoteHistoryService(deps.db)
	deps.aggregator = QuoteAggregator(
		sources=deps.sources,
		status_tracker=deps.status_tracker,
		cache=deps.cache,
		persist=deps.history.save_quotes,
	)
	deps.refresher = QuoteRefresher(deps.aggregator, interval_seconds=settings.REFRESH_INTERVAL_SECONDS)
	logger.info(f'Dependencies initialized with sources: {[s.name for s in deps.sources]}')


async def bootstrap(settings: Settings | None = None) -> None:
	"""Create tables, register sources and start the refresher. Called after init_dependencies()."""
	logger.info('Bootstrapping application...')
	settings = settings or get_settings()

	if deps.db is None or deps.sources is None or deps.refresher is None:
		raise RuntimeError('Dependencies not initialized. Call init_dependencies() first.')

	await deps.db.create_tables()
	await deps.db.seed_sources({s.name: s.source_url for s in deps.sources})
	logger.info('Database tables ready')

	if settings.REFRESH_INTERVAL_SECONDS > 0:
		deps.refresher.start()

	logger.info('Bootstrap complete')


async def cleanup_dependencies() -> None:
	logger.info('Cleaning up dependencies...')

	if deps.refresher:
		await deps.refresher.stop()
	if deps.aggregator:
		await deps.aggregator.drain()
	if deps.http_client:
		await deps.http_client.aclose()
	if deps.db:
		await deps.db.close()

	logger.info('Cleanup complete')


def get_aggregator() -> QuoteAggregator:
	if deps.aggregator is None:
		raise RuntimeError('Quote aggregator not initialized')
	return deps.aggregator


def get_status_tracker() -> StatusTracker:
	if deps.status_tracker is None:
		raise RuntimeError('Status tracker not initialized')
	return deps.status_tracker


def get_history_service() -> QuoteHistoryService:
	if deps.history is None:
		raise RuntimeError('History service not initialized')
	return deps.history
