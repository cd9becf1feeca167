import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import bootstrap, cleanup_dependencies, init_dependencies
from api.error_handlers import register_exception_handlers
from api.routes import health, quotes
from config.logging_config import setup_logging
from config.settings import get_settings

logger = logging.getLogger(__name__)


settings = get_settings()

NO_CACHE_HEADERS = {
	'Cache-Control': 'no-store, no-cache, must-revalidate, proxy-revalidate',
	'Pragma': 'no-cache',
	'Expires': '0',
	'Surrogate-Control': 'no-store',
}


@asynccontextmanager
async def lifespan(app: FastAPI):
	setup_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)
	logger.info(f'Starting {settings.APP_NAME} in {settings.ENVIRONMENT} mode...')

	init_dependencies(settings)
	await bootstrap(settings)

	logger.info('Application ready')

	yield

	logger.info('Shutting down...')
	await cleanup_dependencies()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.add_middleware(
	CORSMiddleware,
	allow_origins=[settings.CORS_ORIGIN],
	allow_methods=['GET'],
	allow_headers=['*'],
)


@app.middleware('http')
async def no_cache_headers(request: Request, call_next):
	start_time = time.time()
	response = await call_next(request)
	response.headers.update(NO_CACHE_HEADERS)

	response_time = (time.time() - start_time) * 1000
	logger.info(f'{response.status_code} {request.method} {request.url.path} ({response_time:.2f}ms)')
	return response


app.include_router(health.router)
app.include_router(quotes.router)
register_exception_handlers(app)


if __name__ == '__main__':
	import uvicorn

	logger.info(f'Starting server on {settings.HOST}:{settings.PORT}')

	uvicorn.run(
		'api.main:app',
		host=settings.HOST,
		port=settings.PORT,
		reload=settings.ENVIRONMENT == 'development',
		log_level=settings.LOG_LEVEL.lower(),
	)
