import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.schemas import ErrorResponse
from config.settings import get_settings
from domain.exceptions.quote import AggregationError, InvalidCurrencyError, PersistenceError

logger = logging.getLogger(__name__)


def error_body(error: str, exc: Exception, expose: bool | None = None) -> dict:
	if expose is None:
		expose = get_settings().DEBUG
	return ErrorResponse(error=error, details=str(exc) if expose else None).model_dump()


def register_exception_handlers(app: FastAPI) -> None:
	@app.exception_handler(InvalidCurrencyError)
	async def invalid_currency_handler(request: Request, exc: InvalidCurrencyError):
		return JSONResponse(status_code=400, content=error_body('Invalid currency', exc, expose=True))

	@app.exception_handler(AggregationError)
	async def aggregation_error_handler(request: Request, exc: AggregationError):
		logger.error(f'Aggregation error on {request.url.path}: {exc}', exc_info=exc)
		return JSONResponse(status_code=500, content=error_body('Failed to fetch quotes', exc))

	@app.exception_handler(PersistenceError)
	async def persistence_error_handler(request: Request, exc: PersistenceError):
		logger.error(f'Persistence error on {request.url.path}: {exc}')
		return JSONResponse(status_code=500, content=error_body('Failed to read stored rates', exc))

	@app.exception_handler(Exception)
	async def global_exception_handler(request: Request, exc: Exception):
		logger.error(f'Unhandled exception: {exc}', exc_info=True)
		return JSONResponse(status_code=500, content=error_body('Internal server error', exc))
