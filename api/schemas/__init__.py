from .responses import (
	AveragesResponse,
	ErrorResponse,
	HealthResponse,
	HistoryResponse,
	QuotesResponse,
	SlippageResponse,
	StatusResponse,
)

__all__ = [
	'AveragesResponse',
	'ErrorResponse',
	'HealthResponse',
	'HistoryResponse',
	'QuotesResponse',
	'SlippageResponse',
	'StatusResponse',
]
