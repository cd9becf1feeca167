from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status

from api.dependencies import get_status_tracker
from api.schemas import HealthResponse, StatusResponse
from api.schemas.responses import SourceStatusResponse
from application.services import StatusTracker
from config.settings import get_settings

router = APIRouter(tags=['health'])


@router.get(
	'/health',
	response_model=HealthResponse,
	status_code=status.HTTP_200_OK,
	summary='Liveness check',
)
async def health_check() -> HealthResponse:
	return HealthResponse(
		status='ok',
		timestamp=datetime.now(UTC),
		environment=get_settings().ENVIRONMENT,
	)


@router.get(
	'/status',
	response_model=StatusResponse,
	status_code=status.HTTP_200_OK,
	summary='Last outcome of every quote source',
)
async def source_status(
	tracker: Annotated[StatusTracker, Depends(get_status_tracker)],
) -> StatusResponse:
	snapshot = tracker.snapshot()
	sources = {
		name: SourceStatusResponse.from_domain(s, healthy=tracker.is_healthy(name))
		for name, s in snapshot.items()
	}
	return StatusResponse(
		timestamp=datetime.now(UTC),
		healthy_sources=sum(1 for s in sources.values() if s.healthy),
		total_sources=len(sources),
		sources=sources,
	)
