from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_aggregator, get_history_service, get_status_tracker
from api.main import app
from application.services import QuoteAggregator, StatusTracker
from domain.exceptions.quote import SourceError
from infrastructure.cache.quote_cache import QuoteCache
from tests.factories import make_quote, make_source


@pytest.fixture
def status_tracker():
    return StatusTracker()


@pytest.fixture
def aggregator(status_tracker):
    sources = [
        make_source('Ambito', make_quote(source='Ambito', buy='1000', sell='1020', currency='ARS')),
        make_source('DolarHoy', error=SourceError('DolarHoy', 'HTTP error 503')),
        make_source('Wise', make_quote(source='Wise', buy='5.0', sell='5.1')),
        make_source('Nubank', make_quote(source='Nubank', buy='5.2', sell='5.3')),
        make_source('Nomad', make_quote(source='Nomad', buy='5.4', sell='5.5')),
    ]
    return QuoteAggregator(
        sources=sources,
        status_tracker=status_tracker,
        cache=QuoteCache(ttl=timedelta(seconds=30)),
    )


@pytest.fixture
def client(aggregator, status_tracker):
    app.dependency_overrides[get_aggregator] = lambda: aggregator
    app.dependency_overrides[get_status_tracker] = lambda: status_tracker
    app.dependency_overrides[get_history_service] = lambda: MagicMock()
    client = TestClient(app, raise_server_exceptions=False)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def override_history():
    def _override(service):
        app.dependency_overrides[get_history_service] = lambda: service
    return _override
