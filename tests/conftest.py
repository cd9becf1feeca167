"""
Shared test configuration and fixtures.
"""

import pytest

from domain.exceptions.quote import SourceError
from tests.factories import make_quote, make_source


@pytest.fixture
def sample_quotes():
    return [
        make_quote(source='Wise', buy='5.0', sell='5.1'),
        make_quote(source='Nubank', buy='5.2', sell='5.3'),
        make_quote(source='Nomad', buy='5.4', sell='5.5'),
    ]


@pytest.fixture
def failing_source():
    return make_source('Broken', error=SourceError('Broken', 'HTTP error 503'))
