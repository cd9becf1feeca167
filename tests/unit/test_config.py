# nosec B101

import json
import logging
import sys
from decimal import Decimal

from config.logging_config import JSONFormatter, setup_logging
from config.settings import DEFAULT_SOURCES, Settings


def test_settings_defaults(monkeypatch):
    for name in ('QUOTE_CACHE_TTL_SECONDS', 'ENABLED_SOURCES', 'FALLBACK_QUOTES_ENABLED'):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.QUOTE_CACHE_TTL_SECONDS == 30
    assert settings.ENABLED_SOURCES == DEFAULT_SOURCES
    assert settings.FALLBACK_QUOTES_ENABLED is True


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv('ENABLED_SOURCES', '["wise", "nomad"]')
    monkeypatch.setenv('fallback_quotes_enabled', 'false')

    settings = Settings(_env_file=None)

    assert settings.ENABLED_SOURCES == ['wise', 'nomad']
    assert settings.FALLBACK_QUOTES_ENABLED is False


def test_json_formatter_includes_exception():
    try:
        raise ValueError('bad price')
    except ValueError:
        record = logging.LogRecord(
            'infrastructure.providers.wise', logging.ERROR, __file__, 10,
            'Wise failed', None, sys.exc_info(),
        )
    record.extra_data = {'rate': Decimal('5.1')}

    entry = json.loads(JSONFormatter().format(record))

    assert entry['level'] == 'ERROR'
    assert entry['logger'] == 'infrastructure.providers.wise'
    assert entry['message'] == 'Wise failed'
    assert entry['exception']['type'] == 'ValueError'
    assert entry['data'] == {'rate': '5.1'}


def test_setup_logging_installs_single_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging('debug', json_output=True)
        setup_logging('debug', json_output=True)

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert root.level == logging.DEBUG
        assert logging.getLogger('httpx').level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
