"""Tests for structured logging configuration."""
import json
import logging
import os
from unittest.mock import patch

import pytest

from talentdash.logging_config import configure_logging, JSONFormatter


@pytest.fixture(autouse=True)
def _reset_root_logger():
    """Reset root logger state after each test."""
    root = logging.getLogger()
    original_level = root.level
    original_handlers = root.handlers[:]
    yield
    root.setLevel(original_level)
    root.handlers = original_handlers


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_default_level_is_info(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop('LOG_LEVEL', None)
            configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_log_level_case_insensitive(self):
        with patch.dict(os.environ, {'LOG_LEVEL': 'debug'}):
            configure_logging()
        assert logging.getLogger().level == logging.DEBUG

    def test_invalid_log_level_defaults_to_info(self):
        with patch.dict(os.environ, {'LOG_LEVEL': 'NONSENSE'}):
            configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_text_format(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'text'}):
            configure_logging()
        logging.getLogger('analytics.test').info("hello world")
        output = capsys.readouterr().err
        assert 'analytics.test' in output
        assert 'hello world' in output

    def test_json_format_carries_analytics_context(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'json'}):
            configure_logging()
        logging.getLogger('analytics.test').warning(
            "resolution aborted", extra={'influencer_id': 'inf-001', 'platform': 'instagram'},
        )
        parsed = json.loads(capsys.readouterr().err.strip())
        assert parsed['level'] == 'WARNING'
        assert parsed['influencer_id'] == 'inf-001'
        assert parsed['platform'] == 'instagram'
        assert 'tier' not in parsed

    def test_third_party_loggers_quieted_to_warning(self):
        configure_logging()
        for name in ['urllib3', 'requests', 'sqlalchemy.engine', 'werkzeug']:
            assert logging.getLogger(name).level == logging.WARNING

    def test_no_duplicate_handlers_on_repeated_calls(self):
        configure_logging()
        configure_logging()
        assert len(logging.getLogger().handlers) == 1


class TestJSONFormatter:
    """Tests for the JSONFormatter class."""

    def test_format_exception(self):
        formatter = JSONFormatter()
        try:
            raise ValueError("boom")
        except ValueError:
            import sys
            record = logging.LogRecord(
                name='test', level=logging.ERROR, pathname='', lineno=0,
                msg='failed', args=(), exc_info=sys.exc_info(),
            )
        parsed = json.loads(formatter.format(record))
        assert 'ValueError' in parsed['exception']
