"""Tests for settings and logging setup."""

import logging

import pytest

from semdict.config.logging import get_logger, setup_logging
from semdict.config.settings import Settings


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    setup_logging()


def test_log_file_receives_records(tmp_path):
    """Test a configured log file gets the package's records."""
    log_file = tmp_path / "logs" / "semdict.log"
    log_file.parent.mkdir()
    setup_logging(level="info", log_file=log_file)

    get_logger("semdict.tests").info("compiled 3 terms")
    for handler in logging.getLogger("semdict").handlers:
        handler.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "semdict.tests - INFO - compiled 3 terms" in text


def test_logger_namespace():
    """Test loggers are parented under the package logger."""
    assert get_logger("plugins").name == "semdict.plugins"
    assert get_logger("semdict.compiler").name == "semdict.compiler"
    assert not logging.getLogger("semdict").propagate


def test_settings_from_environment(monkeypatch):
    """Test environment variables override defaults."""
    monkeypatch.setenv("STRICT_IDENTIFIERS", "true")
    monkeypatch.setenv("DEFAULT_IDENTIFIER_TYPE", "Integer")

    settings = Settings()
    assert settings.strict_identifiers
    assert settings.default_identifier_type == "Integer"
