"""Tests for environment-driven settings and structured logging."""

import json
import logging

import pytest
import structlog
from pydantic import ValidationError

import tidyframe as tf
from tidyframe import col
from tidyframe.config import Settings, get_settings
from tidyframe.utils.logging import configure_logging, get_logger, reset_logging


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("TIDYFRAME_LOG_LEVEL", "TIDYFRAME_LOG_FORMAT", "TIDYFRAME_REPR_ROWS"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings()
        assert settings.LOG_LEVEL == "WARNING"
        assert settings.LOG_FORMAT == "console"
        assert settings.REPR_ROWS == 10

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("TIDYFRAME_LOG_LEVEL", "debug")
        monkeypatch.setenv("TIDYFRAME_LOG_FORMAT", "json")
        monkeypatch.setenv("TIDYFRAME_REPR_ROWS", "4")
        settings = get_settings()
        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.LOG_FORMAT == "json"
        assert settings.REPR_ROWS == 4

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_invalid_level(self, monkeypatch):
        monkeypatch.setenv("TIDYFRAME_LOG_LEVEL", "chatty")
        with pytest.raises(ValidationError, match="Unknown log level"):
            Settings()

    def test_invalid_format(self, monkeypatch):
        monkeypatch.setenv("TIDYFRAME_LOG_FORMAT", "xml")
        with pytest.raises(ValidationError):
            Settings()

    def test_negative_repr_rows(self, monkeypatch):
        monkeypatch.setenv("TIDYFRAME_REPR_ROWS", "-1")
        with pytest.raises(ValidationError):
            Settings()

    def test_repr_rows_zero_shows_header_only(self, monkeypatch, masses):
        monkeypatch.setenv("TIDYFRAME_REPR_ROWS", "0")
        assert repr(masses) == "Table: 3 rows x 2 columns\nspecies, mass"


class TestLogging:
    @pytest.fixture(autouse=True)
    def _restore_logging(self):
        yield
        get_settings.cache_clear()
        reset_logging()

    def test_import_leaves_structlog_unconfigured(self, caplog, masses):
        structlog.reset_defaults()
        caplog.set_level(logging.DEBUG, logger="tidyframe")
        masses.filter(col("mass") > 15)
        configure_logging(level="DEBUG")

        assert not structlog.is_configured()

    def test_null_handler_by_default(self):
        handlers = logging.getLogger("tidyframe").handlers
        assert any(isinstance(h, logging.NullHandler) for h in handlers)
        assert not any(type(h) is logging.StreamHandler for h in handlers)

    def test_configure_and_reset(self):
        configure_logging(level="INFO")
        configure_logging(level="INFO")
        logger = logging.getLogger("tidyframe")
        streams = [h for h in logger.handlers if type(h) is logging.StreamHandler]
        assert len(streams) == 1
        assert logger.level == logging.INFO

        reset_logging()
        assert not [h for h in logger.handlers if type(h) is logging.StreamHandler]
        assert logger.level == logging.NOTSET

    def test_operation_events_at_debug(self, caplog, masses):
        caplog.set_level(logging.DEBUG, logger="tidyframe")
        masses.filter(col("mass") > 15)

        messages = [r.getMessage() for r in caplog.records]
        assert any("operation_applied" in m and "Filter" in m for m in messages)
        assert all(r.name.startswith("tidyframe") for r in caplog.records)

    def test_silent_at_default_level(self, caplog, masses):
        caplog.set_level(logging.WARNING, logger="tidyframe")
        masses.filter(col("mass") > 15)
        assert not [r for r in caplog.records if "operation_applied" in r.getMessage()]

    def test_ambiguous_pivot_logs_warning(self, caplog, long_format):
        caplog.set_level(logging.WARNING, logger="tidyframe")
        with pytest.raises(tf.AmbiguousPivotError):
            long_format.pivot_wider(id_cols=[], names_from="name")
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert any("ambiguous_pivot_cell" in r.getMessage() for r in warnings)

    def test_json_format(self, caplog, masses):
        configure_logging(level="DEBUG", fmt="json")
        masses.head(1)

        events = [json.loads(r.getMessage()) for r in caplog.records]
        event = next(e for e in events if e["event"] == "operation_applied")
        assert event["operation"] == "Limit"
        assert event["rows_in"] == [3]
        assert event["rows_out"] == 1
        assert event["level"] == "debug"
        assert event["logger"] == "tidyframe.algebra.eager"

    def test_level_from_settings(self, monkeypatch):
        monkeypatch.setenv("TIDYFRAME_LOG_LEVEL", "ERROR")
        configure_logging()
        assert logging.getLogger("tidyframe").level == logging.ERROR

    def test_get_logger_binds_name(self):
        logger = get_logger("tidyframe.tests")
        assert hasattr(logger, "debug")
