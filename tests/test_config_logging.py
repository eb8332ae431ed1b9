"""Tests for environment configuration, logging setup and error types."""

import json
import logging
import sys

import pytest

from config import AppConfig, BackendConfig
from db import create_backend_client
from exceptions import BackendError, ConfigurationError, ConsoleError, ValidationError
from logs import JsonFormatter, setup_logging


class TestAppConfig:
    """Environment variables map onto AppConfig."""

    def test_defaults(self, monkeypatch) -> None:
        for name in ("SUPABASE_URL", "SUPABASE_ANON_KEY", "LOG_LEVEL", "LOG_FORMAT", "DEMO_MODE", "MEMBERS_PAGE_SIZE"):
            monkeypatch.delenv(name, raising=False)

        config = AppConfig.from_env()

        assert not config.backend.is_configured
        assert config.log_level == "INFO"
        assert config.log_format == "standard"
        assert config.demo_mode is False
        assert config.members_page_size == 10

    def test_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("SUPABASE_URL", "https://abc.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        monkeypatch.setenv("LOG_FORMAT", "json")
        monkeypatch.setenv("DEMO_MODE", " Yes ")
        monkeypatch.setenv("MEMBERS_PAGE_SIZE", "25")

        config = AppConfig.from_env()

        assert config.backend.is_configured
        assert config.log_format == "json"
        assert config.demo_mode is True
        assert config.members_page_size == 25

    def test_blank_key_is_not_configured(self) -> None:
        assert not BackendConfig(url="https://abc.supabase.co", anon_key="  ").is_configured

    def test_client_requires_settings(self) -> None:
        with pytest.raises(ConfigurationError, match="SUPABASE_URL"):
            create_backend_client(BackendConfig())


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.usefixtures("restore_root_logger")
class TestLogging:
    """Root logger setup."""

    def test_setup_replaces_handlers(self) -> None:
        setup_logging("DEBUG")
        setup_logging("WARNING")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self) -> None:
        setup_logging("chatty")
        assert logging.getLogger().level == logging.INFO

    def test_json_formatter(self) -> None:
        record = logging.LogRecord("api", logging.INFO, __file__, 1, "Created member %s", ("M-001",), None)

        data = json.loads(JsonFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "api"
        assert data["message"] == "Created member M-001"
        assert "exception" not in data

    def test_json_timestamp_is_record_time(self) -> None:
        record = logging.LogRecord("db", logging.WARNING, __file__, 1, "Backend unreachable", (), None)
        record.created = 1709294400.0

        data = json.loads(JsonFormatter().format(record))

        assert data["timestamp"] == "2024-03-01T12:00:00+00:00"

    def test_json_includes_exception(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("db", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

        data = json.loads(JsonFormatter().format(record))

        assert "RuntimeError: boom" in data["exception"]


class TestExceptions:
    """Error hierarchy."""

    def test_all_errors_share_a_base(self) -> None:
        for error in (BackendError("x"), ValidationError({}), ConfigurationError("x")):
            assert isinstance(error, ConsoleError)

    def test_backend_error_keeps_code(self) -> None:
        error = BackendError("duplicate key", code="23505")
        assert error.message == "duplicate key"
        assert error.code == "23505"
        assert str(error) == "duplicate key"

    def test_validation_error_message(self) -> None:
        error = ValidationError({"name": "Name is required", "unit": "Unit is required"})
        assert str(error) == "name: Name is required; unit: Unit is required"
        assert error.errors["unit"] == "Unit is required"
