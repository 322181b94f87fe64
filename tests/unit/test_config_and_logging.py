"""
Unit tests for configuration loading and structured logging.
"""

import json
import logging

import pytest

from player_ledger.core.config import Config, Environment
from player_ledger.core.exceptions import ConfigurationError
from player_ledger.core.logging import (
    LogContext,
    clear_log_context,
    get_log_context,
    get_logging_health,
    set_log_context,
)
from player_ledger.core.logging.logger import ContextFilter, JSONFormatter

ADMIN = "0x5B38Da6a701c568545dCfcB03FcB875f56beddC4"
OTHER = "0xAb8483F64d9C6d1EcF9b849Ae677dD3315835cb2"


@pytest.fixture
def reload_config(monkeypatch):
    """Reload Config from a patched environment, restoring it afterwards."""

    def _reload(**env):
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        Config.load()
        return Config

    yield _reload

    monkeypatch.undo()
    Config.load()


def _record(msg="hello", **extra):
    record = logging.LogRecord("player_ledger.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# ============================================================================
# CONFIG
# ============================================================================


@pytest.mark.unit
class TestConfig:
    """Test environment-driven settings."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("production", Environment.PRODUCTION),
            ("TESTING", Environment.TESTING),
            ("nonsense", Environment.DEVELOPMENT),
        ],
    )
    def test_environment_from_string(self, value, expected):
        assert Environment.from_string(value) is expected

    def test_test_environment_loaded(self):
        assert Config.is_testing() is True
        assert Config.is_production() is False

    def test_admin_addresses_parsed_from_comma_list(self, reload_config):
        config = reload_config(ADMIN_ADDRESSES=f" {ADMIN}, ,{OTHER} ")

        assert config.ADMIN_ADDRESSES == [ADMIN, OTHER]

    def test_invalid_int_falls_back_to_default(self, reload_config):
        config = reload_config(DATABASE_POOL_SIZE="many")

        assert config.DATABASE_POOL_SIZE == 5

    def test_out_of_range_int_falls_back_to_default(self, reload_config):
        config = reload_config(EVENT_LISTENER_TIMEOUT_SECONDS="9000")

        assert config.EVENT_LISTENER_TIMEOUT_SECONDS == 5

    def test_production_requires_admins(self, reload_config, monkeypatch):
        """Test that production refuses to start without an admin identity."""
        # Arrange
        monkeypatch.delenv("ADMIN_ADDRESSES", raising=False)
        config = reload_config(
            ENVIRONMENT="production",
            DATABASE_URL="postgresql+asyncpg://ledger@db/ledger",
        )

        # Act
        with pytest.raises(ConfigurationError) as exc_info:
            config.validate()

        # Assert
        assert exc_info.value.config_key == "ADMIN_ADDRESSES"

    def test_summary_hides_database_url(self, reload_config):
        # Arrange
        config = reload_config(
            DATABASE_URL="postgresql+asyncpg://user:secret@db/ledger",
            ADMIN_ADDRESSES=ADMIN,
        )

        # Act
        summary = config.get_config_summary()

        # Assert
        assert summary["database_scheme"] == "postgresql+asyncpg"
        assert summary["admin_count"] == 1
        assert "secret" not in json.dumps(summary)


# ============================================================================
# LOGGING
# ============================================================================


@pytest.mark.unit
class TestLogContext:
    """Test context binding for log records."""

    def test_context_bound_inside_block_only(self):
        with LogContext(account=ADMIN, operation="create_account"):
            inside = get_log_context()

        assert inside["account"] == ADMIN
        assert inside["operation"] == "create_account"
        assert get_log_context().get("operation") != "create_account"

    async def test_async_context_manager(self):
        async with LogContext(caller=OTHER, correlation_id="abc123"):
            context = get_log_context()

        assert context["caller"] == OTHER
        assert context["correlation_id"] == "abc123"

    def test_filter_applies_bound_context(self):
        # Arrange
        record = _record()

        # Act
        with LogContext(account=ADMIN, operation="delete_account"):
            ContextFilter().filter(record)

        # Assert
        assert record.account == ADMIN
        assert record.operation == "delete_account"
        assert record.caller == "-"

    def test_extra_takes_precedence_over_context(self):
        record = _record(account=OTHER)

        with LogContext(account=ADMIN):
            ContextFilter().filter(record)

        assert record.account == OTHER

    def test_set_and_clear(self):
        clear_log_context()

        set_log_context(account=ADMIN, caller=None, correlation_id="req-1")
        context = get_log_context()
        clear_log_context()

        assert context["account"] == ADMIN
        assert context["correlation_id"] == "req-1"
        assert get_log_context() == {}


@pytest.mark.unit
class TestJSONFormatter:
    """Test production log shape."""

    def test_context_and_extra_fields(self):
        # Arrange
        record = _record("Account created", account=ADMIN, operation="create_account", was_live=False)

        # Act
        data = json.loads(JSONFormatter().format(record))

        # Assert
        assert data["message"] == "Account created"
        assert data["level"] == "INFO"
        assert data["account"] == ADMIN
        assert data["operation"] == "create_account"
        assert data["extra"] == {"was_live": False}

    def test_placeholder_context_omitted(self):
        record = _record(caller="-")

        data = json.loads(JSONFormatter().format(record))

        assert "caller" not in data


@pytest.mark.unit
class TestLoggingHealth:
    def test_health_reports_initialized_queue(self):
        health = get_logging_health()

        assert health.initialized is True
        assert health.queue_max_size >= 0
        assert health.records_dropped >= 0
