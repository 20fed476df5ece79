"""
Test suite for configuration and structured logging
"""

import io
import json
import logging
import pytest
from decimal import Decimal

from pydantic import ValidationError

from bank_ledger import config as config_module
from bank_ledger.config import LedgerConfig, get_config, reload_config
from bank_ledger.logging_config import (
    JSONFormatter, configure_logging, setup_logging, get_logger, log_action
)


class TestLedgerConfig:
    """Test LedgerConfig defaults and environment overrides"""

    def test_defaults(self):
        config = LedgerConfig()

        assert config.savings_interest_rate == Decimal("0.04")
        assert config.current_interest_rate == Decimal("0.01")
        assert config.max_login_attempts == 3
        assert config.account_number_prefix == "ACCT"
        assert config.account_number_start == 1000
        assert config.placeholder_credential == "0000"
        assert config.statement_length == 5
        assert config.snapshot_path == "bank_data.txt"
        assert config.reveal_unknown_accounts is False
        assert config.log_format == "json"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("BANK_LEDGER_SAVINGS_INTEREST_RATE", "0.05")
        monkeypatch.setenv("BANK_LEDGER_MAX_LOGIN_ATTEMPTS", "5")

        config = LedgerConfig()

        assert config.savings_interest_rate == Decimal("0.05")
        assert config.max_login_attempts == 5

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            LedgerConfig(savings_interest_rate=Decimal("1.5"))
        with pytest.raises(ValidationError):
            LedgerConfig(max_login_attempts=0)
        with pytest.raises(ValidationError):
            LedgerConfig(log_format="xml")

    def test_reload_config(self, monkeypatch):
        original = get_config()
        monkeypatch.setenv("BANK_LEDGER_ACCOUNT_NUMBER_PREFIX", "SAV")
        try:
            reloaded = reload_config()
            assert reloaded.account_number_prefix == "SAV"
            assert get_config() is reloaded
        finally:
            config_module.config = original


class TestLogging:
    """Test JSON formatting and log_action"""

    def setup_method(self):
        self.stream = io.StringIO()
        self.logger = logging.getLogger("bank_ledger_test.json")
        self.logger.handlers = []
        handler = logging.StreamHandler(self.stream)
        handler.setFormatter(JSONFormatter())
        self.logger.addHandler(handler)
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False

    def test_log_action_fields(self):
        log_action(
            self.logger, "info", "Account created",
            action="create_account", resource="account:ACCT1001",
            extra={"opening_balance": Decimal("10.00")}
        )

        entry = json.loads(self.stream.getvalue())

        assert entry["level"] == "INFO"
        assert entry["logger"] == "bank_ledger_test.json"
        assert entry["message"] == "Account created"
        assert entry["action"] == "create_account"
        assert entry["resource"] == "account:ACCT1001"
        assert entry["extra"] == {"opening_balance": "10.00"}
        assert "timestamp" in entry

    def test_none_fields_omitted(self):
        log_action(self.logger, "warning", "Plain message")

        entry = json.loads(self.stream.getvalue())

        assert entry["level"] == "WARNING"
        assert "action" not in entry
        assert "extra" not in entry

    def test_below_level_is_dropped(self):
        log_action(self.logger, "debug", "Quiet")
        assert self.stream.getvalue() == ""

    def test_exception_info(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            log_action(self.logger, "error", "Failed", exc_info=True)

        entry = json.loads(self.stream.getvalue())
        assert "RuntimeError: boom" in entry["exception"]

    def test_setup_logging(self):
        logger = setup_logging("DEBUG", logger_name="bank_ledger_test.setup")

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert not logger.propagate

        # Calling again replaces rather than stacks handlers
        logger = setup_logging("INFO", logger_name="bank_ledger_test.setup", log_format="text")
        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert get_logger("bank_ledger_test.setup") is logger

    def test_configure_logging_from_settings(self):
        settings = LedgerConfig(log_level="WARNING", log_format="text")

        logger = configure_logging(settings, logger_name="bank_ledger_test.configured")

        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)
