"""Tests for settings, portfolio defaults and logging helpers."""

import json
import logging

import pytest
from pydantic import ValidationError as SettingsError

from uwf_journal.config.logging import (
    LogContext,
    StructuredFormatter,
    clear_request_context,
    get_request_id,
    log_performance,
    set_request_context,
)
from uwf_journal.config.settings import (
    DEFAULT_PORTFOLIO_FILE,
    JournalSettings,
    clear_settings_cache,
    get_settings,
    load_portfolio_defaults,
)
from uwf_journal.core.errors import StorageError


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("UWF_GEMINI_API_KEY", "GEMINI_API_KEY", "API_KEY", "UWF_DATA_DIR", "UWF_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield monkeypatch
    clear_settings_cache()


class TestJournalSettings:
    """Tests for JournalSettings."""

    def test_defaults(self, clean_env):
        settings = JournalSettings(_env_file=None)
        assert settings.gemini_api_key is None
        assert settings.gemini_model == "gemini-2.5-pro"
        assert settings.log_level == "INFO"
        assert settings.debug

    def test_prefixed_environment(self, clean_env, tmp_path):
        clean_env.setenv("UWF_DATA_DIR", str(tmp_path))
        clean_env.setenv("UWF_LOG_LEVEL", "debug")
        settings = JournalSettings(_env_file=None)
        assert settings.data_dir == tmp_path
        assert settings.log_level == "DEBUG"

    def test_legacy_api_key(self, clean_env):
        clean_env.setenv("API_KEY", "legacy-key")
        assert JournalSettings(_env_file=None).gemini_api_key == "legacy-key"

    def test_invalid_log_level(self, clean_env):
        with pytest.raises(SettingsError):
            JournalSettings(_env_file=None, log_level="LOUD")

    def test_cached(self, clean_env):
        assert get_settings() is get_settings()


class TestPortfolioDefaults:
    """Tests for load_portfolio_defaults."""

    def test_bundled_file(self):
        assert DEFAULT_PORTFOLIO_FILE.exists()
        defaults = load_portfolio_defaults()
        assert [a.name for a in defaults.accounts] == ["Income Generator", "Speculation", "Trading Lab"]
        assert defaults.portfolio_starting_value == 22000

    def test_missing_file(self, tmp_path):
        defaults = load_portfolio_defaults(tmp_path / "absent.yaml")
        assert defaults.risk_per_trade == 2

    def test_top_level_mapping(self, tmp_path):
        path = tmp_path / "journal.yaml"
        path.write_text(
            "riskPerTrade: 1.5\naccounts:\n  - name: Trading Lab\n    startingValue: 500\n",
            encoding="utf-8",
        )
        defaults = load_portfolio_defaults(path)
        assert defaults.risk_per_trade == 1.5
        assert defaults.accounts[0].current_cash == 500

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "journal.yaml"
        path.write_text("portfolio: [unclosed", encoding="utf-8")
        with pytest.raises(StorageError):
            load_portfolio_defaults(path)


class TestLogging:
    """Tests for the logging helpers."""

    def test_request_context(self):
        request_id = set_request_context()
        assert get_request_id() == request_id
        clear_request_context()
        assert get_request_id() is None

    def test_structured_formatter_context_fields(self):
        record = logging.LogRecord("uwf_journal.test", logging.INFO, __file__, 1, "hello", None, None)
        record.ctx_trade_id = "TRADE-001"
        data = json.loads(StructuredFormatter(environment="test").format(record))
        assert data["message"] == "hello"
        assert data["trade_id"] == "TRADE-001"
        assert data["environment"] == "test"

    def test_log_context(self, caplog):
        logger = logging.getLogger("uwf_journal.test")
        with caplog.at_level(logging.INFO, logger="uwf_journal.test"):
            with LogContext(account="Speculation"):
                logger.info("inside")
            logger.info("outside")
        inside, outside = caplog.records[-2:]
        assert inside.ctx_account == "Speculation"
        assert not hasattr(outside, "ctx_account")

    def test_log_performance_reraises(self, caplog):
        @log_performance(threshold_ms=1000)
        def explode():
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR):
            with pytest.raises(RuntimeError):
                explode()
        assert any("explode" in r.getMessage() for r in caplog.records)
