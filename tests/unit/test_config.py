"""Unit tests for LedgerConfig."""

import pytest

from carledger.service.config import LedgerConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "CARLEDGER_DB_PATH",
        "CARLEDGER_JOURNAL_PATH",
        "CARLEDGER_JOURNAL_ENABLED",
        "CARLEDGER_PORT",
        "CARLEDGER_SEED",
        "CARLEDGER_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


class TestLedgerConfig:
    """Tests for environment-driven configuration."""

    def test_defaults(self):
        config = LedgerConfig.from_env()
        assert config.db_path == "data/carledger.db"
        assert config.port == 9090
        assert config.journal_enabled is True
        assert config.seed_on_startup is False
        assert config.log_level == "INFO"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("CARLEDGER_DB_PATH", ":memory:")
        monkeypatch.setenv("CARLEDGER_PORT", "8081")
        monkeypatch.setenv("CARLEDGER_SEED", "yes")
        monkeypatch.setenv("CARLEDGER_JOURNAL_ENABLED", "false")
        monkeypatch.setenv("CARLEDGER_LOG_LEVEL", "debug")

        config = LedgerConfig.from_env()
        assert config.db_path == ":memory:"
        assert config.port == 8081
        assert config.seed_on_startup is True
        assert config.journal_enabled is False
        assert config.log_level == "DEBUG"

    def test_bad_port(self, monkeypatch):
        monkeypatch.setenv("CARLEDGER_PORT", "ninety")
        with pytest.raises(ValueError, match="CARLEDGER_PORT"):
            LedgerConfig.from_env()

    def test_bad_boolean(self, monkeypatch):
        monkeypatch.setenv("CARLEDGER_SEED", "sometimes")
        with pytest.raises(ValueError, match="CARLEDGER_SEED"):
            LedgerConfig.from_env()

    def test_bad_log_level(self, monkeypatch):
        monkeypatch.setenv("CARLEDGER_LOG_LEVEL", "LOUD")
        with pytest.raises(ValueError):
            LedgerConfig.from_env()
