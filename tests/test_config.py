"""Tests for LedgerConfig and its singleton accessors."""

import pytest

from ghgledger.config import LedgerConfig, get_config, reset_config, set_config


@pytest.fixture(autouse=True)
def _clean_config(monkeypatch):
    for name in (
        "DATABASE_PATH", "SQLITE_TIMEOUT", "ECHO_SQL", "PERCENTAGE_DECIMALS",
        "ZERO_OVERRIDE_IS_ABSENT", "SEED_SAMPLE_DATA", "PRODUCTION_METRIC_NAME",
    ):
        monkeypatch.delenv(f"GHG_LEDGER_{name}", raising=False)
    reset_config()
    yield
    reset_config()


class TestLedgerConfig:
    """Tests for LedgerConfig."""

    def test_defaults(self):
        """Defaults match the documented configuration."""
        cfg = LedgerConfig()

        assert cfg.database_path == "data/emissions.db"
        assert cfg.production_metric_name == "Tons of Steel Produced"
        assert cfg.percentage_decimals == 2
        assert cfg.zero_override_is_absent is True
        assert cfg.seed_sample_data is True

    def test_from_env(self, monkeypatch):
        """Environment variables override defaults."""
        monkeypatch.setenv("GHG_LEDGER_DATABASE_PATH", ":memory:")
        monkeypatch.setenv("GHG_LEDGER_SQLITE_TIMEOUT", "2.5")
        monkeypatch.setenv("GHG_LEDGER_ZERO_OVERRIDE_IS_ABSENT", "false")
        monkeypatch.setenv("GHG_LEDGER_PERCENTAGE_DECIMALS", "3")

        cfg = LedgerConfig.from_env()

        assert cfg.database_path == ":memory:"
        assert cfg.sqlite_timeout == 2.5
        assert cfg.zero_override_is_absent is False
        assert cfg.percentage_decimals == 3

    def test_from_env_bad_number_keeps_default(self, monkeypatch):
        """Unparseable numbers fall back to the default."""
        monkeypatch.setenv("GHG_LEDGER_PERCENTAGE_DECIMALS", "two")
        assert LedgerConfig.from_env().percentage_decimals == 2


class TestConfigSingleton:
    """Tests for get_config / set_config / reset_config."""

    def test_get_config_is_cached(self):
        """Repeated calls return the same instance."""
        assert get_config() is get_config()

    def test_set_and_reset(self):
        """set_config installs, reset_config drops."""
        custom = LedgerConfig(database_path=":memory:")
        set_config(custom)
        assert get_config() is custom

        reset_config()
        assert get_config() is not custom
