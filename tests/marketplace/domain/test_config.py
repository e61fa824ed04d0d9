"""Tests for environment-driven settings."""

import pytest
from marketplace import config


class TestConfig:
    def test_defaults(self, monkeypatch):
        for name in (
            "MARKETPLACE_EXTRA_DISCOUNT_PCT",
            "RECONCILER_MAX_WORKERS",
            "RECONCILER_LOCK_TIMEOUT_SECONDS",
            "CARRIER_TIMEOUT_SECONDS",
        ):
            monkeypatch.delenv(name, raising=False)
        assert config.extra_discount_pct() == 0.0
        assert config.reconciler_max_workers() == config.DEFAULT_RECONCILER_MAX_WORKERS
        assert config.reconciler_lock_timeout_seconds() == config.DEFAULT_RECONCILER_LOCK_TIMEOUT_SECONDS
        assert config.carrier_timeout_seconds() == config.DEFAULT_CARRIER_TIMEOUT_SECONDS

    def test_values_read_on_every_call(self, monkeypatch):
        monkeypatch.setenv("MARKETPLACE_EXTRA_DISCOUNT_PCT", "5")
        assert config.extra_discount_pct() == 5.0
        monkeypatch.setenv("MARKETPLACE_EXTRA_DISCOUNT_PCT", "7.5")
        assert config.extra_discount_pct() == 7.5

    def test_blank_value_uses_default(self, monkeypatch):
        monkeypatch.setenv("RECONCILER_MAX_WORKERS", " ")
        assert config.reconciler_max_workers() == config.DEFAULT_RECONCILER_MAX_WORKERS

    def test_non_numeric_value_rejected(self, monkeypatch):
        monkeypatch.setenv("CARRIER_TIMEOUT_SECONDS", "soon")
        with pytest.raises(ValueError, match="CARRIER_TIMEOUT_SECONDS"):
            config.carrier_timeout_seconds()

    def test_carrier_adapter_default(self, monkeypatch):
        monkeypatch.delenv("CARRIER_ADAPTER", raising=False)
        assert config.carrier_adapter() == "fake"
