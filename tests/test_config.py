# -*- coding: utf-8 -*-
"""Tests for engine configuration."""

import pytest

from ghg_inventory.config import (
    EmissionsEngineConfig,
    get_config,
    reset_config,
    set_config,
)


class TestEmissionsEngineConfig:
    """Tests for defaults and validation."""

    def test_defaults(self):
        config = EmissionsEngineConfig()

        assert config.aed_per_usd == 3.6725
        assert config.enable_provenance is True
        assert config.enable_metrics is True
        assert config.catalog_path == ""

    @pytest.mark.parametrize("kwargs", [
        {"aed_per_usd": 0},
        {"log_level": "VERBOSE"},
        {"genesis_hash": ""},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError, match="validation failed"):
            EmissionsEngineConfig(**kwargs)

    def test_to_dict(self):
        data = EmissionsEngineConfig(catalog_path="/tmp/factors.yaml").to_dict()
        assert data["catalog_path"] == "/tmp/factors.yaml"
        assert set(data) == {
            "log_level", "catalog_path", "aed_per_usd",
            "enable_provenance", "enable_metrics", "genesis_hash",
        }


class TestFromEnv:
    """Tests for GHGI_ environment overrides."""

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("GHGI_AED_PER_USD", "3.7")
        monkeypatch.setenv("GHGI_ENABLE_METRICS", "no")
        monkeypatch.setenv("GHGI_ENABLE_PROVENANCE", "YES")
        monkeypatch.setenv("GHGI_LOG_LEVEL", "DEBUG")

        config = EmissionsEngineConfig.from_env()

        assert config.aed_per_usd == 3.7
        assert config.enable_metrics is False
        assert config.enable_provenance is True
        assert config.log_level == "DEBUG"

    def test_invalid_float_falls_back(self, monkeypatch):
        monkeypatch.setenv("GHGI_AED_PER_USD", "three")
        assert EmissionsEngineConfig.from_env().aed_per_usd == 3.6725


class TestSingleton:

    def test_set_and_reset(self, monkeypatch):
        custom = EmissionsEngineConfig(aed_per_usd=4.0)
        set_config(custom)
        assert get_config() is custom

        reset_config()
        monkeypatch.setenv("GHGI_GENESIS_HASH", "from-env")
        assert get_config().genesis_hash == "from-env"
