# -*- coding: utf-8 -*-
"""
GHG Inventory Engine Configuration

Centralized configuration for the emissions accounting engine covering:
- Logging level
- Factor catalog location (bundled catalog when empty)
- Currency peg used for spend-based factors
- Provenance and metrics toggles

All settings can be overridden via environment variables with the
``GHGI_`` prefix (e.g. ``GHGI_AED_PER_USD``).

Example:
    >>> from ghg_inventory.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.aed_per_usd, cfg.enable_provenance)
    3.6725 True
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "GHGI_"


# ---------------------------------------------------------------------------
# EmissionsEngineConfig
# ---------------------------------------------------------------------------


@dataclass
class EmissionsEngineConfig:
    """Complete configuration for the emissions accounting engine.

    Attributes:
        log_level: Logging level for the engine. Accepts standard Python
            logging levels: DEBUG, INFO, WARNING, ERROR, CRITICAL.
        catalog_path: Path to a YAML factor catalog. When empty, the
            catalog bundled with the package is loaded.
        aed_per_usd: UAE dirham peg used to convert spend between AED and
            USD for spend-based factors.
        enable_provenance: Whether SHA-256 provenance tracking is enabled
            for aggregation passes and staleness transitions.
        enable_metrics: Whether Prometheus metrics are recorded.
        genesis_hash: Seed string for the provenance chain.
    """

    # -- Logging -------------------------------------------------------------
    log_level: str = "INFO"

    # -- Catalog -------------------------------------------------------------
    catalog_path: str = ""

    # -- Unit conversion -----------------------------------------------------
    aed_per_usd: float = 3.6725

    # -- Provenance ----------------------------------------------------------
    enable_provenance: bool = True

    # -- Metrics -------------------------------------------------------------
    enable_metrics: bool = True

    # -- Genesis hash --------------------------------------------------------
    genesis_hash: str = "ghg-inventory-engine-genesis"

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> EmissionsEngineConfig:
        """Build an EmissionsEngineConfig from environment variables.

        Every field can be overridden via ``GHGI_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive).

        Returns:
            Populated EmissionsEngineConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def _float(name: str, default: float) -> float:
            val = _env(name)
            if val is None:
                return default
            try:
                return float(val)
            except ValueError:
                logger.warning(
                    "Invalid float for %s%s=%s, using default %f",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None:
                return default
            return val

        config = cls(
            log_level=_str("LOG_LEVEL", cls.log_level),
            catalog_path=_str("CATALOG_PATH", cls.catalog_path),
            aed_per_usd=_float("AED_PER_USD", cls.aed_per_usd),
            enable_provenance=_bool(
                "ENABLE_PROVENANCE", cls.enable_provenance,
            ),
            enable_metrics=_bool("ENABLE_METRICS", cls.enable_metrics),
            genesis_hash=_str("GENESIS_HASH", cls.genesis_hash),
        )

        logger.info(
            "EmissionsEngineConfig loaded: catalog=%s, aed_per_usd=%.4f, "
            "provenance=%s, metrics=%s",
            config.catalog_path or "<bundled>",
            config.aed_per_usd,
            config.enable_provenance,
            config.enable_metrics,
        )
        return config

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def __post_init__(self) -> None:
        """Validate all configuration constraints after initialization.

        Raises:
            ValueError: If any constraint is violated.
        """
        errors: list[str] = []

        if self.aed_per_usd <= 0.0:
            errors.append("aed_per_usd must be > 0.0")

        valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if self.log_level.upper() not in valid_levels:
            errors.append(
                f"log_level must be one of {valid_levels}, "
                f"got '{self.log_level}'"
            )

        if not self.genesis_hash:
            errors.append("genesis_hash must not be empty")

        if errors:
            msg = "; ".join(errors)
            logger.error("EmissionsEngineConfig validation failed: %s", msg)
            raise ValueError(f"EmissionsEngineConfig validation failed: {msg}")

        logger.debug("EmissionsEngineConfig validated successfully")

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the configuration to a plain dictionary."""
        return {
            "log_level": self.log_level,
            "catalog_path": self.catalog_path,
            "aed_per_usd": self.aed_per_usd,
            "enable_provenance": self.enable_provenance,
            "enable_metrics": self.enable_metrics,
            "genesis_hash": self.genesis_hash,
        }


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[EmissionsEngineConfig] = None
_config_lock = threading.Lock()


def get_config() -> EmissionsEngineConfig:
    """Return the singleton EmissionsEngineConfig, creating from env if needed.

    Uses double-checked locking for thread safety with minimal
    contention on the hot path.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = EmissionsEngineConfig.from_env()
    return _config_instance


def set_config(config: EmissionsEngineConfig) -> None:
    """Replace the singleton EmissionsEngineConfig (useful for testing).

    Args:
        config: New configuration to install.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("EmissionsEngineConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "EmissionsEngineConfig",
    "get_config",
    "set_config",
    "reset_config",
]
