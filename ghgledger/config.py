# -*- coding: utf-8 -*-
"""
GHG Ledger Configuration

Centralized configuration for the emissions ledger covering:
- Embedded SQLite store location and busy timeout
- Intensity reporting (production metric name, unit label)
- Hotspot percentage rounding
- Override handling policy
- First-run sample data seeding

All settings can be overridden via environment variables with the
``GHG_LEDGER_`` prefix (e.g. ``GHG_LEDGER_DATABASE_PATH``).

Example:
    >>> from ghgledger.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.database_path, cfg.production_metric_name)

Author: GHG Ledger Team
Status: Production Ready
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "GHG_LEDGER_"


# ---------------------------------------------------------------------------
# LedgerConfig
# ---------------------------------------------------------------------------


@dataclass
class LedgerConfig:
    """Complete configuration for the GHG emissions ledger.

    All attributes can be overridden via environment variables using the
    ``GHG_LEDGER_`` prefix.

    Attributes:
        database_path: SQLite database file (``:memory:`` for ephemeral stores).
        sqlite_timeout: Seconds to wait on a locked database before failing.
        echo_sql: Whether to debug-log every executed statement.
        production_metric_name: Business metric used as intensity denominator.
        intensity_unit: Unit label attached to intensity reports.
        percentage_decimals: Decimal places for hotspot percentages.
        zero_override_is_absent: Treat an override value of exactly 0 as
            "no override".
        seed_sample_data: Seed the sample dataset when the store is empty.
    """

    # -- Store ---------------------------------------------------------------
    database_path: str = "data/emissions.db"
    sqlite_timeout: float = 30.0
    echo_sql: bool = False

    # -- Reporting -----------------------------------------------------------
    production_metric_name: str = "Tons of Steel Produced"
    intensity_unit: str = "kgCO2e/tonne"
    percentage_decimals: int = 2

    # -- Calculation policy --------------------------------------------------
    zero_override_is_absent: bool = True

    # -- Bootstrap -----------------------------------------------------------
    seed_sample_data: bool = True

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> LedgerConfig:
        """Build a LedgerConfig from environment variables.

        Every field can be overridden via ``GHG_LEDGER_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive).

        Returns:
            Populated LedgerConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val)
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%s, using default %d",
                    prefix, name, val, default,
                )
                return default

        def _float(name: str, default: float) -> float:
            val = _env(name)
            if val is None:
                return default
            try:
                return float(val)
            except ValueError:
                logger.warning(
                    "Invalid float for %s%s=%s, using default %.1f",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None:
                return default
            return val

        config = cls(
            database_path=_str("DATABASE_PATH", cls.database_path),
            sqlite_timeout=_float("SQLITE_TIMEOUT", cls.sqlite_timeout),
            echo_sql=_bool("ECHO_SQL", cls.echo_sql),
            production_metric_name=_str(
                "PRODUCTION_METRIC_NAME", cls.production_metric_name,
            ),
            intensity_unit=_str("INTENSITY_UNIT", cls.intensity_unit),
            percentage_decimals=_int(
                "PERCENTAGE_DECIMALS", cls.percentage_decimals,
            ),
            zero_override_is_absent=_bool(
                "ZERO_OVERRIDE_IS_ABSENT", cls.zero_override_is_absent,
            ),
            seed_sample_data=_bool("SEED_SAMPLE_DATA", cls.seed_sample_data),
        )

        logger.info(
            "LedgerConfig loaded: database=%s, timeout=%.1fs, "
            "production_metric=%s, zero_override_is_absent=%s, seed=%s",
            config.database_path,
            config.sqlite_timeout,
            config.production_metric_name,
            config.zero_override_is_absent,
            config.seed_sample_data,
        )
        return config


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[LedgerConfig] = None
_config_lock = threading.Lock()


def get_config() -> LedgerConfig:
    """Return the singleton LedgerConfig, creating from env if needed.

    Returns:
        LedgerConfig singleton instance.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = LedgerConfig.from_env()
    return _config_instance


def set_config(config: LedgerConfig) -> None:
    """Replace the singleton LedgerConfig (useful for testing).

    Args:
        config: New configuration to install.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("LedgerConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "LedgerConfig",
    "get_config",
    "set_config",
    "reset_config",
]
