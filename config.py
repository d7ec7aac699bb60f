"""
config.py
==========
Central configuration for the flash loan arbitrage executor.
All token amounts are integers in base units. All ratios are integer basis
points (1 bps = 0.01%).
"""

from __future__ import annotations
import logging
import logging.config
import os
from typing import Dict, Any


# ─────────────────────────────────────────────────────────────────────────────
# PATHS
# ─────────────────────────────────────────────────────────────────────────────

DATA_DIR: str = os.environ.get("DATA_DIR", os.path.join(os.path.dirname(__file__), "data"))
LOG_FILE: str = os.path.join(DATA_DIR, "executor.log")

# ─────────────────────────────────────────────────────────────────────────────
# UNITS
# ─────────────────────────────────────────────────────────────────────────────

BPS: int = 10_000          # basis points in 100%
GWEI: int = 10 ** 9
ETHER: int = 10 ** 18

# ─────────────────────────────────────────────────────────────────────────────
# TRADE LIMITS  (TradeConfig defaults)
# ─────────────────────────────────────────────────────────────────────────────

TRADE: Dict[str, int] = {
    "max_trade_size":                1000 * ETHER,
    "min_liquidity":                 10000 * ETHER,
    "max_price_impact_bps":          200,     # 2%
    "circuit_breaker_threshold_bps": 1000,    # 10% cumulative loss halts
    "min_profit":                    ETHER // 10,   # 0.1 token minimum profit
    "slippage_tolerance_bps":        50,      # 0.5% per leg
    "max_consecutive_failures":      3,
}

# ─────────────────────────────────────────────────────────────────────────────
# EXECUTION GUARDS  (SecurityConfig defaults)
# ─────────────────────────────────────────────────────────────────────────────

SECURITY: Dict[str, int] = {
    "max_gas_price":        int(os.environ.get("MAX_GAS_PRICE_GWEI", "100")) * GWEI,
    "min_timestamp":        0,
    "max_price_impact_bps": 200,   # max venue/oracle spot deviation
}

# ─────────────────────────────────────────────────────────────────────────────
# PRICE ORACLE
# ─────────────────────────────────────────────────────────────────────────────

ORACLE: Dict[str, Any] = {
    # Readings older than this are rejected outright
    "staleness_seconds": int(os.environ.get("ORACLE_STALENESS_SECONDS", "3600")),
    # Chainlink USD feeds answer with 8 decimals
    "decimals": 8,
}

# ─────────────────────────────────────────────────────────────────────────────
# FLASH LOAN SOURCE
# ─────────────────────────────────────────────────────────────────────────────

FLASH_LOAN: Dict[str, Any] = {
    # Aave V3 flash loan premium (0.09%).  Uniswap v3 flash loans are 0.05%.
    "fee_bps": 9,
}

# ─────────────────────────────────────────────────────────────────────────────
# PUBLIC API ENDPOINTS
# ─────────────────────────────────────────────────────────────────────────────

API: Dict[str, str] = {
    "defillama_prices": "https://coins.llama.fi/prices/current/",
}

# ─────────────────────────────────────────────────────────────────────────────
# HTTP / RETRY SETTINGS
# ─────────────────────────────────────────────────────────────────────────────

HTTP: Dict[str, Any] = {
    "timeout":           10,
    "max_retries":       3,
    "retry_delay":       1.5,
    "user_agent":        "FlashLoanArbitrage/1.0",
}

# ─────────────────────────────────────────────────────────────────────────────
# LOGGING CONFIGURATION
# ─────────────────────────────────────────────────────────────────────────────

os.makedirs(DATA_DIR, exist_ok=True)

LOGGING_CONFIG: Dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "detailed": {
            "format": "%(asctime)s [%(levelname)-8s] %(name)s | %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "brief": {
            "format": "[%(levelname)s] %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "brief",
            "level": "WARNING",
        },
        "file": {
            "class": "logging.FileHandler",
            "filename": LOG_FILE,
            "formatter": "detailed",
            "level": "DEBUG",
        },
    },
    "root": {
        "handlers": ["console", "file"],
        "level": "DEBUG",
    },
}

_logging_configured = False


def get_logger(name: str) -> logging.Logger:
    """Return a configured logger for a given module name."""
    global _logging_configured
    if not _logging_configured:
        logging.config.dictConfig(LOGGING_CONFIG)
        _logging_configured = True
    return logging.getLogger(name)
