"""
Configuration: grid parameters and venue credentials.

GridConfig is created once by the caller and never mutated. Credentials
come from the process environment.
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass

from spotgrid_core.errors import ConfigError
from spotgrid_core.grid import validate_grid_params

API_KEY_ENV = "BINANCE_TEST_API_KEY"
API_SECRET_ENV = "BINANCE_TEST_API_SECRET"
# Must be "true" before a non-sandbox adapter will submit orders.
LIVE_TRADING_ENV = "SPOTGRID_LIVE_TRADING_ENABLED"
LOG_LEVEL_ENV = "SPOTGRID_LOG_LEVEL"


@dataclass(frozen=True)
class GridConfig:
    """Grid parameters. investment is in quote currency."""

    symbol: str
    lower_price: float
    upper_price: float
    grid_num: int
    investment: float


def validate_config(config: GridConfig) -> None:
    """Raise ConfigError (or GridParamError) for the first violated constraint."""
    if not config.symbol:
        raise ConfigError("symbol is required")
    if not (config.investment > 0 and math.isfinite(config.investment)):
        raise ConfigError("investment must be a positive finite number")
    validate_grid_params(config.lower_price, config.upper_price, config.grid_num)


@dataclass(frozen=True)
class Credentials:
    api_key: str
    api_secret: str

    def __repr__(self) -> str:
        return f"Credentials(api_key={self.api_key[:4]}..., api_secret=***)"


def load_credentials(environ: Mapping[str, str] | None = None) -> Credentials:
    """Read API credentials from the environment. Raises ConfigError if any is missing."""
    env = os.environ if environ is None else environ
    api_key = env.get(API_KEY_ENV, "")
    api_secret = env.get(API_SECRET_ENV, "")
    if not api_key or not api_secret:
        raise ConfigError(f"{API_KEY_ENV} and {API_SECRET_ENV} environment variables are required")
    return Credentials(api_key=api_key, api_secret=api_secret)


def live_trading_enabled(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return env.get(LIVE_TRADING_ENV, "").lower() == "true"
