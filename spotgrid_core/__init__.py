"""
spotgrid-core: static spot grid seeder.

Computes evenly spaced price levels, seeds one limit order per level
against an Exchange, and cancels them all on stop.
"""

__version__ = "0.1.0"

from spotgrid_core.config import GridConfig
from spotgrid_core.context import RunContext
from spotgrid_core.engine import GridEngine, StartReport, StopReport
from spotgrid_core.errors import (
    AlreadyRunningError,
    ConfigError,
    ExchangeError,
    GridCancelledError,
    GridError,
    GridParamError,
    NotRunningError,
    StateError,
    TransitionInProgressError,
)
from spotgrid_core.grid import calculate_grid_levels, validate_grid_params
from spotgrid_core.order import Order, OrderType, Side, TimeInForce
from spotgrid_core.status import GridStatus, StatusReporter

__all__ = [
    "GridConfig",
    "RunContext",
    "GridEngine",
    "StartReport",
    "StopReport",
    "GridError",
    "ConfigError",
    "GridParamError",
    "StateError",
    "TransitionInProgressError",
    "AlreadyRunningError",
    "NotRunningError",
    "ExchangeError",
    "GridCancelledError",
    "calculate_grid_levels",
    "validate_grid_params",
    "Order",
    "OrderType",
    "Side",
    "TimeInForce",
    "GridStatus",
    "StatusReporter",
]
