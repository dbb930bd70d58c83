"""
Error taxonomy for the grid engine.

ConfigError fails fast at construction, StateError rejects redundant
transitions, and ExchangeError wraps whatever the venue adapter raised.
"""

from __future__ import annotations

from enum import Enum


class GridError(Exception):
    """Base class for all spotgrid errors."""


class ConfigError(GridError, ValueError):
    """Raised when a grid configuration or credential set is invalid."""


class GridParamErrorKind(Enum):
    INVALID_PRICE = "invalid_price"
    INVALID_RANGE = "invalid_range"
    INVALID_GRID_COUNT = "invalid_grid_count"


class GridParamError(ConfigError):
    """Raised when the price bounds or grid count cannot form a grid."""

    def __init__(self, kind: GridParamErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class StateError(GridError):
    """Raised when a start/stop transition is not allowed from the current state."""


class AlreadyRunningError(StateError):
    """Start was called while the engine is running."""


class NotRunningError(StateError):
    """Stop was called while the engine is idle."""


class ExchangeError(GridError):
    """A venue call failed. The underlying error, if any, is chained as __cause__."""

    def __init__(self, message: str, *, operation: str | None = None, symbol: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.symbol = symbol


class GridCancelledError(GridError):
    """The caller's RunContext was cancelled or its deadline passed."""


class TransitionInProgressError(StateError):
    """Another start/stop call is still talking to the venue."""
