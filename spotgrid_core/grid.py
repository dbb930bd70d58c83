"""
Grid calculator: evenly spaced price levels between two bounds.

Pure functions, no side effects. No rounding to venue tick size is done
here; price precision is the exchange adapter's concern.
"""

from __future__ import annotations

import math

import numpy as np

from spotgrid_core.errors import GridParamError, GridParamErrorKind


def _spaced_levels(lower_price: float, upper_price: float, grid_num: int) -> np.ndarray:
    interval = (upper_price - lower_price) / (grid_num - 1)
    levels = lower_price + np.arange(grid_num, dtype=float) * interval
    # Pin the top level; (n - 1) * interval can be off by one ulp.
    levels[-1] = upper_price
    return levels


def validate_grid_params(lower_price: float, upper_price: float, grid_num: int) -> None:
    """
    Check that the bounds and grid count describe a usable grid.

    Raises
    ------
    GridParamError
        kind INVALID_PRICE if either bound is not a positive finite number,
        INVALID_RANGE if lower_price >= upper_price or the spacing is too fine
        for float precision to keep levels strictly increasing,
        INVALID_GRID_COUNT if grid_num < 2.
    """
    if not (lower_price > 0 and math.isfinite(lower_price)) or not (upper_price > 0 and math.isfinite(upper_price)):
        raise GridParamError(GridParamErrorKind.INVALID_PRICE, "prices must be positive finite numbers")
    if lower_price >= upper_price:
        raise GridParamError(
            GridParamErrorKind.INVALID_RANGE,
            "upper price must be greater than lower price",
        )
    if grid_num < 2:
        raise GridParamError(GridParamErrorKind.INVALID_GRID_COUNT, "grid number must be at least 2")
    if not np.all(np.diff(_spaced_levels(lower_price, upper_price, grid_num)) > 0):
        raise GridParamError(
            GridParamErrorKind.INVALID_RANGE,
            "price range is too narrow for the grid number at float precision",
        )


def grid_interval(lower_price: float, upper_price: float, grid_num: int) -> float:
    """Price distance between two adjacent levels."""
    validate_grid_params(lower_price, upper_price, grid_num)
    return (upper_price - lower_price) / (grid_num - 1)


def calculate_grid_levels(lower_price: float, upper_price: float, grid_num: int) -> list[float] | None:
    """
    Compute grid_num levels from lower_price to upper_price inclusive.

    Parameters
    ----------
    lower_price : float
        Lowest level; returned exactly as levels[0].
    upper_price : float
        Highest level; returned exactly as levels[-1].
    grid_num : int
        Number of levels (>= 2).

    Returns
    -------
    list of float or None
        Strictly increasing levels ``lower + i * interval``, or None when the
        parameters fail validate_grid_params.
    """
    try:
        validate_grid_params(lower_price, upper_price, grid_num)
    except GridParamError:
        return None
    return [float(level) for level in _spaced_levels(lower_price, upper_price, grid_num)]
