"""
Status reporting: read-only views of a GridEngine for operators.

Nothing here touches the exchange; everything reads the engine's cached
config, levels and order book.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

import pandas as pd

if TYPE_CHECKING:
    from spotgrid_core.engine import GridEngine

ORDER_COLUMNS = ["order_id", "side", "price", "quantity", "notional"]
LEVEL_COLUMNS = ["level", "price", "side"]


@dataclass(frozen=True)
class GridStatus:
    """Snapshot of engine state."""

    running: bool
    symbol: str
    lower_price: float
    upper_price: float
    grid_num: int
    investment: float
    open_order_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class StatusReporter:
    """Builds snapshots and tables from an engine for display or export."""

    def __init__(self, engine: "GridEngine") -> None:
        self.engine = engine

    def snapshot(self) -> GridStatus:
        return self.engine.get_status()

    def orders_frame(self) -> pd.DataFrame:
        """One row per open order, sorted by price."""
        rows = [
            {
                "order_id": order_id,
                "side": order.side.value,
                "price": order.price,
                "quantity": order.quantity,
                "notional": order.notional,
            }
            for order_id, order in self.engine.open_orders().items()
        ]
        if not rows:
            return pd.DataFrame(columns=ORDER_COLUMNS)
        return pd.DataFrame(rows, columns=ORDER_COLUMNS).sort_values("price").reset_index(drop=True)

    def levels_frame(self, current_price: float | None = None) -> pd.DataFrame:
        """
        One row per grid level. With current_price, side shows what start()
        would seed there ("buy", "sell" or "skip"); otherwise side is empty.
        """
        levels = self.engine.levels
        if current_price is None:
            sides = [""] * len(levels)
        else:
            sides = [
                "skip" if level == current_price else ("buy" if level < current_price else "sell")
                for level in levels
            ]
        return pd.DataFrame(
            {"level": range(len(levels)), "price": list(levels), "side": sides},
            columns=LEVEL_COLUMNS,
        )


def print_status(status: GridStatus) -> GridStatus:
    """Print a fixed-format summary of status and return it."""
    print("--- Grid Status ---")
    print(f"Symbol:          {status.symbol}")
    print(f"Running:         {'yes' if status.running else 'no'}")
    print(f"Range:           {status.lower_price:,.2f} - {status.upper_price:,.2f}")
    print(f"Grid levels:     {status.grid_num}")
    print(f"Investment:      {status.investment:,.2f}")
    print(f"Open orders:     {status.open_order_count}")
    print("-------------------")
    return status
