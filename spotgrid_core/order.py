"""
Order: one order request as sent to a venue.

Immutable. The engine never edits a placed order; it only cancels it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Side(Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderType(Enum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"


class TimeInForce(Enum):
    """Order lifetime policy."""

    GTC = "GTC"
    IOC = "IOC"
    FOK = "FOK"


@dataclass(frozen=True)
class Order:
    """
    A request for the venue. No venue ID and no fill state here.

    quantity is in base currency; price in quote currency. price and
    time_in_force are required for LIMIT orders.
    """

    symbol: str
    side: Side
    quantity: float
    order_type: OrderType = OrderType.LIMIT
    price: float | None = None
    time_in_force: TimeInForce | None = None

    def __post_init__(self) -> None:
        if not self.symbol:
            raise ValueError("order symbol is required")
        if not self.quantity > 0:
            raise ValueError(f"order quantity must be positive, got {self.quantity!r}")
        if self.order_type == OrderType.LIMIT:
            if self.price is None or not self.price > 0:
                raise ValueError("limit order requires a positive price")
            if self.time_in_force is None:
                raise ValueError("limit order requires a time-in-force")

    @property
    def notional(self) -> float | None:
        """Quote-currency value at the limit price. None for market orders."""
        if self.price is None:
            return None
        return self.quantity * self.price


def limit_order(symbol: str, side: Side, quantity: float, price: float) -> Order:
    """Build a GTC limit order, the only kind the grid seeds."""
    return Order(
        symbol=symbol,
        side=side,
        quantity=quantity,
        order_type=OrderType.LIMIT,
        price=price,
        time_in_force=TimeInForce.GTC,
    )
