"""
Exchange abstraction layer.

Exchange ABC: get_symbol_price, place_order, cancel_order, get_balance.
The engine only knows this interface; venue protocol, authentication and
wire format live in the implementations (PaperExchange, BinanceExchange).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from spotgrid_core.context import RunContext
from spotgrid_core.order import Order


class Exchange(ABC):
    """
    Abstract venue. Same interface for paper and live trading.

    Implementations must raise ExchangeError for venue failures and
    GridCancelledError when ctx is done; no other exception types should
    escape for expected venue conditions. Retry policy, if any, belongs here
    and not in the engine.
    """

    @abstractmethod
    def get_symbol_price(self, ctx: RunContext, symbol: str) -> float:
        """Return the latest traded price for symbol."""
        ...

    @abstractmethod
    def place_order(self, ctx: RunContext, order: Order) -> str:
        """Submit an order. Returns the venue-assigned order ID on acknowledgment."""
        ...

    @abstractmethod
    def cancel_order(self, ctx: RunContext, symbol: str, order_id: str) -> None:
        """Cancel an open order. Returns once the venue acknowledges."""
        ...

    @abstractmethod
    def get_balance(self, ctx: RunContext, asset: str) -> float:
        """
        Return the free balance of asset.

        Not used by the engine's seeding flow; part of the capability so
        callers can size an investment before building a GridConfig.
        """
        ...
