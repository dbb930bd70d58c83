"""
Paper exchange: deterministic in-memory venue.

No network. Prices come from a dict; placed orders rest until cancelled
(no fill simulation). Keeps an order log for debugging and tests.
"""

from __future__ import annotations

import logging
import uuid

from spotgrid_core.context import RunContext
from spotgrid_core.errors import ExchangeError
from spotgrid_core.exchange.base import Exchange
from spotgrid_core.order import Order

logger = logging.getLogger(__name__)


class PaperExchange(Exchange):
    """
    Paper venue. latest_prices maps symbol -> price; balances maps asset -> free amount.
    Order IDs are "paper-<12 hex>".
    """

    def __init__(
        self,
        latest_prices: dict[str, float] | None = None,
        *,
        balances: dict[str, float] | None = None,
    ) -> None:
        self._prices: dict[str, float] = dict(latest_prices or {})
        self._balances: dict[str, float] = dict(balances or {})
        self._open_orders: dict[str, Order] = {}
        self._order_log: list[tuple[str, str, Order]] = []

    def set_price(self, symbol: str, price: float) -> None:
        self._prices[symbol] = price

    def get_symbol_price(self, ctx: RunContext, symbol: str) -> float:
        ctx.check()
        price = self._prices.get(symbol)
        if price is None:
            raise ExchangeError(f"no price found for symbol {symbol}", operation="get_symbol_price", symbol=symbol)
        return price

    def place_order(self, ctx: RunContext, order: Order) -> str:
        ctx.check()
        if order.symbol not in self._prices:
            raise ExchangeError(f"unknown symbol {order.symbol}", operation="place_order", symbol=order.symbol)
        order_id = f"paper-{uuid.uuid4().hex[:12]}"
        self._open_orders[order_id] = order
        self._order_log.append(("placed", order_id, order))
        logger.debug("Paper order %s: %s %s @ %s", order_id, order.side.value, order.quantity, order.price)
        return order_id

    def cancel_order(self, ctx: RunContext, symbol: str, order_id: str) -> None:
        ctx.check()
        order = self._open_orders.get(order_id)
        if order is None or order.symbol != symbol:
            raise ExchangeError(f"order {order_id} not found", operation="cancel_order", symbol=symbol)
        del self._open_orders[order_id]
        self._order_log.append(("cancelled", order_id, order))

    def get_balance(self, ctx: RunContext, asset: str) -> float:
        ctx.check()
        if asset not in self._balances:
            raise ExchangeError(f"asset {asset} not found", operation="get_balance")
        return self._balances[asset]

    def get_open_orders(self) -> dict[str, Order]:
        """Orders placed and not yet cancelled, keyed by order ID."""
        return dict(self._open_orders)

    def get_order_log(self) -> list[tuple[str, str, Order]]:
        """(action, order_id, order) for every placement and cancellation, in order."""
        return list(self._order_log)
