"""
Binance spot adapter via ccxt.

Sandbox-first: sandbox=True (Binance spot testnet) by default. Real orders
are refused unless SPOTGRID_LIVE_TRADING_ENABLED=true. Every ccxt failure
is mapped to ExchangeError.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

import ccxt

from spotgrid_core.config import LIVE_TRADING_ENV, live_trading_enabled
from spotgrid_core.context import RunContext
from spotgrid_core.errors import ConfigError, ExchangeError
from spotgrid_core.exchange.base import Exchange
from spotgrid_core.order import Order, OrderType

logger = logging.getLogger(__name__)

T = TypeVar("T")

_QUOTE_ASSETS = ("USDT", "USDC", "FDUSD", "BUSD", "BTC", "ETH", "BNB")


def to_ccxt_symbol(symbol: str) -> str:
    """Convert 'BTCUSDT' to 'BTC/USDT'. Symbols already in ccxt form pass through."""
    if "/" in symbol:
        return symbol
    for quote in _QUOTE_ASSETS:
        if symbol.endswith(quote) and len(symbol) > len(quote):
            return f"{symbol[:-len(quote)]}/{quote}"
    return symbol


class BinanceExchange(Exchange):
    """
    Binance spot venue.

    client may be injected (any object with the ccxt unified methods);
    otherwise a ccxt.binance client is built from the credentials. Request
    timeouts follow the RunContext deadline when one is set.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        sandbox: bool = True,
        *,
        client: Any | None = None,
        default_timeout_ms: int = 10_000,
    ) -> None:
        if not api_key or not api_secret:
            raise ConfigError("API key and secret are required")
        self._sandbox = sandbox
        self._default_timeout_ms = default_timeout_ms
        self._client = client or ccxt.binance({
            "apiKey": api_key,
            "secret": api_secret,
            "enableRateLimit": True,
            "timeout": default_timeout_ms,
            "options": {"defaultType": "spot"},
        })
        if sandbox:
            self._client.set_sandbox_mode(True)
            logger.info("BinanceExchange: SANDBOX / TESTNET mode is ACTIVE.")
        elif live_trading_enabled():
            logger.warning("BinanceExchange: LIVE TRADING is ENABLED. Real money at risk.")
        else:
            logger.warning(
                "BinanceExchange: live trading is disabled. Set %s=true to allow real orders.",
                LIVE_TRADING_ENV,
            )

    @property
    def sandbox(self) -> bool:
        return self._sandbox

    def _call(self, ctx: RunContext, operation: str, symbol: str | None, fn: Callable[..., T], *args: Any) -> T:
        """Run one ccxt request under ctx, mapping library errors to ExchangeError."""
        ctx.check()
        remaining = ctx.remaining()
        if remaining is None:
            self._client.timeout = self._default_timeout_ms
        else:
            self._client.timeout = max(1, int(remaining * 1000))
        logger.debug("Binance %s %s args=%s", operation, symbol or "", args)
        try:
            return fn(*args)
        except ccxt.BaseError as exc:
            raise ExchangeError(f"failed to {operation.replace('_', ' ')}: {exc}", operation=operation, symbol=symbol) from exc

    def get_symbol_price(self, ctx: RunContext, symbol: str) -> float:
        ticker = self._call(ctx, "get_price", symbol, self._client.fetch_ticker, to_ccxt_symbol(symbol))
        last = ticker.get("last") if ticker else None
        if last is None:
            raise ExchangeError(f"no price found for symbol {symbol}", operation="get_price", symbol=symbol)
        return float(last)

    def place_order(self, ctx: RunContext, order: Order) -> str:
        if not self._sandbox and not live_trading_enabled():
            raise ExchangeError(
                f"Live trading disabled. Set {LIVE_TRADING_ENV}=true to allow real orders.",
                operation="place_order",
                symbol=order.symbol,
            )
        ccxt_symbol = to_ccxt_symbol(order.symbol)
        side = order.side.value.lower()
        if order.order_type == OrderType.LIMIT:
            args: tuple[Any, ...] = (
                ccxt_symbol,
                "limit",
                side,
                order.quantity,
                order.price,
                {"timeInForce": order.time_in_force.value},
            )
        else:
            args = (ccxt_symbol, "market", side, order.quantity)
        logger.info(
            "Submitting order: symbol=%s, side=%s, type=%s, qty=%.8f, price=%s, mode=%s",
            order.symbol,
            order.side.value,
            order.order_type.value,
            order.quantity,
            order.price,
            "sandbox" if self._sandbox else "live",
        )
        response = self._call(ctx, "place_order", order.symbol, self._client.create_order, *args)
        order_id = response.get("id") if response else None
        if order_id is None:
            raise ExchangeError("venue returned no order id", operation="place_order", symbol=order.symbol)
        return str(order_id)

    def cancel_order(self, ctx: RunContext, symbol: str, order_id: str) -> None:
        self._call(ctx, "cancel_order", symbol, self._client.cancel_order, order_id, to_ccxt_symbol(symbol))

    def get_balance(self, ctx: RunContext, asset: str) -> float:
        balance = self._call(ctx, "get_balance", None, self._client.fetch_balance)
        entry = balance.get(asset) if balance else None
        if not entry or entry.get("free") is None:
            raise ExchangeError(f"asset {asset} not found", operation="get_balance")
        return float(entry["free"])
