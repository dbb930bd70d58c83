"""
Grid engine: seed a static grid of limit orders and tear it down.

Flow: validate config → compute levels → start: fetch price once, one GTC
limit order per level (BUY below price, SELL above, none at price) →
stop: cancel every recorded order and clear the book.

Per-level failures are logged and collected in the returned report; only
state errors and a failed price fetch are raised.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, field

from spotgrid_core.config import GridConfig, validate_config
from spotgrid_core.context import RunContext
from spotgrid_core.errors import (
    AlreadyRunningError,
    ConfigError,
    ExchangeError,
    GridCancelledError,
    GridError,
    NotRunningError,
    StateError,
    TransitionInProgressError,
)
from spotgrid_core.exchange.base import Exchange
from spotgrid_core.grid import calculate_grid_levels
from spotgrid_core.order import Order, Side, limit_order
from spotgrid_core.status import GridStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlacementFailure:
    """A grid level whose order the venue did not accept."""

    level: float
    order: Order
    error: ExchangeError


@dataclass(frozen=True)
class CancelFailure:
    """A recorded order the venue did not confirm as cancelled."""

    order_id: str
    order: Order
    error: ExchangeError


@dataclass
class StartReport:
    """Outcome of start(). error is the last error seen during the placement loop."""

    current_price: float
    placed: dict[str, Order] = field(default_factory=dict)
    skipped_levels: list[float] = field(default_factory=list)
    failures: list[PlacementFailure] = field(default_factory=list)
    cancelled: bool = False
    error: GridError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class StopReport:
    """
    Outcome of stop(). When ok is False some orders may still be open on
    the venue (failures plus remaining_ids) and need manual reconciliation.
    """

    cancelled_ids: list[str] = field(default_factory=list)
    failures: list[CancelFailure] = field(default_factory=list)
    remaining_ids: list[str] = field(default_factory=list)
    error: GridError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class GridEngine:
    """
    Single-symbol grid seeder.

    State is Idle (running=False) or Running. _lock guards _running and
    _orders and is never held across a venue call. _transition_lock
    is held for a whole start/stop call and taken without waiting: a
    second transition made while one is in flight fails at once with a
    StateError, so the book cannot be mutated during a sweep.
    """

    def __init__(self, exchange: Exchange, config: GridConfig) -> None:
        validate_config(config)
        levels = calculate_grid_levels(config.lower_price, config.upper_price, config.grid_num)
        if levels is None:
            raise ConfigError("failed to calculate grid levels")

        self.exchange = exchange
        self.config = config
        self._levels: tuple[float, ...] = tuple(levels)
        self._orders: dict[str, Order] = {}
        self._running = False
        self._lock = threading.Lock()
        self._transition_lock = threading.Lock()

    @property
    def levels(self) -> tuple[float, ...]:
        return self._levels

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    def open_orders(self) -> dict[str, Order]:
        """Copy of the order book (order_id -> Order)."""
        with self._lock:
            return dict(self._orders)

    def quantity_per_grid(self) -> float:
        """Quote-currency amount per level: the investment split over buy and sell sides."""
        return self.config.investment / (self.config.grid_num * 2)

    def _order_for_level(self, level: float, current_price: float, quantity_per_grid: float) -> Order:
        side = Side.BUY if level < current_price else Side.SELL
        return limit_order(self.config.symbol, side, quantity_per_grid / level, level)

    def _begin_transition(self, busy_error: StateError) -> None:
        """Take _transition_lock without waiting; raise busy_error if another transition holds it."""
        if not self._transition_lock.acquire(blocking=False):
            raise busy_error

    def start(self, ctx: RunContext | None = None) -> StartReport:
        """
        Seed the grid.

        Raises AlreadyRunningError if running and TransitionInProgressError
        while a stop() sweep is still running; neither call waits. If the
        price fetch fails, for any reason, the engine rolls back to Idle and
        the error propagates. Individual placement failures and a mid-loop
        cancellation are reported, not raised; the engine stays Running with
        whatever was placed.
        """
        ctx = ctx or RunContext()
        with self._lock:
            busy: StateError = (
                AlreadyRunningError("grid engine is already running")
                if self._running
                else TransitionInProgressError("grid engine is stopping")
            )
        self._begin_transition(busy)
        try:
            with self._lock:
                if self._running:
                    raise AlreadyRunningError("grid engine is already running")
                self._running = True
            return self._seed(ctx)
        finally:
            self._transition_lock.release()

    def _fetch_price(self, ctx: RunContext) -> float:
        symbol = self.config.symbol
        try:
            current_price = self.exchange.get_symbol_price(ctx, symbol)
            if not (current_price > 0 and math.isfinite(current_price)):
                raise ExchangeError(
                    f"invalid price {current_price!r} for symbol {symbol}",
                    operation="get_symbol_price",
                    symbol=symbol,
                )
        except BaseException as exc:
            with self._lock:
                self._running = False
            logger.error("Failed to start grid for %s: could not get current price: %s", symbol, exc)
            raise
        return current_price

    def _seed(self, ctx: RunContext) -> StartReport:
        symbol = self.config.symbol
        current_price = self._fetch_price(ctx)
        logger.info(
            "Starting grid for %s at price %s: %d levels %.8f..%.8f, investment %.2f",
            symbol,
            current_price,
            len(self._levels),
            self._levels[0],
            self._levels[-1],
            self.config.investment,
        )
        report = StartReport(current_price=current_price)
        quantity_per_grid = self.quantity_per_grid()

        try:
            for level in self._levels:
                if ctx.done:
                    report.cancelled = True
                    report.error = ctx.error()
                    logger.warning("Grid placement interrupted before level %.8f: %s", level, report.error)
                    break
                if level == current_price:
                    report.skipped_levels.append(level)
                    continue

                order = self._order_for_level(level, current_price, quantity_per_grid)
                try:
                    order_id = self.exchange.place_order(ctx, order)
                except GridCancelledError as exc:
                    report.cancelled = True
                    report.error = exc
                    logger.warning("Grid placement interrupted at level %.8f: %s", level, exc)
                    break
                except ExchangeError as exc:
                    logger.warning("Failed to place order at level %.8f: %s", level, exc)
                    report.failures.append(PlacementFailure(level=level, order=order, error=exc))
                    report.error = exc
                    continue

                with self._lock:
                    self._orders[order_id] = order
                report.placed[order_id] = order
                logger.info("Placed %s order at price %.2f, quantity %.8f", order.side.value, order.price, order.quantity)
        except BaseException:
            # Placed orders rest on the venue; stay Running so stop() can cancel them.
            with self._lock:
                if not self._orders:
                    self._running = False
                placed = len(self._orders)
            logger.exception("Grid placement for %s aborted with %d orders placed", symbol, placed)
            raise

        logger.info(
            "Grid for %s started: %d placed, %d failed, %d skipped",
            symbol,
            len(report.placed),
            len(report.failures),
            len(report.skipped_levels),
        )
        return report

    def stop(self, ctx: RunContext | None = None) -> StopReport:
        """
        Cancel every recorded order and return to Idle.

        Raises NotRunningError if idle and TransitionInProgressError while a
        start() is still placing orders; neither call waits. The book is
        cleared even when some cancellations fail; those orders are listed in
        the report.
        """
        ctx = ctx or RunContext()
        with self._lock:
            busy: StateError = (
                TransitionInProgressError("grid engine is starting")
                if self._running
                else NotRunningError("grid engine is not running")
            )
        self._begin_transition(busy)
        try:
            with self._lock:
                if not self._running:
                    raise NotRunningError("grid engine is not running")
                self._running = False
                book = list(self._orders.items())
            try:
                report = self._cancel_all(ctx, book)
            finally:
                with self._lock:
                    self._orders.clear()
        finally:
            self._transition_lock.release()

        if report.ok:
            logger.info("Grid for %s stopped: %d orders cancelled", self.config.symbol, len(report.cancelled_ids))
        else:
            logger.warning(
                "Grid for %s stopped with errors: %d cancelled, %d failed, %d not attempted; reconcile open orders on the venue",
                self.config.symbol,
                len(report.cancelled_ids),
                len(report.failures),
                len(report.remaining_ids),
            )
        return report

    def _cancel_all(self, ctx: RunContext, book: list[tuple[str, Order]]) -> StopReport:
        report = StopReport()
        for index, (order_id, order) in enumerate(book):
            if ctx.done:
                report.error = ctx.error()
                report.remaining_ids.extend(oid for oid, _ in book[index:])
                logger.warning("Cancellation sweep interrupted with %d orders left: %s", len(report.remaining_ids), report.error)
                break
            try:
                self.exchange.cancel_order(ctx, order.symbol, order_id)
            except GridCancelledError as exc:
                report.error = exc
                report.remaining_ids.extend(oid for oid, _ in book[index:])
                logger.warning("Cancellation sweep interrupted with %d orders left: %s", len(report.remaining_ids), exc)
                break
            except ExchangeError as exc:
                logger.warning("Failed to cancel order %s: %s", order_id, exc)
                report.failures.append(CancelFailure(order_id=order_id, order=order, error=exc))
                report.error = exc
                continue
            report.cancelled_ids.append(order_id)
            logger.info("Cancelled order %s (%s @ %.2f)", order_id, order.side.value, order.price)
        return report

    def get_status(self) -> GridStatus:
        """Read-only snapshot. Never performs network I/O."""
        with self._lock:
            return GridStatus(
                running=self._running,
                symbol=self.config.symbol,
                lower_price=self.config.lower_price,
                upper_price=self.config.upper_price,
                grid_num=self.config.grid_num,
                investment=self.config.investment,
                open_order_count=len(self._orders),
            )
