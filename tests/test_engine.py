"""
Tests for GridEngine: construction, start/stop state machine, order book.
"""

import threading

import pytest

from spotgrid_core import GridConfig, GridEngine, RunContext
from spotgrid_core.errors import (
    AlreadyRunningError,
    ConfigError,
    ExchangeError,
    GridCancelledError,
    NotRunningError,
    TransitionInProgressError,
)
from spotgrid_core.exchange import PaperExchange
from spotgrid_core.order import OrderType, Side, TimeInForce

SYMBOL = "BTCUSDT"


def _config(**overrides):
    values = dict(symbol=SYMBOL, lower_price=25_000.0, upper_price=35_000.0, grid_num=5, investment=1_000.0)
    values.update(overrides)
    return GridConfig(**values)


class FlakyExchange(PaperExchange):
    """Paper venue that rejects placements at given prices and cancels of given IDs."""

    def __init__(self, *args, fail_prices=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_prices = set(fail_prices)
        self.fail_cancel_ids = set()
        self.cancel_calls = []

    def place_order(self, ctx, order):
        if order.price in self.fail_prices:
            raise ExchangeError("rejected by venue", operation="place_order", symbol=order.symbol)
        return super().place_order(ctx, order)

    def cancel_order(self, ctx, symbol, order_id):
        self.cancel_calls.append((symbol, order_id))
        if order_id in self.fail_cancel_ids:
            raise ExchangeError(f"cancel {order_id} failed", operation="cancel_order", symbol=symbol)
        super().cancel_order(ctx, symbol, order_id)


class CancelAfterExchange(PaperExchange):
    """Paper venue that cancels the caller's context after n successful placements."""

    def __init__(self, *args, cancel_after=1, **kwargs):
        super().__init__(*args, **kwargs)
        self.cancel_after = cancel_after
        self.placed_count = 0

    def place_order(self, ctx, order):
        order_id = super().place_order(ctx, order)
        self.placed_count += 1
        if self.placed_count == self.cancel_after:
            ctx.cancel("operator interrupt")
        return order_id


# --- Construction ---


def test_new_engine_is_idle_with_levels():
    engine = GridEngine(PaperExchange({SYMBOL: 30_000.0}), _config())
    assert engine.levels == (25_000.0, 27_500.0, 30_000.0, 32_500.0, 35_000.0)
    assert engine.running is False
    assert engine.open_orders() == {}
    assert engine.quantity_per_grid() == 100.0


@pytest.mark.parametrize(
    "overrides",
    [
        {"lower_price": 35_000.0, "upper_price": 25_000.0},
        {"grid_num": 1},
        {"investment": 0.0},
        {"investment": -10.0},
        {"symbol": ""},
        {"lower_price": 0.0},
    ],
)
def test_invalid_config_raises_config_error(overrides):
    with pytest.raises(ConfigError):
        GridEngine(PaperExchange({SYMBOL: 30_000.0}), _config(**overrides))


# --- Start ---


def test_start_places_buys_below_and_sells_above_price():
    exchange = PaperExchange({SYMBOL: 30_000.0})
    engine = GridEngine(exchange, _config())
    report = engine.start()

    assert report.ok
    assert report.current_price == 30_000.0
    assert report.skipped_levels == [30_000.0]
    assert len(report.placed) == 4
    assert engine.running is True

    book = engine.open_orders()
    assert book == report.placed
    assert book == exchange.get_open_orders()
    by_price = {order.price: order for order in book.values()}
    assert sorted(by_price) == [25_000.0, 27_500.0, 32_500.0, 35_000.0]
    assert by_price[25_000.0].side == Side.BUY
    assert by_price[27_500.0].side == Side.BUY
    assert by_price[32_500.0].side == Side.SELL
    assert by_price[35_000.0].side == Side.SELL
    for order in book.values():
        assert order.symbol == SYMBOL
        assert order.order_type == OrderType.LIMIT
        assert order.time_in_force == TimeInForce.GTC
        assert order.quantity == pytest.approx(100.0 / order.price)


def test_start_places_in_level_order():
    exchange = PaperExchange({SYMBOL: 31_000.0})
    engine = GridEngine(exchange, _config())
    engine.start()
    prices = [order.price for action, _, order in exchange.get_order_log() if action == "placed"]
    assert prices == list(engine.levels)


def test_price_below_grid_places_only_sells():
    engine = GridEngine(PaperExchange({SYMBOL: 20_000.0}), _config())
    report = engine.start()
    assert len(report.placed) == 5
    assert {o.side for o in report.placed.values()} == {Side.SELL}


def test_price_above_grid_places_only_buys():
    engine = GridEngine(PaperExchange({SYMBOL: 40_000.0}), _config())
    report = engine.start()
    assert {o.side for o in report.placed.values()} == {Side.BUY}
    assert report.skipped_levels == []


def test_start_twice_raises_already_running_and_keeps_book():
    engine = GridEngine(PaperExchange({SYMBOL: 30_000.0}), _config())
    engine.start()
    book = engine.open_orders()
    with pytest.raises(AlreadyRunningError):
        engine.start()
    assert engine.open_orders() == book
    assert engine.running is True


def test_price_fetch_failure_leaves_engine_idle_and_restartable():
    exchange = PaperExchange()  # no price for SYMBOL yet
    engine = GridEngine(exchange, _config())
    with pytest.raises(ExchangeError):
        engine.start()
    assert engine.running is False
    assert engine.open_orders() == {}

    exchange.set_price(SYMBOL, 30_000.0)
    report = engine.start()
    assert len(report.placed) == 4


def test_one_failed_placement_is_not_fatal():
    exchange = FlakyExchange({SYMBOL: 30_000.0}, fail_prices={27_500.0})
    engine = GridEngine(exchange, _config())
    report = engine.start()

    assert engine.running is True
    assert report.ok is False
    assert isinstance(report.error, ExchangeError)
    assert [f.level for f in report.failures] == [27_500.0]
    assert report.failures[0].order.side == Side.BUY
    book = engine.open_orders()
    assert len(book) == 3
    assert 27_500.0 not in {o.price for o in book.values()}


def test_all_placements_failing_still_starts():
    levels = [25_000.0, 27_500.0, 32_500.0, 35_000.0]
    engine = GridEngine(FlakyExchange({SYMBOL: 30_000.0}, fail_prices=levels), _config())
    report = engine.start()
    assert engine.running is True
    assert len(report.failures) == 4
    assert engine.open_orders() == {}
    assert engine.stop().ok


def test_start_with_cancelled_context_stays_idle():
    engine = GridEngine(PaperExchange({SYMBOL: 30_000.0}), _config())
    ctx = RunContext()
    ctx.cancel()
    with pytest.raises(GridCancelledError):
        engine.start(ctx)
    assert engine.running is False


def test_context_cancelled_mid_loop_returns_partial_result():
    exchange = CancelAfterExchange({SYMBOL: 30_000.0}, cancel_after=2)
    engine = GridEngine(exchange, _config())
    report = engine.start(RunContext())

    assert report.cancelled is True
    assert isinstance(report.error, GridCancelledError)
    assert len(report.placed) == 2
    assert engine.running is True
    assert len(engine.open_orders()) == 2

    stop_report = engine.stop()
    assert stop_report.ok
    assert sorted(stop_report.cancelled_ids) == sorted(report.placed)


# --- Stop ---


def test_stop_on_fresh_engine_raises_not_running():
    engine = GridEngine(PaperExchange({SYMBOL: 30_000.0}), _config())
    with pytest.raises(NotRunningError):
        engine.stop()


def test_start_then_stop_cancels_every_order_once():
    exchange = FlakyExchange({SYMBOL: 30_000.0})
    engine = GridEngine(exchange, _config())
    placed = engine.start().placed

    report = engine.stop()

    assert report.ok
    assert engine.running is False
    assert engine.open_orders() == {}
    assert exchange.get_open_orders() == {}
    assert sorted(order_id for _, order_id in exchange.cancel_calls) == sorted(placed)
    assert {symbol for symbol, _ in exchange.cancel_calls} == {SYMBOL}
    with pytest.raises(NotRunningError):
        engine.stop()


def test_cancel_failure_is_reported_and_book_cleared():
    exchange = FlakyExchange({SYMBOL: 30_000.0})
    engine = GridEngine(exchange, _config())
    placed = list(engine.start().placed)
    exchange.fail_cancel_ids = {placed[1]}

    report = engine.stop()

    assert report.ok is False
    assert isinstance(report.error, ExchangeError)
    assert [f.order_id for f in report.failures] == [placed[1]]
    assert len(exchange.cancel_calls) == 4
    assert len(report.cancelled_ids) == 3
    assert engine.running is False
    assert engine.open_orders() == {}
    assert placed[1] in exchange.get_open_orders()


def test_stop_with_expired_context_lists_remaining_orders():
    exchange = FlakyExchange({SYMBOL: 30_000.0})
    engine = GridEngine(exchange, _config())
    placed = engine.start().placed

    report = engine.stop(RunContext(timeout=0))

    assert isinstance(report.error, GridCancelledError)
    assert sorted(report.remaining_ids) == sorted(placed)
    assert exchange.cancel_calls == []
    assert engine.running is False
    assert engine.open_orders() == {}


def test_engine_restartable_after_stop():
    engine = GridEngine(PaperExchange({SYMBOL: 30_000.0}), _config())
    engine.start()
    engine.stop()
    report = engine.start()
    assert len(report.placed) == 4
    assert engine.get_status().open_order_count == 4


# --- Status & concurrency ---


def test_status_snapshot():
    engine = GridEngine(PaperExchange({SYMBOL: 30_000.0}), _config())
    status = engine.get_status()
    assert status.running is False
    assert status.symbol == SYMBOL
    assert status.lower_price == 25_000.0
    assert status.upper_price == 35_000.0
    assert status.grid_num == 5
    assert status.investment == 1_000.0
    assert status.open_order_count == 0

    engine.start()
    status = engine.get_status()
    assert status.running is True
    assert status.open_order_count == 4


def test_status_readable_while_start_waits_on_venue():
    entered = threading.Event()
    release = threading.Event()

    class GatedExchange(PaperExchange):
        def get_symbol_price(self, ctx, symbol):
            entered.set()
            release.wait(5)
            return super().get_symbol_price(ctx, symbol)

    engine = GridEngine(GatedExchange({SYMBOL: 30_000.0}), _config())
    reports = []
    worker = threading.Thread(target=lambda: reports.append(engine.start()))
    worker.start()
    try:
        assert entered.wait(5)
        status = engine.get_status()
        assert status.running is True
        assert status.open_order_count == 0
    finally:
        release.set()
        worker.join(5)

    assert len(reports) == 1
    assert engine.get_status().open_order_count == 4
    with pytest.raises(AlreadyRunningError):
        engine.start()


@pytest.mark.parametrize(
    "overrides",
    [
        {"lower_price": float("nan")},
        {"upper_price": float("nan")},
        {"upper_price": float("inf")},
        {"investment": float("nan")},
    ],
)
def test_non_finite_config_raises_config_error(overrides):
    with pytest.raises(ConfigError):
        GridEngine(PaperExchange({SYMBOL: 30_000.0}), _config(**overrides))


# --- Rollback on unexpected failures ---


class BrokenPriceExchange(PaperExchange):
    def get_symbol_price(self, ctx, symbol):
        raise RuntimeError("adapter bug")


def test_unexpected_price_error_rolls_back_to_idle():
    engine = GridEngine(BrokenPriceExchange({SYMBOL: 30_000.0}), _config())
    with pytest.raises(RuntimeError):
        engine.start()
    assert engine.running is False
    with pytest.raises(NotRunningError):
        engine.stop()


@pytest.mark.parametrize("price", [float("nan"), 0.0, -1.0, float("inf")])
def test_invalid_venue_price_rolls_back_to_idle(price):
    engine = GridEngine(PaperExchange({SYMBOL: price}), _config())
    with pytest.raises(ExchangeError, match="invalid price"):
        engine.start()
    assert engine.running is False
    assert engine.open_orders() == {}


class BrokenPlacementExchange(PaperExchange):
    """Accepts the first n placements, then fails with a non-venue error."""

    def __init__(self, *args, ok_count=0, **kwargs):
        super().__init__(*args, **kwargs)
        self.ok_count = ok_count

    def place_order(self, ctx, order):
        if len(self.get_open_orders()) >= self.ok_count:
            raise RuntimeError("adapter bug")
        return super().place_order(ctx, order)


def test_unexpected_placement_error_before_any_order_rolls_back():
    engine = GridEngine(BrokenPlacementExchange({SYMBOL: 30_000.0}, ok_count=0), _config())
    with pytest.raises(RuntimeError):
        engine.start()
    assert engine.running is False
    with pytest.raises(RuntimeError):
        engine.start()


def test_unexpected_placement_error_after_orders_stays_running_for_stop():
    exchange = BrokenPlacementExchange({SYMBOL: 30_000.0}, ok_count=2)
    engine = GridEngine(exchange, _config())
    with pytest.raises(RuntimeError):
        engine.start()
    assert engine.running is True
    assert len(engine.open_orders()) == 2

    report = engine.stop()
    assert report.ok
    assert len(report.cancelled_ids) == 2
    assert exchange.get_open_orders() == {}


# --- Concurrent transitions ---


def test_second_transition_fails_fast_while_start_in_flight():
    entered = threading.Event()
    release = threading.Event()

    class GatedExchange(PaperExchange):
        def get_symbol_price(self, ctx, symbol):
            entered.set()
            release.wait(5)
            return super().get_symbol_price(ctx, symbol)

    engine = GridEngine(GatedExchange({SYMBOL: 30_000.0}), _config())
    worker = threading.Thread(target=engine.start)
    worker.start()
    try:
        assert entered.wait(5)
        with pytest.raises(AlreadyRunningError):
            engine.start()
        with pytest.raises(TransitionInProgressError):
            engine.stop()
    finally:
        release.set()
        worker.join(5)

    assert engine.get_status().open_order_count == 4
    assert engine.stop().ok


def test_start_fails_fast_while_stop_in_flight():
    entered = threading.Event()
    release = threading.Event()

    class GatedCancelExchange(PaperExchange):
        def cancel_order(self, ctx, symbol, order_id):
            entered.set()
            release.wait(5)
            super().cancel_order(ctx, symbol, order_id)

    engine = GridEngine(GatedCancelExchange({SYMBOL: 30_000.0}), _config())
    engine.start()
    reports = []
    worker = threading.Thread(target=lambda: reports.append(engine.stop()))
    worker.start()
    try:
        assert entered.wait(5)
        assert engine.running is False
        with pytest.raises(TransitionInProgressError):
            engine.start()
    finally:
        release.set()
        worker.join(5)

    assert reports[0].ok
    assert engine.open_orders() == {}
