"""
Paper grid example: seed and tear down a grid against the in-memory venue.

Shows: PaperExchange, GridEngine start/stop reports, StatusReporter tables.
Swap PaperExchange for BinanceExchange to run the same flow on the testnet.
"""

from __future__ import annotations

import logging

from spotgrid_core import GridConfig, GridEngine, StatusReporter
from spotgrid_core.exchange import PaperExchange
from spotgrid_core.status import print_status


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    symbol = "BTCUSDT"
    exchange = PaperExchange(latest_prices={symbol: 30_000.0}, balances={"USDT": 10_000.0})
    config = GridConfig(
        symbol=symbol,
        lower_price=25_000.0,
        upper_price=35_000.0,
        grid_num=5,
        investment=1_000.0,
    )
    engine = GridEngine(exchange, config)
    reporter = StatusReporter(engine)

    print("=== Planned levels ===")
    print(reporter.levels_frame(current_price=30_000.0).to_string(index=False))

    report = engine.start()
    print(f"\nPlaced {len(report.placed)} orders, skipped levels: {report.skipped_levels}")
    print_status(reporter.snapshot())
    print(reporter.orders_frame().to_string(index=False))

    stop_report = engine.stop()
    print(f"\nCancelled {len(stop_report.cancelled_ids)} orders, ok={stop_report.ok}")
    print_status(reporter.snapshot())


if __name__ == "__main__":
    main()
