"""
Command-line entry point: run one grid on Binance (testnet by default).

Starts the grid, logs status periodically until SIGINT/SIGTERM, then
cancels every order it placed.
"""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
from collections.abc import Sequence

from spotgrid_core.config import LOG_LEVEL_ENV, GridConfig, load_credentials
from spotgrid_core.context import RunContext
from spotgrid_core.engine import GridEngine
from spotgrid_core.errors import ConfigError, GridError
from spotgrid_core.exchange.base import Exchange

logger = logging.getLogger("spotgrid_core.cli")

STOP_TIMEOUT_SECONDS = 30.0
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="spotgrid", description="Seed a static spot grid of limit orders.")
    parser.add_argument("--symbol", default="BTCUSDT", help="Trading pair symbol")
    parser.add_argument("--lower", type=float, default=0.0, help="Lower price bound")
    parser.add_argument("--upper", type=float, default=0.0, help="Upper price bound")
    parser.add_argument("--grids", type=int, default=5, help="Number of grid levels")
    parser.add_argument("--investment", type=float, default=0.0, help="Total investment amount in quote currency")
    parser.add_argument("--live", action="store_true", help="Use the live venue instead of the testnet")
    parser.add_argument("--status-interval", type=float, default=30.0, help="Seconds between status log lines")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=os.environ.get(LOG_LEVEL_ENV, "INFO"),
        help="Logging level (default from %s or INFO)" % LOG_LEVEL_ENV,
    )
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.lower == 0 or args.upper == 0 or args.investment == 0:
        parser.error("Lower price, upper price, and investment amount are required")
    # argparse does not check choices against a default taken from the environment.
    if args.log_level not in LOG_LEVELS:
        parser.error(f"invalid log level {args.log_level!r} from {LOG_LEVEL_ENV}; choose from {', '.join(LOG_LEVELS)}")
    return args


def run(
    args: argparse.Namespace,
    exchange: Exchange,
    shutdown: threading.Event,
    start_ctx: RunContext | None = None,
) -> int:
    """Build the engine, start it, wait for shutdown, stop it. Returns the exit status."""
    config = GridConfig(
        symbol=args.symbol,
        lower_price=args.lower,
        upper_price=args.upper,
        grid_num=args.grids,
        investment=args.investment,
    )
    try:
        engine = GridEngine(exchange, config)
    except ConfigError as exc:
        logger.error("Failed to create grid engine: %s", exc)
        return 1

    logger.info("Starting grid bot for %s...", config.symbol)
    logger.info(
        "Grid configuration: Lower: %.2f, Upper: %.2f, Grids: %d, Investment: %.2f",
        config.lower_price,
        config.upper_price,
        config.grid_num,
        config.investment,
    )
    start_ctx = start_ctx or RunContext()
    try:
        report = engine.start(start_ctx)
    except GridError as exc:
        logger.error("Failed to start grid bot: %s", exc)
        return 1
    if report.failures:
        logger.warning("%d of %d grid orders failed to place", len(report.failures), len(engine.levels))

    while not shutdown.wait(args.status_interval):
        status = engine.get_status()
        logger.info("Status: running=%s open_orders=%d", status.running, status.open_order_count)

    logger.info("Shutting down...")
    stop_report = engine.stop(RunContext(timeout=STOP_TIMEOUT_SECONDS))
    if not stop_report.ok:
        logger.error(
            "Error stopping bot: %s; orders possibly still open: %s",
            stop_report.error,
            [f.order_id for f in stop_report.failures] + stop_report.remaining_ids,
        )
        return 1
    logger.info("Bot stopped successfully")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        credentials = load_credentials()
    except ConfigError as exc:
        logger.error("%s", exc)
        return 1

    from spotgrid_core.exchange.binance import BinanceExchange

    try:
        exchange = BinanceExchange(credentials.api_key, credentials.api_secret, sandbox=not args.live)
    except ConfigError as exc:
        logger.error("Failed to create Binance client: %s", exc)
        return 1

    shutdown = threading.Event()
    start_ctx = RunContext()

    def _handle_signal(signum: int, frame: object) -> None:
        logger.info("Received signal %d", signum)
        start_ctx.cancel("shutdown requested")
        shutdown.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    return run(args, exchange, shutdown, start_ctx)


if __name__ == "__main__":
    sys.exit(main())
