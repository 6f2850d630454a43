"""Main Entry Point for the Income Flywheel.

Command line interface that runs the backtest and projection for the
default portfolio, optionally with edited weights and yields, prints the
report and can chart the result.
"""

import argparse
import json
import sys
from typing import Sequence

from income_flywheel.core.backtest_engine import IncomeBacktestEngine
from income_flywheel.core.config import (
    DataRetrievalConfig,
    FlywheelConfig,
    LoggingConfig,
    PortfolioConfig,
)
from income_flywheel.core.logger import configure_logging


def parse_percent_assignment(value: str) -> tuple[str, float]:
    """Parse ``SYMBOL=PCT`` into an upper-cased symbol and a fraction.

    Raises:
        argparse.ArgumentTypeError: If the value is not of that form
    """
    symbol, sep, pct = value.partition('=')
    if not sep or not symbol.strip():
        raise argparse.ArgumentTypeError(f"Expected SYMBOL=PCT, got {value!r}")
    try:
        fraction = float(pct) / 100
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid percentage in {value!r}") from e
    return symbol.strip().upper(), fraction


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(description="Income Flywheel portfolio backtest and projection")
    parser.add_argument('--start-value', type=float, default=None, help='Starting capital')
    parser.add_argument('--target-income', type=float, default=None, help='Annual income target')
    parser.add_argument('--range', default='10y', help='Lookback range (e.g. 5y, 10y, max)')
    parser.add_argument('--timeout', type=float, default=10.0, help='Per-fetch timeout in seconds')
    parser.add_argument('--retries', type=int, default=0, help='Retries per failed fetch')
    parser.add_argument(
        '--weight',
        type=parse_percent_assignment,
        action='append',
        default=[],
        metavar='SYMBOL=PCT',
        help='Override a weight in percent (repeatable)',
    )
    parser.add_argument(
        '--yield',
        dest='yields',
        type=parse_percent_assignment,
        action='append',
        default=[],
        metavar='SYMBOL=PCT',
        help='Override an estimated yield in percent (repeatable)',
    )
    parser.add_argument('--json', action='store_true', help='Print the summary as JSON')
    parser.add_argument('--plot', action='store_true', help='Show the chart')
    parser.add_argument('--save-plot', help='Save the chart to this path')
    parser.add_argument('--log-level', default='INFO', help='Log level')
    parser.add_argument('--log-file', help='Rotating log file path')
    return parser


def build_config(args: argparse.Namespace) -> FlywheelConfig:
    """Turn parsed arguments into a run configuration."""
    portfolio = PortfolioConfig()
    overrides: dict[str, float] = {}
    if args.start_value is not None:
        overrides['start_value'] = args.start_value
    if args.target_income is not None:
        overrides['target_annual_income'] = args.target_income
    if overrides:
        portfolio = PortfolioConfig(**{**portfolio.model_dump(), **overrides})

    for symbol, weight in args.weight:
        portfolio = portfolio.with_allocation_update(symbol, weight=weight)
    for symbol, est_yield in args.yields:
        portfolio = portfolio.with_allocation_update(symbol, est_yield=est_yield)

    return FlywheelConfig(
        data=DataRetrievalConfig(range=args.range, timeout=args.timeout, max_retries=args.retries),
        portfolio=portfolio,
        logging=LoggingConfig(level=args.log_level, file_path=args.log_file),
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Main function for command line interface."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except (KeyError, ValueError) as e:
        parser.error(str(e))

    logger = configure_logging(config.logging)
    logger.info("Starting income flywheel backtest")

    engine = IncomeBacktestEngine(config, logger=logger)
    engine.run_backtest()

    if args.json:
        print(json.dumps(engine.summary(), indent=2, default=str))
    else:
        print(engine.generate_report())

    if args.plot or args.save_plot:
        engine.plot_results(save_path=args.save_plot, show_plot=args.plot)

    logger.info("Income flywheel run completed")
    return 1 if engine.last_error else 0


if __name__ == "__main__":
    sys.exit(main())
