"""Backtest Engine - Main orchestrator for the income flywheel.

This module wires the pipeline together: concurrent price retrieval, proxy
blending, return conversion, weighted aggregation, value reconstruction and
forward projection. ``compute_portfolio_state`` is the pure computation over
an immutable configuration; ``IncomeBacktestEngine`` owns the current
configuration, recomputes the whole state on every change and renders it.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable

import matplotlib.dates as mdates
import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.ticker import FuncFormatter

from income_flywheel.core.config import Allocation, FlywheelConfig
from income_flywheel.data.data_retrieval import (
    BasePriceSource,
    DataRetrieval,
    FetchResult,
    empty_price_series,
)
from income_flywheel.portfolio.aggregation import (
    allocation_breakdown,
    estimated_annual_income,
    estimated_yield,
    total_weight,
    weighted_portfolio_returns,
)
from income_flywheel.portfolio.projection import project_forward, trailing_cagr
from income_flywheel.portfolio.series import (
    blend_with_proxy,
    normalize_now,
    series_from_returns,
    to_monthly_returns,
)
from income_flywheel.utils.format_utils import (
    format_currency,
    format_month_label,
    format_percentage,
)

DISCLOSURE = (
    "Disclosure: Hypothetical model for educational purposes only. Not investment advice. "
    "Past performance does not guarantee future results."
)


@dataclass(frozen=True)
class PortfolioState:
    """Everything derived from one configuration, computed in one pass."""

    as_of: pd.Timestamp
    fetch_results: dict[str, FetchResult]
    raw_series: dict[str, pd.Series]
    blended_series: dict[str, pd.Series]
    returns_by_symbol: dict[str, pd.Series]
    portfolio_returns: pd.Series
    backtest_series: pd.Series
    forecast_series: pd.Series
    estimated_annual_income: float
    failed_symbols: list[str] = field(default_factory=list)


def compute_portfolio_state(
    config: FlywheelConfig,
    price_source: BasePriceSource | None = None,
    now: datetime | date | pd.Timestamp | None = None,
    logger: logging.Logger | None = None,
) -> PortfolioState:
    """Run the full backtest and projection for one configuration.

    Args:
        config: Immutable run configuration
        price_source: Price provider, Yahoo Finance by default
        now: Date the backtest ends on and the forecast starts from
        logger: Logger instance

    Returns:
        The derived portfolio state
    """
    logger = logger or logging.getLogger(__name__)
    as_of = normalize_now(now)
    portfolio = config.portfolio
    allocations = list(portfolio.allocations)

    retrieval = DataRetrieval(config.data, source=price_source, logger=logger)
    fetch_results = retrieval.fetch_all(portfolio.symbols())
    raw_series = {symbol: result.series for symbol, result in fetch_results.items()}

    blended_series: dict[str, pd.Series] = {}
    for allocation in allocations:
        primary = raw_series.get(allocation.symbol, empty_price_series(allocation.symbol))
        if allocation.proxy_symbol:
            proxy = raw_series.get(allocation.proxy_symbol, empty_price_series(allocation.proxy_symbol))
            blended = blend_with_proxy(primary, proxy)
            logger.debug(
                f"{allocation.symbol}: {len(primary)} own points, "
                f"{len(blended) - len(primary)} from proxy {allocation.proxy_symbol}"
            )
        else:
            blended = primary
        blended_series[allocation.symbol] = blended

    returns_by_symbol = {
        symbol: to_monthly_returns(series) for symbol, series in blended_series.items()
    }

    portfolio_returns = weighted_portfolio_returns(returns_by_symbol, allocations)
    backtest_series = series_from_returns(portfolio.start_value, portfolio_returns, now=as_of)
    forecast_series = project_forward(backtest_series, now=as_of, years=portfolio.projection_years)
    income = estimated_annual_income(allocations, portfolio.start_value)

    if forecast_series.empty:
        logger.info(
            f"Backtest has {len(backtest_series)} months; "
            f"no {portfolio.projection_years}y projection available"
        )

    return PortfolioState(
        as_of=as_of,
        fetch_results=fetch_results,
        raw_series=raw_series,
        blended_series=blended_series,
        returns_by_symbol=returns_by_symbol,
        portfolio_returns=portfolio_returns,
        backtest_series=backtest_series,
        forecast_series=forecast_series,
        estimated_annual_income=income,
        failed_symbols=[s for s, r in fetch_results.items() if not r.ok],
    )


class IncomeBacktestEngine:
    """Owns the current configuration and its derived portfolio state."""

    def __init__(
        self,
        config: FlywheelConfig | None = None,
        price_source: BasePriceSource | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Starting configuration, defaults when omitted
            price_source: Price provider shared by every recomputation
            logger: Logger instance
        """
        self.config: FlywheelConfig = config or FlywheelConfig()
        self.price_source = price_source
        self.logger: logging.Logger = logger or logging.getLogger(__name__)
        self.state: PortfolioState | None = None
        self.last_error: str | None = None
        self._lock = threading.Lock()

    @property
    def allocations(self) -> list[Allocation]:
        """Current allocations."""
        return list(self.config.portfolio.allocations)

    def run_backtest(self, now: datetime | date | pd.Timestamp | None = None) -> PortfolioState | None:
        """Recompute the whole portfolio state from the current configuration.

        Any failure of the computation is logged and kept in ``last_error``;
        the previous state is dropped rather than partially updated.

        Returns:
            The new state, or None when the computation failed
        """
        with self._lock:
            config = self.config
            self.logger.info(
                f"Running backtest for {len(config.portfolio.allocations)} allocations, "
                f"start value {format_currency(config.portfolio.start_value)}"
            )
            try:
                state = compute_portfolio_state(
                    config, price_source=self.price_source, now=now, logger=self.logger
                )
            except Exception as e:
                self.logger.exception(f"Backtest failed: {e}")
                self.state = None
                self.last_error = str(e) or type(e).__name__
                return None

            self.state = state
            self.last_error = None
            self.logger.info(
                f"Backtest complete: {len(state.backtest_series)} months, "
                f"{len(state.forecast_series)} forecast months"
            )
            return state

    def set_allocations(
        self,
        allocations: Iterable[Allocation],
        now: datetime | date | pd.Timestamp | None = None,
    ) -> PortfolioState | None:
        """Replace the allocation list wholesale and recompute."""
        portfolio = self.config.portfolio.with_allocations(allocations)
        self.config = self.config.with_portfolio(portfolio)
        return self.run_backtest(now=now)

    def update_allocation(
        self,
        symbol: str,
        weight: float | None = None,
        est_yield: float | None = None,
        now: datetime | date | pd.Timestamp | None = None,
    ) -> PortfolioState | None:
        """Edit one allocation's weight and/or yield and recompute.

        Raises:
            KeyError: If no allocation has the given symbol
        """
        portfolio = self.config.portfolio.with_allocation_update(
            symbol, weight=weight, est_yield=est_yield
        )
        self.config = self.config.with_portfolio(portfolio)
        return self.run_backtest(now=now)

    @property
    def backtest_series(self) -> pd.Series:
        """Current backtest value series (empty before a successful run)."""
        if self.state is None:
            return pd.Series(dtype=float, index=pd.DatetimeIndex([]), name="value")
        return self.state.backtest_series

    @property
    def forecast_series(self) -> pd.Series:
        """Current forecast series; empty means no projection is available."""
        if self.state is None:
            return pd.Series(dtype=float, index=pd.DatetimeIndex([]), name="forecast")
        return self.state.forecast_series

    @property
    def estimated_annual_income(self) -> float:
        """Estimated yearly income of the current allocations on the start value."""
        portfolio = self.config.portfolio
        return estimated_annual_income(portfolio.allocations, portfolio.start_value)

    def summary(self) -> dict[str, Any]:
        """Headline figures of the current configuration and state."""
        portfolio = self.config.portfolio
        backtest = self.backtest_series
        income = self.estimated_annual_income
        meets_target = income >= portfolio.target_annual_income

        cagr = None
        if not backtest.empty:
            try:
                cagr = trailing_cagr(backtest, years=portfolio.projection_years)
            except ValueError as e:
                self.logger.warning(f"Trailing CAGR unavailable: {e}")

        return {
            'portfolio_value': float(backtest.iloc[-1]) if not backtest.empty else portfolio.start_value,
            'start_value': portfolio.start_value,
            'estimated_yield': estimated_yield(portfolio.allocations),
            'estimated_annual_income': income,
            'target_annual_income': portfolio.target_annual_income,
            'meets_target': meets_target,
            'target_status': "Meets target" if meets_target else "Below target",
            'total_weight': total_weight(portfolio.allocations),
            'backtest_months': len(backtest),
            'forecast_months': len(self.forecast_series),
            'trailing_cagr': cagr,
            'failed_symbols': list(self.state.failed_symbols) if self.state else [],
            'error': self.last_error,
        }

    def generate_report(self) -> str:
        """Generate a plain-text summary and allocation table.

        Returns:
            Formatted report
        """
        portfolio = self.config.portfolio
        summary = self.summary()

        report = []
        report.append("=" * 100)
        report.append("INCOME FLYWHEEL PORTFOLIO")
        report.append("=" * 100)

        if self.last_error:
            report.append(f"\nError: {self.last_error}")

        report.append("\nSUMMARY:")
        report.append(f"Portfolio Value:        {format_currency(summary['portfolio_value'])}")
        report.append(f"Est. Yield:             {format_percentage(summary['estimated_yield'])}")
        report.append(f"Est. Annual Income:     {format_currency(summary['estimated_annual_income'])}")
        report.append(f"Target Income:          {format_currency(summary['target_annual_income'])}")
        report.append(f"Target Status:          {summary['target_status']}")
        report.append(f"Backtest Months:        {summary['backtest_months']}")
        backtest = self.backtest_series
        if not backtest.empty:
            report.append(
                f"Backtest Period:        {format_month_label(backtest.index[0])} - "
                f"{format_month_label(backtest.index[-1])}"
            )
        if summary['trailing_cagr'] is not None:
            report.append(
                f"Trailing {portfolio.projection_years}y CAGR:     "
                f"{format_percentage(summary['trailing_cagr'])}"
            )
        forecast = self.forecast_series
        if not forecast.empty:
            report.append(
                f"Forecast ({portfolio.projection_years}y):          {format_currency(float(forecast.iloc[-1]))}"
            )
        else:
            report.append("Forecast:               no projection available")
        if summary['failed_symbols']:
            report.append(f"Failed Symbols:         {', '.join(summary['failed_symbols'])}")

        report.append("\nALLOCATIONS:")
        report.append(
            f"{'Ticker':<16}{'Name':<42}{'Weight %':>10}{'Yield %':>10}{'Allocation $':>14}{'Income $':>12}"
        )
        table = allocation_breakdown(portfolio.allocations, portfolio.start_value)
        for row in table.itertuples(index=False):
            ticker = row.symbol if not row.proxy_symbol else f"{row.symbol} ({row.proxy_symbol})"
            report.append(
                f"{ticker:<16}{row.name[:40]:<42}{format_percentage(row.weight, 1):>10}"
                f"{format_percentage(row.est_yield):>10}{format_currency(row.allocation):>14}"
                f"{format_currency(row.income):>12}"
            )
        report.append(
            f"{'Total':<58}{format_percentage(summary['total_weight'], 1):>10}"
            f"{format_percentage(summary['estimated_yield']):>10}"
            f"{format_currency(portfolio.start_value):>14}"
            f"{format_currency(summary['estimated_annual_income']):>12}"
        )

        report.append("\n" + DISCLOSURE)
        report.append("=" * 100)

        return "\n".join(report)

    def plot_results(self, save_path: str | None = None, show_plot: bool = True) -> None:
        """Plot the backtest value series and the dashed forecast tail.

        Args:
            save_path: Path to save the plot
            show_plot: Whether to display the plot
        """
        backtest = self.backtest_series
        if backtest.empty:
            self.logger.warning("No backtest results available. Run backtest first.")
            return

        portfolio = self.config.portfolio
        fig, ax = plt.subplots(figsize=(12, 6))
        fig.suptitle(f'Backtest and {portfolio.projection_years}y Projection', fontsize=14)

        ax.plot(backtest.index, backtest.values, label='Backtest Value', color='#0284c7', linewidth=2)

        forecast = self.forecast_series
        if not forecast.empty:
            # Start the forecast line at the last backtest point
            tail = pd.concat([backtest.iloc[-1:], forecast])
            ax.plot(
                tail.index,
                tail.values,
                label=f'Forecast ({portfolio.projection_years}y)',
                color='#16a34a',
                linestyle='--',
                linewidth=2,
            )

        ax.yaxis.set_major_formatter(FuncFormatter(lambda v, _: format_currency(v)))
        ax.xaxis.set_major_formatter(FuncFormatter(lambda v, _: format_month_label(mdates.num2date(v))))
        ax.set_ylabel('Portfolio Value ($)')
        ax.legend(loc='upper left')
        ax.grid(True, alpha=0.3)
        fig.autofmt_xdate()
        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=150, bbox_inches='tight')
            self.logger.info(f"Performance plot saved to {save_path}")

        if show_plot:
            plt.show()
        else:
            plt.close(fig)
