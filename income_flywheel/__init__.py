"""Income Flywheel portfolio backtester.

This package backtests a fixed-weight multi-asset income portfolio from
monthly adjusted-close history, splicing short-history funds onto proxy
histories, and projects its value forward from the trailing CAGR.
"""

# Core exports
from income_flywheel.core.backtest_engine import IncomeBacktestEngine, compute_portfolio_state
from income_flywheel.core.config import Allocation, FlywheelConfig, PortfolioConfig
from income_flywheel.data.data_retrieval import YahooPriceSource

__version__ = "0.1.0"
__all__ = [
    "Allocation",
    "FlywheelConfig",
    "IncomeBacktestEngine",
    "PortfolioConfig",
    "YahooPriceSource",
    "compute_portfolio_state",
]
