"""Core layer for the backtest engine, configuration, and logging."""

from income_flywheel.core.config import (
    DEFAULT_ALLOCATIONS,
    Allocation,
    DataRetrievalConfig,
    FlywheelConfig,
    LoggingConfig,
    PortfolioConfig,
)
from income_flywheel.core.logger import configure_logging, get_flywheel_logger
from income_flywheel.core.backtest_engine import (
    IncomeBacktestEngine,
    PortfolioState,
    compute_portfolio_state,
)

__all__ = [
    'Allocation',
    'DEFAULT_ALLOCATIONS',
    'DataRetrievalConfig',
    'FlywheelConfig',
    'IncomeBacktestEngine',
    'LoggingConfig',
    'PortfolioConfig',
    'PortfolioState',
    'compute_portfolio_state',
    'configure_logging',
    'get_flywheel_logger',
]
