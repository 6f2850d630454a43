"""
Pytest configuration and shared fixtures for the income flywheel test suite.

This module provides pytest configuration, fixtures, and shared test utilities
that are used across all test modules.
"""

import os
import sys
import threading

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

# Add the parent directory to the path to import income_flywheel modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from income_flywheel.core.logger import FlywheelLogger
from income_flywheel.data.data_retrieval import BasePriceSource, PriceFetchError


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


def make_monthly_series(values, start="2015-01-01", name=None) -> pd.Series:
    """Build a month-start price series from a list of values."""
    dates = pd.date_range(start=start, periods=len(values), freq="MS")
    return pd.Series(np.asarray(values, dtype=float), index=dates, name=name)


class FakePriceSource(BasePriceSource):
    """In-memory price source; symbols listed in ``failures`` raise."""

    def __init__(self, series_by_symbol=None, failures=None):
        self.series_by_symbol = dict(series_by_symbol or {})
        self.failures = dict(failures or {})
        self.calls = []
        self._lock = threading.Lock()

    def fetch(self, symbol, range_hint=None):
        with self._lock:
            self.calls.append((symbol, range_hint))
        if symbol in self.failures:
            raise self.failures[symbol]
        if symbol not in self.series_by_symbol:
            raise PriceFetchError(f"Failed to fetch {symbol}")
        return self.series_by_symbol[symbol].copy()


@pytest.fixture(autouse=True)
def reset_loggers():
    """Drop handlers installed by a test so they do not leak into the next one."""
    yield
    FlywheelLogger.reset()


@pytest.fixture
def now() -> pd.Timestamp:
    """Fixed valuation date."""
    return pd.Timestamp("2025-06-15")


@pytest.fixture
def monthly_series():
    """Factory for month-start price series."""
    return make_monthly_series


@pytest.fixture
def fake_source_factory():
    """Factory for in-memory price sources."""
    return FakePriceSource


@pytest.fixture(scope="session")
def ten_year_prices():
    """Reproducible ten years of monthly prices for a few tickers."""
    np.random.seed(42)  # For reproducible tests
    prices = {}
    for symbol, drift in [("SPY", 0.008), ("QQQ", 0.011), ("SCHD", 0.007), ("TLT", 0.001)]:
        returns = np.random.normal(drift, 0.04, 120)
        prices[symbol] = make_monthly_series(100 * np.cumprod(1 + returns), name=symbol)
    return prices
