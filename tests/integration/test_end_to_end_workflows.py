"""End-to-End Workflow Integration Tests for the income flywheel.

These tests drive the full pipeline, from the price source through the
engine, with Yahoo Finance replaced by an in-memory source or a patched
download.
"""

from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest

from income_flywheel.core.backtest_engine import IncomeBacktestEngine
from income_flywheel.core.config import (
    DEFAULT_ALLOCATIONS,
    Allocation,
    FlywheelConfig,
    PortfolioConfig,
)
from income_flywheel.portfolio.series import series_from_returns, to_monthly_returns


@pytest.mark.integration
class TestDefaultPortfolioWorkflow:
    """Run the shipped nine-fund portfolio end to end."""

    @pytest.fixture
    def default_prices(self, monthly_series):
        """Ten years for established funds, short histories for JEPI and JEPQ."""
        np.random.seed(3)
        prices = {}
        for allocation in DEFAULT_ALLOCATIONS:
            returns = np.random.normal(0.006, 0.03, 120)
            prices[allocation.symbol] = monthly_series(
                100 * np.cumprod(1 + returns), start="2015-07-01", name=allocation.symbol
            )
        prices["JEPI"] = prices["JEPI"].iloc[-60:]
        prices["JEPQ"] = prices["JEPQ"].iloc[-30:]
        for proxy in ("SPY", "QQQ"):
            returns = np.random.normal(0.008, 0.04, 120)
            prices[proxy] = monthly_series(100 * np.cumprod(1 + returns), start="2015-07-01", name=proxy)
        return prices

    def test_default_portfolio(self, default_prices, fake_source_factory, now) -> None:
        """Proxies fill the short histories so the full ten years are used."""
        engine = IncomeBacktestEngine(FlywheelConfig(), price_source=fake_source_factory(default_prices))

        state = engine.run_backtest(now=now)

        assert state is not None
        assert len(state.fetch_results) == 11
        assert len(state.blended_series["JEPI"]) == 120
        assert len(state.blended_series["JEPQ"]) == 120
        assert len(engine.backtest_series) == 119
        assert len(engine.forecast_series) == 60
        assert engine.estimated_annual_income == pytest.approx(123_125)
        assert engine.summary()["target_status"] == "Meets target"
        assert engine.summary()["trailing_cagr"] is not None

    def test_weight_edit_flow(self, default_prices, fake_source_factory, now) -> None:
        """Raising a weight past 100% changes the backtest and income."""
        engine = IncomeBacktestEngine(FlywheelConfig(), price_source=fake_source_factory(default_prices))
        engine.run_backtest(now=now)
        before_value = engine.backtest_series.iloc[-1]
        before_income = engine.estimated_annual_income

        engine.update_allocation("VTI", weight=0.20, now=now)

        assert engine.summary()["total_weight"] == pytest.approx(1.1)
        assert engine.estimated_annual_income == pytest.approx(before_income + 0.10 * 0.015 * 2_500_000)
        assert engine.backtest_series.iloc[-1] != before_value

    def test_missing_proxy_data_shortens_history(self, default_prices, fake_source_factory, now) -> None:
        """Without QQQ the portfolio history shrinks to JEPQ's own."""
        prices = dict(default_prices)
        del prices["QQQ"]
        engine = IncomeBacktestEngine(FlywheelConfig(), price_source=fake_source_factory(prices))

        engine.run_backtest(now=now)

        assert engine.summary()["failed_symbols"] == ["QQQ"]
        assert len(engine.backtest_series) == 29
        assert engine.forecast_series.empty
        assert engine.last_error is None


@pytest.mark.integration
class TestManualCompounding:
    """Check the pipeline against hand-computed numbers."""

    def test_two_symbol_scenario(self, monthly_series, fake_source_factory, now) -> None:
        """Weights 0.6/0.4 over 36 known prices compound as expected."""
        a = [100.0 + i for i in range(36)]
        b = [200.0 - i for i in range(36)]
        source = fake_source_factory({
            "AAA": monthly_series(a, name="AAA"),
            "BBB": monthly_series(b, name="BBB"),
        })
        config = FlywheelConfig(portfolio=PortfolioConfig(
            allocations=(Allocation(symbol="AAA", weight=0.6), Allocation(symbol="BBB", weight=0.4)),
            start_value=10_000.0,
        ))

        state = IncomeBacktestEngine(config, price_source=source).run_backtest(now=now)

        value = 10_000.0
        for i in range(1, 36):
            r = 0.6 * (a[i] / a[i - 1] - 1) + 0.4 * (b[i] / b[i - 1] - 1)
            value *= 1 + r
        assert len(state.backtest_series) == 35
        assert state.backtest_series.iloc[-1] == pytest.approx(value, rel=1e-12)

    def test_single_fund_round_trip(self, monthly_series, now) -> None:
        """A 100% weight backtest retraces the fund's own prices."""
        prices = monthly_series([50.0, 55.0, 52.0, 60.0, 61.5])

        rebuilt = series_from_returns(50.0, to_monthly_returns(prices), now=now)

        np.testing.assert_allclose(rebuilt.to_numpy(), prices.to_numpy()[1:])


@pytest.mark.integration
class TestYahooWorkflow:
    """Run the engine with the real source and a patched download."""

    def test_vendor_outage(self, now) -> None:
        """Every fetch failing yields empty results, not an error."""
        with patch(
            'income_flywheel.data.data_retrieval.yf.download', side_effect=ConnectionError('offline')
        ):
            engine = IncomeBacktestEngine(FlywheelConfig())
            engine.run_backtest(now=now)

        assert engine.last_error is None
        assert engine.backtest_series.empty
        assert len(engine.summary()["failed_symbols"]) == 11
        assert engine.summary()["portfolio_value"] == 2_500_000

    def test_patched_download(self, now) -> None:
        """Adjusted closes flow from the download into the backtest."""
        dates = pd.date_range('2020-01-01', periods=72, freq='MS')

        def fake_download(symbol, **kwargs):
            columns = pd.MultiIndex.from_product([['Adj Close'], [symbol]], names=['Price', 'Ticker'])
            values = 100.0 * 1.005 ** np.arange(72)
            return pd.DataFrame(values.reshape(-1, 1), index=dates, columns=columns)

        config = FlywheelConfig(portfolio=PortfolioConfig(
            allocations=(Allocation(symbol="SPY", weight=1.0),), start_value=1_000.0
        ))
        with patch('income_flywheel.data.data_retrieval.yf.download', side_effect=fake_download):
            engine = IncomeBacktestEngine(config)
            engine.run_backtest(now=now)

        assert len(engine.backtest_series) == 71
        assert engine.backtest_series.iloc[-1] == pytest.approx(1_000.0 * 1.005 ** 71)
        assert len(engine.forecast_series) == 60
        assert engine.summary()["trailing_cagr"] == pytest.approx(1.005 ** (59 / 5) - 1)
