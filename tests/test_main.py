"""
Tests for the command line entry point.

Yahoo Finance is patched out; every run goes through ``main`` the way the
console script calls it.
"""

import argparse
import json
from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest

from income_flywheel.main import build_config, build_parser, main, parse_percent_assignment


def fake_download(symbol, **kwargs):
    """Six years of steadily rising adjusted closes for any symbol."""
    dates = pd.date_range('2019-01-01', periods=72, freq='MS')
    columns = pd.MultiIndex.from_product([['Adj Close'], [symbol]], names=['Price', 'Ticker'])
    values = 100.0 * 1.004 ** np.arange(72)
    return pd.DataFrame(values.reshape(-1, 1), index=dates, columns=columns)


class TestParsePercentAssignment:
    """Test the SYMBOL=PCT argument type."""

    def test_valid(self) -> None:
        assert parse_percent_assignment("schd=25") == ("SCHD", pytest.approx(0.25))
        assert parse_percent_assignment(" JEPI = 7.5") == ("JEPI", pytest.approx(0.075))

    @pytest.mark.parametrize("value", ["SCHD", "=25", "SCHD=abc"])
    def test_invalid(self, value) -> None:
        with pytest.raises(argparse.ArgumentTypeError):
            parse_percent_assignment(value)


class TestBuildConfig:
    """Test turning arguments into a configuration."""

    def test_defaults(self) -> None:
        config = build_config(build_parser().parse_args([]))

        assert config.portfolio.start_value == 2_500_000
        assert config.portfolio.target_annual_income == 120_000
        assert len(config.portfolio.allocations) == 9
        assert config.data.range == "10y"
        assert config.data.max_retries == 0

    def test_overrides(self) -> None:
        args = build_parser().parse_args([
            "--start-value", "1000000",
            "--target-income", "50000",
            "--weight", "VTI=20",
            "--yield", "SCHD=4",
            "--range", "5y",
            "--retries", "2",
            "--log-level", "debug",
        ])

        config = build_config(args)
        by_symbol = {a.symbol: a for a in config.portfolio.allocations}

        assert config.portfolio.start_value == 1_000_000
        assert config.portfolio.target_annual_income == 50_000
        assert by_symbol["VTI"].weight == pytest.approx(0.20)
        assert by_symbol["SCHD"].est_yield == pytest.approx(0.04)
        assert config.data.range == "5y"
        assert config.data.max_retries == 2
        assert config.logging.level == "DEBUG"

    def test_unknown_symbol_exits(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--weight", "XYZ=10"])

        assert exc_info.value.code == 2
        assert "XYZ" in capsys.readouterr().err


class TestMain:
    """Test full command line runs."""

    def test_offline_run_reports_failures(self, capsys) -> None:
        """A total outage still prints a summary and exits cleanly."""
        with patch(
            'income_flywheel.data.data_retrieval.yf.download', side_effect=ConnectionError('offline')
        ):
            code = main(["--json", "--log-level", "CRITICAL"])

        summary = json.loads(capsys.readouterr().out)
        assert code == 0
        assert len(summary["failed_symbols"]) == 11
        assert summary["backtest_months"] == 0
        assert summary["estimated_annual_income"] == pytest.approx(123_125)
        assert summary["target_status"] == "Meets target"

    def test_report_output(self, capsys) -> None:
        with patch('income_flywheel.data.data_retrieval.yf.download', side_effect=fake_download):
            code = main(["--log-level", "CRITICAL"])

        out = capsys.readouterr().out
        assert code == 0
        assert "INCOME FLYWHEEL PORTFOLIO" in out
        assert "Backtest Months:        71" in out
        assert "JEPQ (QQQ)" in out
        assert "Disclosure" in out

    def test_save_plot(self, tmp_path, capsys) -> None:
        path = tmp_path / "flywheel.png"

        with patch('income_flywheel.data.data_retrieval.yf.download', side_effect=fake_download):
            code = main(["--json", "--log-level", "CRITICAL", "--save-plot", str(path)])

        summary = json.loads(capsys.readouterr().out)
        assert code == 0
        assert summary["forecast_months"] == 60
        assert path.exists()

    def test_log_file(self, tmp_path, capsys) -> None:
        log_path = tmp_path / "logs" / "flywheel.log"

        with patch('income_flywheel.data.data_retrieval.yf.download', side_effect=fake_download):
            main(["--json", "--log-level", "INFO", "--log-file", str(log_path)])

        capsys.readouterr()
        assert "Starting income flywheel backtest" in log_path.read_text()
