"""
Tests for FormatUtils class.
"""

import pandas as pd

from income_flywheel.utils.format_utils import (
    FormatUtils,
    format_currency,
    format_month_label,
    format_percentage,
)


class TestFormatUtils:
    """Test suite for FormatUtils class."""

    def test_currency_formatting(self):
        """Test currency formatting."""
        formatter = FormatUtils()

        assert formatter.currency(2_500_000) == "$2,500,000"
        assert formatter.currency(1234.56, decimals=2) == "$1,234.56"
        assert formatter.currency(0) == "$0"
        assert formatter.currency(-1234) == "-$1,234"
        assert formatter.currency(1234, symbol="€") == "€1,234"

    def test_percentage_formatting(self):
        """Test percentage formatting."""
        formatter = FormatUtils()

        assert formatter.percentage(0.0425) == "4.25%"
        assert formatter.percentage(0.9, decimals=1) == "90.0%"
        assert formatter.percentage(0) == "0.00%"
        assert formatter.percentage(-0.1234) == "-12.34%"

    def test_month_label(self):
        """Chart labels show abbreviated month and year."""
        assert FormatUtils().month_label(pd.Timestamp("2024-01-31")) == "Jan 2024"

    def test_standalone_functions(self):
        """Module-level helpers match the class."""
        assert format_currency(120_000) == "$120,000"
        assert format_percentage(0.08) == "8.00%"
        assert format_month_label(pd.Timestamp("2025-06-15")) == "Jun 2025"
