"""
Display formatting helpers for money, percentages and chart labels.
"""

from datetime import datetime

import pandas as pd


class FormatUtils:
    """Utility class for formatting report and chart values."""

    def currency(self, value: float, symbol: str = "$", decimals: int = 0) -> str:
        """Format a value as money, e.g. ``$2,500,000``."""
        sign = "-" if value < 0 else ""
        return f"{sign}{symbol}{abs(value):,.{decimals}f}"

    def percentage(self, value: float, decimals: int = 2) -> str:
        """Format a fraction as a percentage, e.g. 0.0425 -> ``4.25%``."""
        return f"{value * 100:.{decimals}f}%"

    def month_label(self, value: datetime | pd.Timestamp) -> str:
        """Format a date as a chart label, e.g. ``Jan 2024``."""
        return pd.Timestamp(value).strftime("%b %Y")


_formatter = FormatUtils()


def format_currency(value: float, symbol: str = "$", decimals: int = 0) -> str:
    """Format currency value."""
    return _formatter.currency(value, symbol=symbol, decimals=decimals)


def format_percentage(value: float, decimals: int = 2) -> str:
    """Format a fraction as a percentage."""
    return _formatter.percentage(value, decimals=decimals)


def format_month_label(value: datetime | pd.Timestamp) -> str:
    """Format a date as ``Mon YYYY``."""
    return _formatter.month_label(value)
