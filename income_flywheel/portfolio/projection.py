"""Forward projection from the trailing compound annual growth rate.

The forecast is a plain trend extrapolation: the trailing CAGR converted
to a constant monthly rate and compounded forward. No variance band or
confidence interval is produced.
"""

from datetime import date, datetime

import pandas as pd

from income_flywheel.portfolio.series import month_range, normalize_now

MONTHS_PER_YEAR = 12


def trailing_cagr(value_series: pd.Series, years: int = 5) -> float | None:
    """Annualized growth over the last ``years * 12`` points.

    Args:
        value_series: Monthly value series, oldest first
        years: Length of the trailing window in years

    Returns:
        The CAGR as a fraction, or None when the series is shorter than
        the window

    Raises:
        ValueError: If either end of the window is not positive
    """
    window = years * MONTHS_PER_YEAR
    if len(value_series) < window:
        return None

    first = float(value_series.iloc[-window])
    last = float(value_series.iloc[-1])
    if first <= 0 or last <= 0:
        raise ValueError("CAGR needs positive start and end values")

    return (last / first) ** (1 / years) - 1


def monthly_rate(annual_rate: float) -> float:
    """Monthly rate that compounds to ``annual_rate`` over a year."""
    return (1 + annual_rate) ** (1 / MONTHS_PER_YEAR) - 1


def project_forward(
    value_series: pd.Series,
    now: datetime | date | pd.Timestamp | None = None,
    years: int = 5,
) -> pd.Series:
    """Extrapolate ``value_series`` ``years`` years ahead at its trailing CAGR.

    Needs at least ``years * 12`` points of history, otherwise an empty
    series is returned (no projection available). The output has
    ``years * 12`` points dated one calendar month apart after ``now``,
    starting one month of growth past the last historical value.
    """
    cagr = trailing_cagr(value_series, years=years)
    if cagr is None:
        return pd.Series(dtype=float, index=pd.DatetimeIndex([]), name="forecast")

    rate = monthly_rate(cagr)
    last = float(value_series.iloc[-1])
    periods = years * MONTHS_PER_YEAR

    values = [last * (1 + rate) ** k for k in range(1, periods + 1)]
    return pd.Series(values, index=month_range(normalize_now(now), periods), name="forecast")
