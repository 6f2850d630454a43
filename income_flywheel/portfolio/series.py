"""Price and value series transforms.

Splicing a short-history instrument onto a proxy, turning prices into
monthly returns, and compounding returns back into a dated value series.
All series are float ``pd.Series`` indexed by an ascending DatetimeIndex.
"""

from collections.abc import Sequence
from datetime import date, datetime

import numpy as np
import pandas as pd


def blend_with_proxy(primary: pd.Series, proxy: pd.Series) -> pd.Series:
    """Extend ``primary`` backwards with the part of ``proxy`` that precedes it.

    The proxy history is rescaled so its last pre-primary value meets the
    first primary value, keeping the splice continuous. Only proxy dates
    strictly earlier than the first primary date are used.

    Args:
        primary: Price series of the instrument itself
        proxy: Longer price series of a correlated instrument

    Returns:
        Blended price series named after ``primary``
    """
    if primary.empty:
        return proxy

    primary_start = primary.index[0]
    proxy_before = proxy[proxy.index < primary_start]
    if proxy_before.empty:
        return primary

    scale = primary.iloc[0] / proxy_before.iloc[-1]
    blended = pd.concat([proxy_before * scale, primary])
    blended.name = primary.name
    return blended


def to_monthly_returns(series: pd.Series) -> pd.Series:
    """Convert a price series to fractional period returns.

    ``returns[i-1] = series[i] / series[i-1] - 1``, indexed by the later
    date of each pair.

    Raises:
        ValueError: If any price is zero, negative or not finite
    """
    values = series.to_numpy(dtype=float)
    if not np.isfinite(values).all():
        raise ValueError(f"Price series {series.name!r} contains non-finite values")
    if (values <= 0).any():
        raise ValueError(f"Price series {series.name!r} contains non-positive prices")

    if len(values) < 2:
        return pd.Series(dtype=float, index=series.index[:0], name=series.name)

    returns = values[1:] / values[:-1] - 1
    return pd.Series(returns, index=series.index[1:], name=series.name)


def month_range(anchor: datetime | date | pd.Timestamp, periods: int) -> pd.DatetimeIndex:
    """Dates ``anchor + 1 month`` through ``anchor + periods months``.

    Month steps use calendar offsets, so a day that does not exist in the
    target month is clamped to that month's last day.
    """
    anchor = pd.Timestamp(anchor)
    return pd.DatetimeIndex([anchor + pd.DateOffset(months=i) for i in range(1, periods + 1)])


def months_ending_at(end: datetime | date | pd.Timestamp, periods: int) -> pd.DatetimeIndex:
    """``periods`` monthly dates whose last entry is ``end`` itself."""
    end = pd.Timestamp(end)
    return pd.DatetimeIndex([end - pd.DateOffset(months=k) for k in range(periods - 1, -1, -1)])


def normalize_now(now: datetime | date | pd.Timestamp | None = None) -> pd.Timestamp:
    """Return ``now`` (today when omitted) as a tz-naive midnight timestamp."""
    stamp = pd.Timestamp.now() if now is None else pd.Timestamp(now)
    if stamp.tzinfo is not None:
        stamp = stamp.tz_localize(None)
    return stamp.normalize()


def series_from_returns(
    start_value: float,
    monthly_returns: Sequence[float] | pd.Series,
    now: datetime | date | pd.Timestamp | None = None,
) -> pd.Series:
    """Compound ``start_value`` through ``monthly_returns``.

    The series ends at ``now``: point i (1-based) is dated
    ``now - (n - i) months`` and holds ``start_value * prod(1 + r[:i])``.
    The starting point itself (``now - n months``) is not emitted, so the
    output has one point per return.

    Args:
        start_value: Capital at the start of the first period
        monthly_returns: Fractional returns, oldest first
        now: Date of the last point, today when omitted

    Returns:
        Value series with one point per return
    """
    returns = np.asarray(monthly_returns, dtype=float)
    n = len(returns)
    now = normalize_now(now)

    values = start_value * np.cumprod(1 + returns)
    return pd.Series(values, index=months_ending_at(now, n), name="value", dtype=float)
