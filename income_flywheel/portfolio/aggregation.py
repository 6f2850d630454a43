"""Weighted aggregation of per-instrument returns and income estimates."""

from collections.abc import Mapping, Sequence

import numpy as np
import pandas as pd

from income_flywheel.core.config import Allocation


def weighted_portfolio_returns(
    returns_by_symbol: Mapping[str, Sequence[float] | pd.Series],
    allocations: Sequence[Allocation],
) -> pd.Series:
    """Blend per-instrument returns into one portfolio return series.

    Series are aligned by position from their first element and the result
    is truncated to the shortest one; a symbol missing from
    ``returns_by_symbol`` has length 0 and empties the result. Weights are
    applied as given, without normalizing them to sum to 1.

    Args:
        returns_by_symbol: Return sequence per symbol, oldest first
        allocations: Portfolio instruments with weight fractions

    Returns:
        Portfolio returns indexed by period number
    """
    if not allocations:
        return pd.Series(dtype=float, name="portfolio")

    length = min(len(returns_by_symbol.get(a.symbol, ())) for a in allocations)

    result = np.zeros(length, dtype=float)
    for allocation in allocations:
        returns = np.asarray(returns_by_symbol.get(allocation.symbol, ()), dtype=float)[:length]
        result += np.nan_to_num(returns, nan=0.0) * allocation.weight

    return pd.Series(result, name="portfolio")


def total_weight(allocations: Sequence[Allocation]) -> float:
    """Sum of weight fractions; a diagnostic, not a constraint."""
    return float(sum(a.weight for a in allocations))


def estimated_yield(allocations: Sequence[Allocation]) -> float:
    """Weighted portfolio yield, ``sum(weight * est_yield)``."""
    return float(sum(a.weight * a.est_yield for a in allocations))


def estimated_annual_income(allocations: Sequence[Allocation], start_value: float) -> float:
    """Estimated yearly income on ``start_value`` at the weighted yield."""
    return estimated_yield(allocations) * start_value


def allocation_breakdown(allocations: Sequence[Allocation], start_value: float) -> pd.DataFrame:
    """Per-instrument dollar allocation and estimated income.

    Returns:
        DataFrame with columns symbol, name, proxy_symbol, weight, est_yield,
        allocation and income, one row per instrument in input order
    """
    rows = []
    for a in allocations:
        allocation_usd = a.weight * start_value
        rows.append({
            'symbol': a.symbol,
            'name': a.name,
            'proxy_symbol': a.proxy_symbol,
            'weight': a.weight,
            'est_yield': a.est_yield,
            'allocation': allocation_usd,
            'income': allocation_usd * a.est_yield,
        })
    columns = ['symbol', 'name', 'proxy_symbol', 'weight', 'est_yield', 'allocation', 'income']
    return pd.DataFrame(rows, columns=columns)
