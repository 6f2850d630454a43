"""Portfolio layer: series blending, return aggregation and projection."""

from .aggregation import (
    allocation_breakdown,
    estimated_annual_income,
    estimated_yield,
    total_weight,
    weighted_portfolio_returns,
)
from .projection import monthly_rate, project_forward, trailing_cagr
from .series import (
    blend_with_proxy,
    month_range,
    months_ending_at,
    normalize_now,
    series_from_returns,
    to_monthly_returns,
)

__all__ = [
    'allocation_breakdown',
    'blend_with_proxy',
    'estimated_annual_income',
    'estimated_yield',
    'month_range',
    'monthly_rate',
    'months_ending_at',
    'normalize_now',
    'project_forward',
    'series_from_returns',
    'to_monthly_returns',
    'total_weight',
    'trailing_cagr',
    'weighted_portfolio_returns',
]
