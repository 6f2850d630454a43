"""
Price series cleaning and validation utilities.
"""

import numpy as np
import pandas as pd
from typing import List, Tuple


class DataUtils:
    """Utility class for price series processing and validation."""

    def clean_price_series(self, series: pd.Series) -> pd.Series:
        """Normalize a raw vendor price series.

        Drops missing values (no gap filling), converts the index to
        tz-naive timestamps, sorts ascending and keeps the last value of
        any repeated date.

        Args:
            series: Raw price series indexed by timestamp

        Returns:
            Cleaned float series
        """
        cleaned = pd.to_numeric(series, errors='coerce').astype(float).dropna()
        index = pd.DatetimeIndex(cleaned.index)
        if index.tz is not None:
            index = index.tz_localize(None)
        cleaned.index = index
        cleaned = cleaned.sort_index(kind='mergesort')
        cleaned = cleaned[~cleaned.index.duplicated(keep='last')]
        return cleaned

    def validate_price_series(self, series: pd.Series) -> Tuple[bool, List[str]]:
        """Validate a price series for use in the return pipeline.

        Args:
            series: Price series indexed by date

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        errors = []

        if not isinstance(series.index, pd.DatetimeIndex):
            errors.append("Index is not a DatetimeIndex")
        else:
            if series.index.has_duplicates:
                errors.append(f"Found {int(series.index.duplicated().sum())} duplicated dates")
            if not series.index.is_monotonic_increasing:
                errors.append("Dates are not in ascending order")

        values = series.to_numpy(dtype=float)
        if np.isnan(values).any():
            errors.append(f"Found {int(np.isnan(values).sum())} missing values")
        if np.isinf(values).any():
            errors.append("Infinite values found")
        if (values[~np.isnan(values)] <= 0).any():
            errors.append("Non-positive prices found")

        return len(errors) == 0, errors
