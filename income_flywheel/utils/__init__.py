"""
Utility functions and helper classes for the income flywheel.

This module provides helpers for price series cleaning and validation and
for formatting report values.
"""

from .data_utils import DataUtils
from .format_utils import FormatUtils

# Import standalone functions
from .format_utils import format_currency, format_month_label, format_percentage

__all__ = [
    'DataUtils', 'FormatUtils',
    'format_currency', 'format_percentage', 'format_month_label',
]
