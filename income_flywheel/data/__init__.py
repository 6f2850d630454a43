"""Data layer for monthly price retrieval."""

from .data_retrieval import (
    BasePriceSource,
    DataRetrieval,
    FetchResult,
    PriceFetchError,
    YahooPriceSource,
    empty_price_series,
)

__all__ = [
    'BasePriceSource',
    'DataRetrieval',
    'FetchResult',
    'PriceFetchError',
    'YahooPriceSource',
    'empty_price_series',
]
