"""Price retrieval classes for loading monthly adjusted-close history."""

import logging
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Iterable

import pandas as pd
import yfinance as yf

from income_flywheel.core.config import DataRetrievalConfig
from income_flywheel.utils.data_utils import DataUtils


class PriceFetchError(RuntimeError):
    """Raised when a price source cannot produce a series for a symbol."""


def empty_price_series(symbol: str | None = None) -> pd.Series:
    """Return an empty float series with a DatetimeIndex."""
    return pd.Series(dtype=float, index=pd.DatetimeIndex([]), name=symbol)


@dataclass(frozen=True)
class FetchResult:
    """Outcome of fetching one symbol.

    A failed fetch carries an empty series and the reason it failed, so the
    pipeline can keep going while callers can still see what went wrong.
    """

    symbol: str
    series: pd.Series = field(default_factory=empty_price_series)
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the fetch succeeded."""
        return self.error is None


class BasePriceSource(ABC):
    """Interface of a monthly price provider."""

    default_range: str = "10y"

    @abstractmethod
    def fetch(self, symbol: str, range_hint: str | None = None) -> pd.Series:
        """Return ascending monthly prices for ``symbol``.

        Raises:
            PriceFetchError: If the provider fails or returns unusable data
        """


class YahooPriceSource(BasePriceSource):
    """Yahoo Finance monthly adjusted-close source backed by yfinance."""

    interval = "1mo"

    def __init__(
        self,
        timeout: float = 10.0,
        default_range: str = "10y",
        data_utils: DataUtils | None = None,
    ) -> None:
        """Initialize the source.

        Parameters
        ----------
        timeout : float, optional
            Network timeout in seconds for each request, by default 10.0
        default_range : str, optional
            Lookback used when ``fetch`` gets no range hint, by default "10y"
        data_utils : DataUtils, optional
            Cleaning helper, a fresh one by default
        """
        self.timeout = timeout
        self.default_range = default_range
        self.data_utils = data_utils or DataUtils()

    def fetch(self, symbol: str, range_hint: str | None = None) -> pd.Series:
        """Download monthly adjusted closes for one symbol.

        Parameters
        ----------
        symbol : str
            Ticker symbol
        range_hint : str, optional
            Lookback range such as "10y"; the source default when omitted

        Returns:
        -------
        pd.Series
            Adjusted close prices, ascending, with missing months dropped

        Raises:
        ------
        PriceFetchError
            If the download fails or the payload has no usable prices
        """
        period = range_hint or self.default_range
        try:
            data = yf.download(
                symbol,
                period=period,
                interval=self.interval,
                auto_adjust=False,
                actions=False,
                progress=False,
                threads=False,
                timeout=self.timeout,
            )
        except Exception as e:
            raise PriceFetchError(f"Failed to fetch {symbol}: {e}") from e

        if data is None or data.empty:
            raise PriceFetchError(f"Failed to fetch {symbol}: empty response")

        prices = self._extract_price_column(data, symbol)
        series = self.data_utils.clean_price_series(prices)
        series.name = symbol
        if series.empty:
            raise PriceFetchError(f"Failed to fetch {symbol}: no non-null prices")
        return series

    @staticmethod
    def _extract_price_column(data: pd.DataFrame, symbol: str) -> pd.Series:
        """Pick the adjusted close column, falling back to close."""
        if isinstance(data.columns, pd.MultiIndex):
            try:
                data = data.xs(symbol, axis=1, level=-1)
            except KeyError:
                data = data.droplevel(-1, axis=1)

        for column in ("Adj Close", "Close"):
            if column in data.columns:
                prices = data[column]
                if isinstance(prices, pd.DataFrame):
                    prices = prices.iloc[:, 0]
                return prices

        raise PriceFetchError(f"Failed to fetch {symbol}: malformed payload, no close column")


PRICE_SOURCES: dict[str, type[YahooPriceSource]] = {
    "yahoo": YahooPriceSource,
}


class DataRetrieval:
    """Concurrent per-symbol price retrieval with per-symbol failure isolation.

    Every symbol is fetched on its own worker; a failure degrades that symbol
    to an empty series instead of aborting the batch.
    """

    def __init__(
        self,
        config: DataRetrievalConfig | None = None,
        source: BasePriceSource | None = None,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize DataRetrieval with configuration.

        Parameters
        ----------
        config : DataRetrievalConfig, optional
            Retrieval parameters, defaults when omitted
        source : BasePriceSource, optional
            Price provider, a YahooPriceSource built from the config by default
        logger : logging.Logger, optional
            Logger to report fetch outcomes on
        sleep : callable, optional
            Delay function used between retries
        """
        self.config = config or DataRetrievalConfig()
        self.source = source or self._create_price_source()
        self.logger: logging.Logger = logger or logging.getLogger(__name__)
        self.data_utils = DataUtils()
        self._sleep = sleep

    def _create_price_source(self) -> BasePriceSource:
        """Build the price source named by ``config.data_source``."""
        source_class = PRICE_SOURCES[self.config.data_source]
        return source_class(timeout=self.config.timeout, default_range=self.config.range)

    def fetch_symbol(self, symbol: str) -> pd.Series:
        """Fetch one symbol, retrying with exponential backoff if configured.

        Raises:
        ------
        PriceFetchError
            When the last attempt still fails
        """
        attempts = self.config.max_retries + 1
        for attempt in range(attempts):
            try:
                start_time = time.time()
                series = self.source.fetch(symbol, self.config.range)
                self.logger.debug(
                    f"Fetched {len(series)} points for {symbol} in {time.time() - start_time:.2f} seconds"
                )
                break
            except Exception as e:
                if attempt + 1 >= attempts:
                    if isinstance(e, PriceFetchError):
                        raise
                    raise PriceFetchError(f"Failed to fetch {symbol}: {e}") from e
                delay = self.config.retry_backoff * (2 ** attempt)
                self.logger.warning(
                    f"Fetch attempt {attempt + 1}/{attempts} for {symbol} failed: {e}; "
                    f"retrying in {delay:.1f}s"
                )
                self._sleep(delay)

        is_valid, issues = self.data_utils.validate_price_series(series)
        if not is_valid:
            self.logger.warning(f"Data quality issues for {symbol}: {'; '.join(issues)}")
        return series

    def fetch_all(self, symbols: Iterable[str]) -> dict[str, FetchResult]:
        """Fetch all symbols concurrently and wait for every one to settle.

        Parameters
        ----------
        symbols : iterable of str
            Symbols to fetch; duplicates are fetched once

        Returns:
        -------
        dict[str, FetchResult]
            One result per distinct symbol, in input order
        """
        unique_symbols = list(dict.fromkeys(symbols))
        if not unique_symbols:
            return {}

        self.logger.info(
            f"Fetching {len(unique_symbols)} symbols ({self.config.range}, {self.config.interval})"
        )
        results: dict[str, FetchResult] = {}
        workers = min(self.config.max_workers, len(unique_symbols))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_symbol = {
                executor.submit(self.fetch_symbol, symbol): symbol for symbol in unique_symbols
            }
            for future in as_completed(future_to_symbol):
                symbol = future_to_symbol[future]
                try:
                    series = future.result()
                    results[symbol] = FetchResult(symbol=symbol, series=series)
                except Exception as e:
                    self.logger.error(f"fetch error {symbol}: {e}")
                    results[symbol] = FetchResult(
                        symbol=symbol, series=empty_price_series(symbol), error=str(e)
                    )

        failed = [s for s in unique_symbols if not results[s].ok]
        if failed:
            self.logger.warning(f"{len(failed)} of {len(unique_symbols)} fetches failed: {failed}")
        return {symbol: results[symbol] for symbol in unique_symbols}

    def __str__(self) -> str:
        """String representation of the DataRetrieval object."""
        return (
            f"DataRetrieval(data_source={self.config.data_source}, "
            f"range={self.config.range}, interval={self.config.interval})"
        )
