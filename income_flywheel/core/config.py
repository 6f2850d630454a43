"""Configuration System for the Income Flywheel.

This module provides the pydantic models that describe a portfolio run:
where prices come from, which instruments are held and at what weights,
and how the run logs. Portfolio models are frozen; an edit produces a new
configuration value that the engine swaps in wholesale.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


SUPPORTED_DATA_SOURCES = ("yahoo",)


class DataRetrievalConfig(BaseModel):
    """Configuration class for price retrieval parameters using pydantic BaseModel.

    This class defines the parameters of a per-symbol price request and of
    the concurrent fan-out that issues them.
    """

    data_source: str = Field(default="yahoo", description="Price data vendor")
    range: str = Field(default="10y", description="Lookback range hint (e.g. 5y, 10y, max)")
    interval: str = Field(default="1mo", description="Sampling interval, fixed to monthly")

    # Network behaviour
    timeout: float = Field(default=10.0, description="Per-request network timeout in seconds")
    max_retries: int = Field(default=0, description="Extra attempts after a failed fetch")
    retry_backoff: float = Field(
        default=1.0, description="Base delay in seconds, doubled on every retry"
    )

    # Threading
    max_workers: int = Field(default=8, description="Number of concurrent fetch threads")

    @field_validator('data_source')
    @classmethod
    def validate_data_source(cls, v: str) -> str:
        """Validate the vendor is one a price source exists for."""
        v = v.strip().lower()
        if v not in SUPPORTED_DATA_SOURCES:
            raise ValueError(f"data_source must be one of {list(SUPPORTED_DATA_SOURCES)}")
        return v

    @field_validator('interval')
    @classmethod
    def validate_interval(cls, v: str) -> str:
        """Only monthly sampling is supported by the return pipeline."""
        if v != "1mo":
            raise ValueError("interval must be '1mo'")
        return v

    @field_validator('timeout', 'retry_backoff')
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        """Validate delays are not negative."""
        if v < 0:
            raise ValueError("Timeout and backoff must be non-negative")
        return v

    @field_validator('max_retries')
    @classmethod
    def validate_retries(cls, v: int) -> int:
        """Validate retry count is not negative."""
        if v < 0:
            raise ValueError("max_retries must be non-negative")
        return v

    @field_validator('max_workers')
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """Validate at least one worker thread."""
        if v < 1:
            raise ValueError("max_workers must be at least 1")
        return v


class Allocation(BaseModel):
    """One instrument of the portfolio.

    Weights and yields are fractions (0.15 means 15%). Weights are not
    required to sum to 1; a shortfall or excess changes effective exposure.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(description="Ticker symbol, unique within a portfolio")
    name: str = Field(default="", description="Display name")
    weight: float = Field(default=0.0, description="Weight fraction")
    proxy_symbol: str | None = Field(
        default=None, description="Longer-history symbol used to backfill history"
    )
    est_yield: float = Field(default=0.0, description="Trailing income-yield estimate")

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        """Strip and upper-case the ticker symbol."""
        v = v.strip().upper()
        if not v:
            raise ValueError("symbol must not be empty")
        return v

    @field_validator('proxy_symbol')
    @classmethod
    def validate_proxy_symbol(cls, v: str | None) -> str | None:
        """Treat blank proxy symbols as no proxy."""
        if v is None:
            return None
        v = v.strip().upper()
        return v or None


DEFAULT_ALLOCATIONS: tuple[Allocation, ...] = (
    Allocation(symbol="SCHD", name="Schwab U.S. Dividend Equity", weight=0.20, est_yield=0.035),
    Allocation(symbol="VTI", name="Vanguard Total US Market", weight=0.10, est_yield=0.015),
    Allocation(symbol="VIG", name="Vanguard Dividend Appreciation", weight=0.10, est_yield=0.020),
    Allocation(
        symbol="JEPI",
        name="JPMorgan Equity Premium Income",
        weight=0.15,
        est_yield=0.080,
        proxy_symbol="SPY",
    ),
    Allocation(
        symbol="JEPQ",
        name="JPMorgan Nasdaq Equity Premium Income",
        weight=0.10,
        est_yield=0.100,
        proxy_symbol="QQQ",
    ),
    Allocation(symbol="VNQ", name="Vanguard Real Estate", weight=0.10, est_yield=0.040),
    Allocation(
        symbol="PFF", name="iShares Preferred & Income Securities", weight=0.10, est_yield=0.060
    ),
    Allocation(
        symbol="LQD", name="iShares iBoxx $ Inv Grade Corporate Bond", weight=0.10, est_yield=0.045
    ),
    Allocation(symbol="TLT", name="iShares 20+ Year Treasury Bond", weight=0.05, est_yield=0.045),
)

START_PORTFOLIO_VALUE = 2_500_000.0
TARGET_ANNUAL_INCOME = 120_000.0


class PortfolioConfig(BaseModel):
    """Portfolio-related configuration settings."""

    model_config = ConfigDict(frozen=True)

    allocations: tuple[Allocation, ...] = Field(
        default=DEFAULT_ALLOCATIONS, description="Instruments and weights"
    )
    start_value: float = Field(
        default=START_PORTFOLIO_VALUE, gt=0, description="Starting capital of the backtest"
    )
    target_annual_income: float = Field(
        default=TARGET_ANNUAL_INCOME, ge=0, description="Income target shown in the summary"
    )
    projection_years: int = Field(
        default=5, ge=1, description="Trailing CAGR window and forecast horizon in years"
    )

    @model_validator(mode='after')
    def validate_unique_symbols(self) -> "PortfolioConfig":
        """Validate no two allocations share a symbol."""
        seen: set[str] = set()
        for allocation in self.allocations:
            if allocation.symbol in seen:
                raise ValueError(f"Duplicate allocation symbol: {allocation.symbol}")
            seen.add(allocation.symbol)
        return self

    def symbols(self) -> list[str]:
        """Return distinct primary and proxy symbols in first-seen order."""
        ordered = [a.symbol for a in self.allocations]
        ordered += [a.proxy_symbol for a in self.allocations if a.proxy_symbol]
        return list(dict.fromkeys(ordered))

    def with_allocations(self, allocations: Any) -> "PortfolioConfig":
        """Return a copy holding a full replacement of the allocation list."""
        return PortfolioConfig(
            allocations=tuple(allocations),
            start_value=self.start_value,
            target_annual_income=self.target_annual_income,
            projection_years=self.projection_years,
        )

    def with_allocation_update(
        self,
        symbol: str,
        weight: float | None = None,
        est_yield: float | None = None,
    ) -> "PortfolioConfig":
        """Return a copy with one allocation's weight and/or yield edited.

        Raises:
            KeyError: If no allocation has the given symbol
        """
        symbol = symbol.strip().upper()
        if symbol not in {a.symbol for a in self.allocations}:
            raise KeyError(f"Unknown allocation symbol: {symbol}")

        changes: dict[str, float] = {}
        if weight is not None:
            changes['weight'] = weight
        if est_yield is not None:
            changes['est_yield'] = est_yield

        return self.with_allocations(
            Allocation(**{**a.model_dump(), **changes}) if a.symbol == symbol else a
            for a in self.allocations
        )


class LoggingConfig(BaseModel):
    """Logging configuration settings."""

    level: str = Field(default="INFO", description="Log level name")
    file_path: str | None = Field(default=None, description="Optional rotating log file")
    structured: bool = Field(default=False, description="Emit JSON log records")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate the level is a standard logging level name."""
        v = v.upper()
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")
        return v


class FlywheelConfig(BaseModel):
    """Main configuration class for the income flywheel."""

    data: DataRetrievalConfig = Field(
        default_factory=DataRetrievalConfig, description="Price retrieval configuration"
    )
    portfolio: PortfolioConfig = Field(
        default_factory=PortfolioConfig, description="Portfolio configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    def with_portfolio(self, portfolio: PortfolioConfig) -> "FlywheelConfig":
        """Return a copy of this configuration holding another portfolio."""
        return self.model_copy(update={'portfolio': portfolio})
