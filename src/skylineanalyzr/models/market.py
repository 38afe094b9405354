"""Market data shapes returned by the data access layer."""

from dataclasses import dataclass, field
from datetime import date
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel

from ..errors import SourceUnavailable

T = TypeVar("T")


@dataclass
class Observation:
    """A single time-series data point."""
    date: date
    value: float


@dataclass
class EconomicSeries:
    """FRED series observations with metadata."""
    series_id: str
    label: str
    observations: list[Observation] = field(default_factory=list)

    @property
    def latest(self) -> Observation | None:
        return self.observations[-1] if self.observations else None

    @property
    def previous(self) -> Observation | None:
        return self.observations[-2] if len(self.observations) >= 2 else None

    @property
    def direction(self) -> str:
        """'up', 'down', or 'stable' compared to previous observation."""
        if not self.latest or not self.previous:
            return "stable"
        diff = self.latest.value - self.previous.value
        if abs(diff) < 0.001:
            return "stable"
        return "up" if diff > 0 else "down"


class _CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class CachedResponse(_CamelModel, Generic[T]):
    """Envelope every source client returns.

    A failed fetch is a value, not an exception: ``success`` is False and
    ``error_message`` says why. ``error_message`` is set exactly when the
    fetch failed.
    """

    payload: T | None = None
    success: bool
    source_name: str
    fetched_at_epoch_ms: int
    cached: bool = False
    error_message: str | None = None

    @model_validator(mode="after")
    def _error_iff_failed(self):
        if self.success and self.error_message is not None:
            raise ValueError("error_message must be empty on a successful response")
        if not self.success and not self.error_message:
            raise ValueError("error_message is required on a failed response")
        return self

    def unwrap(self) -> T:
        """Payload of a successful response, else raise SourceUnavailable."""
        if not self.success:
            raise SourceUnavailable(self.source_name, self.error_message or "unavailable")
        return self.payload


class BoroughMarket(_CamelModel):
    median_sale_price: float
    median_rent_price: float
    price_change: float
    rent_change: float
    inventory: int
    days_on_market: int
    price_per_sq_ft: float


class SalesTrends(_CamelModel):
    sales_volume: int
    new_listings: int
    price_reductions: int
    closed_sales: int


class MarketSnapshot(_CamelModel):
    """Point-in-time Manhattan sales/rental snapshot (synthetic provider)."""

    manhattan: BoroughMarket
    trends: SalesTrends
    synthetic: bool = True


class ValueForecast(_CamelModel):
    one_month: float
    three_month: float
    six_month: float
    one_year: float


class IndexValue(_CamelModel):
    current_value: float
    monthly_change: float
    yearly_change: float
    forecast: ValueForecast


class RentIndex(_CamelModel):
    current_rent: float
    monthly_change: float
    yearly_change: float


class HomeValueIndex(_CamelModel):
    """Home value and rent index with short-range forecasts (synthetic provider)."""

    manhattan: IndexValue
    rent_index: RentIndex
    synthetic: bool = True


class MarketContext(_CamelModel):
    """Market-level inputs handed to the scoring engine.

    ``trends`` are recent-first average values used by price optimization.
    """

    current_year: int = Field(default_factory=lambda: date.today().year)
    as_of: date = Field(default_factory=date.today)
    mortgage_rate: float | None = None
    median_price_per_sf: float | None = None
    trends: list[float] = Field(default_factory=list)
    degraded_sources: list[str] = Field(default_factory=list)
