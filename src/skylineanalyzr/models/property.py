"""Property, score and projection data models."""

import re
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel


class Borough(str, Enum):
    """New York City boroughs."""

    MANHATTAN = "Manhattan"
    BROOKLYN = "Brooklyn"
    QUEENS = "Queens"
    BRONX = "Bronx"
    STATEN_ISLAND = "Staten Island"


class PropertyCategory(str, Enum):
    """Asset categories tracked by the dashboard."""

    OFFICE_BUILDINGS = "Office Buildings"
    MULTIFAMILY = "Multifamily Apartment Buildings"
    MIXED_USE = "Mixed-Use Buildings"
    DEVELOPMENT_SITE = "Development Sites"
    INDUSTRIAL = "Industrial"
    RETAIL_CONDO = "Retail Condos"
    GROUND_LEASE = "Ground Leases"
    CONVERSION_CANDIDATE = "Office-to-Residential Conversion"

    @property
    def is_office(self) -> bool:
        return self in (PropertyCategory.OFFICE_BUILDINGS, PropertyCategory.CONVERSION_CANDIDATE)


class PropertyStatus(str, Enum):
    """Listing / project lifecycle status."""

    AVAILABLE = "Available"
    UNDER_CONTRACT = "Under Contract"
    SOLD = "Sold"
    COMPLETED = "Completed"
    UNDERWAY = "Underway"
    PROJECTED = "Projected"


def _key(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", value.lower())


# Borough spellings used across NYC datasets: PLUTO ("MN"), DOB ("MANHATTAN"),
# ACRIS ("1") and the dashboard itself ("Staten Island").
BOROUGH_ALIASES = {
    "manhattan": Borough.MANHATTAN, "mn": Borough.MANHATTAN, "m": Borough.MANHATTAN, "1": Borough.MANHATTAN,
    "bronx": Borough.BRONX, "bx": Borough.BRONX, "x": Borough.BRONX, "2": Borough.BRONX,
    "brooklyn": Borough.BROOKLYN, "bk": Borough.BROOKLYN, "k": Borough.BROOKLYN, "3": Borough.BROOKLYN,
    "queens": Borough.QUEENS, "qn": Borough.QUEENS, "q": Borough.QUEENS, "4": Borough.QUEENS,
    "statenisland": Borough.STATEN_ISLAND, "si": Borough.STATEN_ISLAND, "r": Borough.STATEN_ISLAND,
    "5": Borough.STATEN_ISLAND,
}

CATEGORY_ALIASES = {
    **{_key(c.value): c for c in PropertyCategory},
    "officebuilding": PropertyCategory.OFFICE_BUILDINGS,
    "office": PropertyCategory.OFFICE_BUILDINGS,
    "multifamily": PropertyCategory.MULTIFAMILY,
    "mixeduse": PropertyCategory.MIXED_USE,
    "developmentsite": PropertyCategory.DEVELOPMENT_SITE,
    "retailcondo": PropertyCategory.RETAIL_CONDO,
    "groundlease": PropertyCategory.GROUND_LEASE,
    "conversioncandidate": PropertyCategory.CONVERSION_CANDIDATE,
}

STATUS_ALIASES = {_key(s.value): s for s in PropertyStatus}


def normalize_borough(value: Any) -> Borough | None:
    """Map any known borough spelling or code to a Borough (None if unknown)."""
    if value is None or isinstance(value, Borough):
        return value
    return BOROUGH_ALIASES.get(_key(str(value)))


def normalize_category(value: Any) -> PropertyCategory | None:
    if value is None or isinstance(value, PropertyCategory):
        return value
    return CATEGORY_ALIASES.get(_key(str(value)))


def normalize_status(value: Any) -> PropertyStatus | None:
    if value is None or isinstance(value, PropertyStatus):
        return value
    return STATUS_ALIASES.get(_key(str(value)))


def _aliases(camel: str, *extra: str) -> dict[str, Any]:
    return {
        "validation_alias": AliasChoices(camel, *extra),
        "serialization_alias": camel,
    }


class PropertyRecord(BaseModel):
    """A real-estate asset under evaluation.

    Built by ingestion from an external source or the synthetic generator and
    immutable for the duration of a scoring pass. Missing attributes are
    allowed everywhere; the scoring engine falls back to documented defaults.
    """

    id: str | None = Field(default=None, description="Source identifier (BBL, listing id)")
    address: str = Field(default="", description="Street address")

    # Location
    borough: Borough | None = Field(default=None, description="Borough (None when unknown)")
    submarket: str | None = Field(default=None, description="Named sub-district, e.g. Tribeca")

    # Asset
    property_category: PropertyCategory | None = Field(
        default=None, **_aliases("propertyCategory", "property_category", "category")
    )
    units: int | None = Field(default=None, ge=0, description="Residential unit count")
    gross_sf: int | None = Field(
        default=None, gt=0, description="Gross square footage", **_aliases("grossSF", "gross_sf", "gsf", "grossSf")
    )
    year_built: int | None = Field(default=None, description="Year built")
    zoning_code: str | None = Field(
        default=None, description="Zoning district, e.g. R10 or C6-2", **_aliases("zoningCode", "zoning_code", "zoning")
    )
    building_class: str | None = Field(
        default=None, description="PLUTO building class, e.g. O4", **_aliases("buildingClass", "building_class", "bldgclass")
    )

    # Pricing
    asking_price: float | None = Field(default=None, ge=0, description="Asking price in USD")
    price_per_sf: float | None = Field(
        default=None, gt=0, **_aliases("pricePerSF", "price_per_sf", "pricePerSf")
    )
    cap_rate: float | None = Field(default=None, ge=0, le=100, description="Cap rate percentage")

    status: PropertyStatus | None = Field(default=None)
    eligible_for_tax_program: bool = Field(
        default=False,
        description="Qualifies for the 467-m conversion tax incentive",
        **_aliases("eligibleForTaxProgram", "eligible_for_tax_program", "eligible"),
    )
    last_updated: datetime | None = Field(default=None, description="When the source last touched the record")

    model_config = {
        "frozen": True,
        "str_strip_whitespace": True,
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    @field_validator("borough", mode="before")
    @classmethod
    def _coerce_borough(cls, value: Any) -> Borough | None:
        return normalize_borough(value)

    @field_validator("property_category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> PropertyCategory | None:
        return normalize_category(value)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> PropertyStatus | None:
        return normalize_status(value)

    @field_validator("gross_sf", "price_per_sf", mode="before")
    @classmethod
    def _zero_is_missing(cls, value: Any) -> Any:
        # Source datasets encode "unknown" as 0 for areas and unit prices
        if value in (0, "0", ""):
            return None
        return value

    @field_validator("submarket", "zoning_code", "building_class", mode="before")
    @classmethod
    def _blank_is_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def effective_price_per_sf(self) -> float | None:
        """Provided price per SF, else asking price / GSF when both exist."""
        if self.price_per_sf is not None:
            return self.price_per_sf
        if self.asking_price and self.gross_sf:
            return self.asking_price / self.gross_sf
        return None

    def price_per_sf_consistent(self, tolerance: float = 0.01) -> bool:
        """Data-quality check: provided price/SF matches asking price / GSF.

        Returns True when there is nothing to compare.
        """
        if self.price_per_sf is None or not self.asking_price or not self.gross_sf:
            return True
        derived = self.asking_price / self.gross_sf
        return abs(derived - self.price_per_sf) <= tolerance * self.price_per_sf

    def age(self, current_year: int) -> int | None:
        if self.year_built is None:
            return None
        return current_year - self.year_built


class _CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class ScoreBreakdown(_CamelModel):
    """Scoring engine output for one PropertyRecord.

    Sub-scores are None for dimensions the scoring profile does not use.
    """

    property_id: str | None = None
    address: str = ""
    profile: str

    location: int | None = Field(default=None, ge=0, le=100)
    building: int | None = Field(default=None, ge=0, le=100)
    financial: int | None = Field(default=None, ge=0, le=100)
    market: int | None = Field(default=None, ge=0, le=100)
    risk: int | None = Field(default=None, ge=0, le=100)
    growth: int | None = Field(default=None, ge=0, le=100)
    liquidity: int | None = Field(default=None, ge=0, le=100)

    overall: int = Field(..., ge=0, le=100, description="Weighted composite, rounded")
    rank: int | None = Field(default=None, ge=1, description="1-based position in a ranked batch")

    def sub_scores(self) -> dict[str, int]:
        """Populated sub-scores keyed by dimension name."""
        dims = ("location", "building", "financial", "market", "risk", "growth", "liquidity")
        return {d: getattr(self, d) for d in dims if getattr(self, d) is not None}


class CostAssumptions(_CamelModel):
    """Cost and revenue assumptions used by the financial projections."""

    per_sf_conversion_cost: float = Field(default=250, ge=0, alias="perSFConversionCost")
    average_unit_sf: float = Field(default=800, gt=0, alias="averageUnitSF")
    monthly_rent_per_unit: float = Field(default=4500, ge=0)
    assumed_annual_appreciation_pct: float = Field(default=3.0)
    default_gross_sf: int = Field(default=10000, gt=0, alias="defaultGrossSF")


class FinancialProjection(_CamelModel):
    """Derived conversion investment arithmetic for a PropertyRecord."""

    acquisition_cost: float
    conversion_cost: float
    total_investment: float
    estimated_units: int
    projected_annual_revenue: float
    projected_cap_rate: float = Field(..., description="Revenue / total investment * 100")
    break_even_months: int = Field(..., ge=0)
    projected_roi: float = Field(..., description="Five-year ROI percentage")
    payback_period_years: float


class InvestmentProjection(_CamelModel):
    """Score-adjusted return expectations from the investment profile."""

    projected_roi: float
    payback_period: float
    risk_adjusted_return: float
    liquidity_score: int


class Competition(_CamelModel):
    level: str
    count: int
    price_min: float = 0
    price_max: float = 0


class PropertyFeatures(_CamelModel):
    unit_advantage: bool = False
    size_advantage: bool = False
    location_premium: bool = False


class Milestone(_CamelModel):
    day: int
    action: str
    expected: str


class PriceOptimization(_CamelModel):
    """Price recommendation and selling timeline for a single property."""

    property_id: str | None = None
    current_price: float
    recommended_price: float
    confidence: float = Field(..., ge=0, le=1)

    market_condition: str
    competition: Competition
    seasonality: str
    property_features: PropertyFeatures

    estimated_days_to_sell: int
    milestones: list[Milestone] = Field(default_factory=list)

    projected_roi: float
    break_even_price: float
    max_recommended_price: float

    risk_score: int = Field(..., ge=0, le=100)
    market_trend: str
    investment_grade: str


class ScoredProperty(_CamelModel):
    """A record with its score, projections and generated commentary."""

    property: PropertyRecord
    score: ScoreBreakdown
    financial_projections: FinancialProjection
    investment_projections: InvestmentProjection | None = None
    recommendations: list[str] = Field(default_factory=list)
    risk_factors: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    investment_thesis: str = ""
