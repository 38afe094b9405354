"""Data models for SkylineAnalyzr."""

from skylineanalyzr.models.market import (
    CachedResponse,
    EconomicSeries,
    HomeValueIndex,
    MarketContext,
    MarketSnapshot,
    Observation,
)
from skylineanalyzr.models.property import (
    Borough,
    CostAssumptions,
    FinancialProjection,
    InvestmentProjection,
    PriceOptimization,
    PropertyCategory,
    PropertyRecord,
    PropertyStatus,
    ScoreBreakdown,
    ScoredProperty,
)

__all__ = [
    "Borough",
    "PropertyCategory",
    "PropertyStatus",
    "PropertyRecord",
    "ScoreBreakdown",
    "ScoredProperty",
    "CostAssumptions",
    "FinancialProjection",
    "InvestmentProjection",
    "PriceOptimization",
    "CachedResponse",
    "Observation",
    "EconomicSeries",
    "MarketSnapshot",
    "HomeValueIndex",
    "MarketContext",
]
