"""Investment intelligence API endpoints.

Investment scoring, market insights, price optimization and portfolio
construction over the application's property dataset.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from skylineanalyzr.analysis.market import (
    analyze_property_types,
    analyze_submarkets,
    calculate_market_metrics,
    market_risk_factors,
    strategic_recommendations,
    top_submarkets,
)
from skylineanalyzr.analysis.optimizer import optimize_pricing
from skylineanalyzr.analysis.portfolio import PortfolioConstraints, optimize_portfolio
from skylineanalyzr.analysis.ranker import PropertyRanker
from skylineanalyzr.analysis.scoring import INVESTMENT, coerce_record
from skylineanalyzr.dataset import Dataset

from ..deps import get_dataset

router = APIRouter()
logger = logging.getLogger(__name__)


class InvestmentFilters(BaseModel):
    submarket: Optional[str] = None
    property_type: Optional[str] = Field(default=None, alias="propertyType")
    min_price: Optional[float] = Field(default=None, alias="minPrice")
    max_price: Optional[float] = Field(default=None, alias="maxPrice")

    model_config = {"populate_by_name": True}


class InvestmentScoringRequest(BaseModel):
    filters: InvestmentFilters = Field(default_factory=InvestmentFilters)
    limit: int = Field(default=20, ge=1, le=200)


class OptimizeRequest(BaseModel):
    property_id: Optional[str] = Field(default=None, alias="propertyId")
    record: Optional[dict[str, Any]] = Field(default=None, alias="property")
    trends: list[float] = Field(default_factory=list, description="Recent-first average values")

    model_config = {"populate_by_name": True}


class PortfolioRequest(BaseModel):
    constraints: PortfolioConstraints = Field(default_factory=PortfolioConstraints)


# Candidate pool size for portfolio construction
MAX_PORTFOLIO_CANDIDATES = 100


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.post("/investment-scoring")
async def investment_scoring(
    request: InvestmentScoringRequest,
    dataset: Dataset = Depends(get_dataset),
):
    """Rank the dataset with the investment profile."""
    f = request.filters
    records = dataset.filter(
        submarket=f.submarket,
        property_type=f.property_type,
        min_price=f.min_price,
        max_price=f.max_price,
    )
    ranker = PropertyRanker(profile=INVESTMENT)
    ranked = ranker.rank(records)
    analyzed = ranker.analyze([record for record, _ in ranked[:request.limit]])

    return {
        "success": True,
        "properties": [a.model_dump(mode="json", by_alias=True) for a in analyzed],
        "summary": ranker.summarize(ranked),
        "timestamp": _timestamp(),
    }


@router.get("/market-insights")
async def market_insights(
    submarket: str = Query(default="all"),
    property_type: str = Query(default="all", alias="propertyType"),
    dataset: Dataset = Depends(get_dataset),
):
    """Market metrics, submarket and type breakdowns, recommendations and risks."""
    records = dataset.filter(submarket=submarket, property_type=property_type)
    metrics = calculate_market_metrics(records)
    submarkets = analyze_submarkets(records)

    return {
        "success": True,
        "marketMetrics": metrics.model_dump(by_alias=True),
        "submarketAnalysis": {k: v.model_dump(by_alias=True) for k, v in submarkets.items()},
        "propertyTypeAnalysis": {
            k: v.model_dump(by_alias=True) for k, v in analyze_property_types(records).items()
        },
        "topSubmarkets": top_submarkets(submarkets),
        "recommendations": strategic_recommendations(metrics, submarkets),
        "riskFactors": market_risk_factors(metrics, records),
        "timestamp": _timestamp(),
    }


@router.post("/optimize")
async def optimize(
    request: OptimizeRequest,
    dataset: Dataset = Depends(get_dataset),
):
    """Recommend a price for one property against the dataset's comparables.

    The property is looked up by ``propertyId`` or taken from ``property``.
    """
    if request.property_id:
        record = dataset.get(request.property_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Property {request.property_id} not found")
    elif request.record is not None:
        record = coerce_record(request.record)
    else:
        raise HTTPException(status_code=400, detail="propertyId or property is required")

    comparables = []
    if record.property_category:
        comparables = dataset.filter(property_type=record.property_category.value)
    comparables = comparables or dataset.records
    result = optimize_pricing(record, comparables, request.trends)

    return {
        "success": True,
        "optimization": result.model_dump(mode="json", by_alias=True),
        "comparablesConsidered": len(comparables),
        "timestamp": _timestamp(),
    }


@router.post("/portfolio-optimization")
async def portfolio_optimization(
    request: PortfolioRequest,
    dataset: Dataset = Depends(get_dataset),
):
    """Build a portfolio from the dataset under the given constraints."""
    candidates = dataset.records[:MAX_PORTFOLIO_CANDIDATES]
    portfolio = optimize_portfolio(candidates, request.constraints)

    return {
        "success": True,
        "portfolio": portfolio.model_dump(mode="json", by_alias=True),
        "candidatesConsidered": len(candidates),
        "timestamp": _timestamp(),
    }
