"""Conversion analysis API endpoints."""

import logging
from datetime import datetime, timezone
from typing import Any, Literal, Optional, get_args

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from skylineanalyzr.analysis.market import (
    analyze_submarkets,
    calculate_market_metrics,
    strategic_recommendations,
    top_submarkets,
)
from skylineanalyzr.analysis.ranker import PropertyRanker
from skylineanalyzr.analysis.scoring import PROFILES, coerce_record

router = APIRouter()
logger = logging.getLogger(__name__)

AnalysisType = Literal["market", "property", "financial", "risk", "comprehensive"]
ANALYSIS_TYPES = list(get_args(AnalysisType))

# How many fully analyzed properties each response carries
TOP_OPPORTUNITIES = 10
PROPERTY_ANALYSES = 5


class ConversionFilters(BaseModel):
    borough: Optional[str] = None
    price_range: Optional[tuple[float, float]] = Field(default=None, alias="priceRange")
    price_range_min: Optional[float] = Field(default=None, alias="priceRangeMin")
    price_range_max: Optional[float] = Field(default=None, alias="priceRangeMax")
    property_type: Optional[str] = Field(default=None, alias="propertyType")

    model_config = {"populate_by_name": True}

    def bounds(self) -> tuple[Optional[float], Optional[float]]:
        """Price bounds; explicit min/max override the ``priceRange`` pair."""
        low, high = self.price_range if self.price_range else (None, None)
        if self.price_range_min is not None:
            low = self.price_range_min
        if self.price_range_max is not None:
            high = self.price_range_max
        return low, high


class ConversionAnalysisRequest(BaseModel):
    properties: list[dict[str, Any]] = Field(default_factory=list)
    analysis_type: AnalysisType = Field(default="comprehensive", alias="analysisType")
    filters: ConversionFilters = Field(default_factory=ConversionFilters)
    profile: str = "conversion"

    model_config = {"populate_by_name": True}


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.post("/conversion")
async def analyze_conversion(request: ConversionAnalysisRequest):
    """Score, rank and analyze a batch of submitted properties.

    ``analysisType`` selects the extras: "market" and "comprehensive" add
    market metrics; every other type adds per-property analyses.
    """
    if not request.properties:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "No properties provided for analysis"},
        )

    records = [coerce_record(p) for p in request.properties]
    ranker = PropertyRanker(profile=request.profile)

    f = request.filters
    min_price, max_price = f.bounds()
    filtered = ranker.filter_by_criteria(
        records,
        borough=f.borough,
        property_type=f.property_type,
        min_price=min_price,
        max_price=max_price,
    )

    scored = ranker.analyze(filtered)
    body: dict[str, Any] = {
        "success": True,
        "type": request.analysis_type,
        "profile": ranker.profile.name,
        "scoredProperties": [
            s.model_dump(mode="json", by_alias=True) for s in scored[:TOP_OPPORTUNITIES]
        ],
        "propertiesAnalyzed": len(filtered),
        "timestamp": _timestamp(),
    }

    if request.analysis_type in ("market", "comprehensive"):
        metrics = calculate_market_metrics(filtered)
        submarkets = analyze_submarkets(filtered)
        scores = [s.score.overall for s in scored]
        body["marketMetrics"] = {
            **metrics.model_dump(by_alias=True),
            "avgConversionScore": round(sum(scores) / len(scores), 1) if scores else 0,
            "topSubmarkets": top_submarkets(submarkets),
        }
        body["recommendations"] = strategic_recommendations(metrics, submarkets)
    else:
        body["analyses"] = [
            s.model_dump(mode="json", by_alias=True) for s in scored[:PROPERTY_ANALYSES]
        ]

    logger.info(f"Analyzed {len(filtered)} of {len(records)} properties ({request.analysis_type})")
    return body


@router.get("/capabilities")
async def capabilities():
    """Analysis types, scoring profiles and supported filters."""
    return {
        "success": True,
        "capabilities": {
            "analysisTypes": ANALYSIS_TYPES,
            "profiles": {name: profile.weights for name, profile in PROFILES.items()},
            "features": [
                "Conversion scoring",
                "Market trend analysis",
                "Financial projections",
                "Risk assessment",
                "Submarket comparison",
                "ROI calculations",
            ],
            "supportedFilters": ["borough", "priceRange", "priceRangeMin", "priceRangeMax", "propertyType"],
        },
        "status": "operational",
        "lastUpdated": _timestamp(),
    }
