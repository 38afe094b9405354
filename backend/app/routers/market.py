"""Market data API endpoints.

Serves FRED economic series, NYC Open Data datasets and the synthetic
market snapshot through the shared SourceManager, plus a combined view
that degrades gracefully when individual sources fail.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from skylineanalyzr.models.market import CachedResponse, EconomicSeries
from skylineanalyzr.sources.fred import SERIES_CATEGORIES
from skylineanalyzr.sources.manager import SourceManager
from skylineanalyzr.sources.nyc_open_data import MANHATTAN_DATASETS

from ..deps import get_sources

router = APIRouter()
logger = logging.getLogger(__name__)


class MarketObservation(BaseModel):
    date: str
    value: float


class SeriesResponse(BaseModel):
    series_id: str
    label: str
    success: bool
    cached: bool
    latest_value: float | None = None
    latest_date: str | None = None
    direction: str = "stable"  # "up", "down", "stable"
    observations: list[MarketObservation] = []
    error: str | None = None


def _series_to_response(resp: CachedResponse, series_id: str) -> SeriesResponse:
    """Convert a FRED CachedResponse to the API shape."""
    series: Optional[EconomicSeries] = resp.payload if resp.success else None
    if series is None:
        return SeriesResponse(
            series_id=series_id,
            label=series_id,
            success=False,
            cached=resp.cached,
            error=resp.error_message,
        )
    latest = series.latest
    return SeriesResponse(
        series_id=series.series_id,
        label=series.label,
        success=True,
        cached=resp.cached,
        latest_value=latest.value if latest else None,
        latest_date=latest.date.isoformat() if latest else None,
        direction=series.direction,
        observations=[
            MarketObservation(date=obs.date.isoformat(), value=obs.value)
            for obs in series.observations
        ],
    )


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/fred")
async def get_fred_data(
    category: str = Query(default="all", description="real-estate, interest-rates, economic or all"),
    sources: SourceManager = Depends(get_sources),
):
    """Economic indicator series from FRED for one catalog category."""
    results = await sources.fred.get_category(category)
    data = {sid: _series_to_response(resp, sid).model_dump() for sid, resp in results.items()}
    return {
        "success": True,
        "category": category if category in SERIES_CATEGORIES else "all",
        "data": data,
        "seriesCount": len(data),
        "degradedSources": [sid for sid, s in data.items() if not s["success"]],
        "timestamp": _timestamp(),
    }


@router.get("/nyc/{dataset}")
async def get_nyc_dataset(
    dataset: str,
    limit: Optional[int] = Query(default=None, ge=1, le=5000),
    sources: SourceManager = Depends(get_sources),
):
    """One Manhattan dataset from NYC Open Data."""
    if dataset not in MANHATTAN_DATASETS:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown dataset {dataset!r}; expected one of {', '.join(MANHATTAN_DATASETS)}",
        )
    resp = await sources.nyc.get_dataset(dataset, limit)
    rows = resp.payload or []
    return {
        "success": resp.success,
        "dataset": dataset,
        "data": rows,
        "count": len(rows),
        "cached": resp.cached,
        "error": resp.error_message,
        "timestamp": _timestamp(),
    }


@router.get("/snapshot")
async def get_market_snapshot(sources: SourceManager = Depends(get_sources)):
    """Synthetic StreetEasy-style snapshot and Zillow-style value index."""
    snapshot = await sources.market.get_market_snapshot()
    index = await sources.index.get_home_value_index()
    return {
        "success": snapshot.success and index.success,
        "synthetic": True,
        "snapshot": snapshot.unwrap().model_dump(by_alias=True),
        "homeValueIndex": index.unwrap().model_dump(by_alias=True),
        "timestamp": _timestamp(),
    }


@router.get("/comprehensive")
async def get_comprehensive(sources: SourceManager = Depends(get_sources)):
    """Every source at once; partial failures are reported, not raised."""
    context, aggregate = await sources.market_context(as_of=date.today())
    return {
        **aggregate.to_dict(),
        "context": context.model_dump(mode="json", by_alias=True),
        "timestamp": _timestamp(),
    }
