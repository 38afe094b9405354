"""Property dataset API endpoints."""

import logging
import math
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from skylineanalyzr.analysis.market import calculate_market_metrics
from skylineanalyzr.dataset import Dataset

from ..deps import get_dataset

router = APIRouter()
logger = logging.getLogger(__name__)


class ExpandRequest(BaseModel):
    count: int = Field(default=15, ge=1, le=500)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
async def list_properties(
    borough: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None, description="Property category"),
    submarket: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None, description="Address or submarket text"),
    min_price: Optional[float] = Query(default=None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(default=None, alias="maxPrice", ge=0),
    min_gsf: Optional[int] = Query(default=None, alias="minGSF", ge=0),
    max_gsf: Optional[int] = Query(default=None, alias="maxGSF", ge=0),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    dataset: Dataset = Depends(get_dataset),
):
    """Filter and paginate the dataset, with analytics over the full match."""
    filtered = dataset.filter(
        borough=borough,
        property_type=category,
        submarket=submarket,
        status=status,
        search=search,
        min_price=min_price,
        max_price=max_price,
        min_gsf=min_gsf,
        max_gsf=max_gsf,
    )

    total = len(filtered)
    start = (page - 1) * limit
    page_records = filtered[start:start + limit]

    metrics = calculate_market_metrics(filtered)
    analytics: dict[str, Any] = {
        "totalValue": metrics.total_value,
        "avgPricePerSF": metrics.avg_price_per_sf,
        "avgCapRate": metrics.avg_cap_rate,
        "boroughBreakdown": dict(Counter(r.borough.value for r in filtered if r.borough)),
        "categoryBreakdown": dict(
            Counter(r.property_category.value for r in filtered if r.property_category)
        ),
    }

    return {
        "success": True,
        "data": [r.model_dump(mode="json", by_alias=True) for r in page_records],
        "total": total,
        "pagination": {
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if total else 0,
        },
        "analytics": analytics,
        "timestamp": _timestamp(),
    }


@router.post("")
async def add_property(body: dict[str, Any], dataset: Dataset = Depends(get_dataset)):
    """Add one property to the dataset."""
    record = dataset.add({**body, "lastUpdated": datetime.now(timezone.utc).isoformat()})
    logger.info(f"Added property {record.id or record.address}")
    return {
        "success": True,
        "data": record.model_dump(mode="json", by_alias=True),
        "message": "Property added successfully",
    }


@router.get("/stats")
async def dataset_stats(dataset: Dataset = Depends(get_dataset)):
    return {"success": True, "stats": dataset.stats()}


@router.post("/expand")
async def expand_dataset(request: ExpandRequest, dataset: Dataset = Depends(get_dataset)):
    """Append generated demo properties to the dataset."""
    new = dataset.expand(request.count)
    stats = dataset.stats()
    return {
        "success": True,
        "newProperties": [r.model_dump(mode="json", by_alias=True) for r in new],
        "stats": stats,
        "message": f"Added {len(new)} new properties. Total: {stats['totalProperties']}",
    }


@router.get("/{property_id}")
async def get_property(property_id: str, dataset: Dataset = Depends(get_dataset)):
    record = dataset.get(property_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return {"success": True, "data": record.model_dump(mode="json", by_alias=True)}
