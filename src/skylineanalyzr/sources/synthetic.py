"""Synthetic market providers for demos and tests.

Nothing in this module calls out to the network. The snapshot and index
payloads are fixed StreetEasy/Zillow-style figures and every model built
from them is flagged ``synthetic=True`` so downstream consumers can never
mistake them for live data. ``generate_properties`` produces seeded,
reproducible demo records.
"""

import logging
import random
from datetime import datetime, timedelta
from typing import Any, Optional

from ..config import Settings
from ..models.market import CachedResponse, HomeValueIndex, MarketSnapshot
from ..models.property import Borough, PropertyCategory, PropertyRecord, PropertyStatus
from .base import BaseSourceClient

logger = logging.getLogger(__name__)

MARKET_SNAPSHOT = {
    "manhattan": {
        "medianSalePrice": 1250000,
        "medianRentPrice": 4200,
        "priceChange": 0.024,
        "rentChange": 0.031,
        "inventory": 2847,
        "daysOnMarket": 89,
        "pricePerSqFt": 1456,
    },
    "trends": {
        "salesVolume": 1247,
        "newListings": 892,
        "priceReductions": 234,
        "closedSales": 1156,
    },
}

HOME_VALUE_INDEX = {
    "manhattan": {
        "currentValue": 1180000,
        "monthlyChange": 0.018,
        "yearlyChange": 0.067,
        "forecast": {
            "oneMonth": 0.012,
            "threeMonth": 0.034,
            "sixMonth": 0.058,
            "oneYear": 0.089,
        },
    },
    "rentIndex": {
        "currentRent": 3890,
        "monthlyChange": 0.025,
        "yearlyChange": 0.078,
    },
}


class _SyntheticClient(BaseSourceClient):
    """Serves a fixed payload through the normal cache pipeline, unthrottled."""

    payload: dict = {}

    async def _fetch(self, endpoint: str, params: dict) -> Any:
        return self.payload


class SyntheticMarketClient(_SyntheticClient):
    """StreetEasy-style Manhattan sales and rental snapshot (synthetic)."""

    name = "synthetic_market"
    default_ttl_ms = 60 * 60 * 1000
    payload = MARKET_SNAPSHOT

    def __init__(self, settings: Optional[Settings] = None, **kwargs):
        super().__init__(settings=settings, **kwargs)
        self.default_ttl_ms = self.settings.snapshot_cache_ttl_ms

    async def get_market_snapshot(self) -> CachedResponse:
        return await self._request("market-snapshot", normalize=MarketSnapshot.model_validate)


class SyntheticIndexClient(_SyntheticClient):
    """Zillow-style home value and rent index with forecasts (synthetic)."""

    name = "synthetic_index"
    default_ttl_ms = 24 * 60 * 60 * 1000
    payload = HOME_VALUE_INDEX

    def __init__(self, settings: Optional[Settings] = None, **kwargs):
        super().__init__(settings=settings, **kwargs)
        self.default_ttl_ms = self.settings.index_cache_ttl_ms

    async def get_home_value_index(self) -> CachedResponse:
        return await self._request("home-value-index", normalize=HomeValueIndex.model_validate)


# =========================================================================
# Demo property generator
# =========================================================================

STREETS = [
    "Broadway",
    "Park Avenue",
    "Madison Avenue",
    "Fifth Avenue",
    "Lexington Avenue",
    "Third Avenue",
    "Second Avenue",
    "West End Avenue",
    "Amsterdam Avenue",
    "Hudson Street",
    "Varick Street",
    "Wall Street",
    "Water Street",
    "Pearl Street",
    "West 34th Street",
    "East 42nd Street",
]

SUBMARKETS = [
    "Financial District",
    "Tribeca",
    "SoHo",
    "Greenwich Village",
    "Lower East Side",
    "Chelsea",
    "Midtown South",
    "Midtown East",
    "Hell's Kitchen",
    "Upper East Side",
    "Upper West Side",
    "Harlem",
]

# Per-SF price ranges, except development sites which trade as flat prices
PRICE_RANGES = {
    PropertyCategory.OFFICE_BUILDINGS: (300, 800),
    PropertyCategory.MULTIFAMILY: (400, 1200),
    PropertyCategory.MIXED_USE: (350, 900),
    PropertyCategory.DEVELOPMENT_SITE: (200_000_000, 800_000_000),
    PropertyCategory.INDUSTRIAL: (150, 400),
    PropertyCategory.RETAIL_CONDO: (2000, 8000),
    PropertyCategory.GROUND_LEASE: (200, 600),
    PropertyCategory.CONVERSION_CANDIDATE: (250, 700),
}

ZONING_BY_CATEGORY = {
    PropertyCategory.OFFICE_BUILDINGS: ["C5-3", "C6-4", "C5-2"],
    PropertyCategory.MULTIFAMILY: ["R8", "R10", "R7-2"],
    PropertyCategory.MIXED_USE: ["C6-2", "C4-7", "R8A"],
    PropertyCategory.DEVELOPMENT_SITE: ["C6-4", "R10", "M1-6"],
    PropertyCategory.INDUSTRIAL: ["M1-5", "M1-6", "M2-4"],
    PropertyCategory.RETAIL_CONDO: ["C5-3", "C6-3"],
    PropertyCategory.GROUND_LEASE: ["C6-4", "C5-2"],
    PropertyCategory.CONVERSION_CANDIDATE: ["C6-2", "C5-3", "R10"],
}

BUILDING_CLASS_BY_CATEGORY = {
    PropertyCategory.OFFICE_BUILDINGS: "O4",
    PropertyCategory.MULTIFAMILY: "D6",
    PropertyCategory.MIXED_USE: "S9",
    PropertyCategory.DEVELOPMENT_SITE: "V1",
    PropertyCategory.INDUSTRIAL: "E1",
    PropertyCategory.RETAIL_CONDO: "K4",
    PropertyCategory.GROUND_LEASE: "O6",
    PropertyCategory.CONVERSION_CANDIDATE: "O5",
}

UNIT_CATEGORIES = {
    PropertyCategory.MULTIFAMILY,
    PropertyCategory.MIXED_USE,
    PropertyCategory.CONVERSION_CANDIDATE,
}


def generate_property(rng: random.Random, index: int, as_of: datetime) -> PropertyRecord:
    """Generate one synthetic Manhattan record from a seeded RNG."""
    category = rng.choice(list(PropertyCategory))
    status = rng.choice(list(PropertyStatus))
    submarket = rng.choice(SUBMARKETS)

    gross_sf = None if category == PropertyCategory.DEVELOPMENT_SITE else rng.randint(25_000, 1_200_000)
    low, high = PRICE_RANGES[category]
    if gross_sf is None:
        asking_price = float(rng.randint(low, high))
        price_per_sf = None
    else:
        price_per_sf = float(rng.randint(low, high))
        asking_price = price_per_sf * gross_sf

    return PropertyRecord(
        id=f"synthetic-{index:04d}",
        address=f"{rng.randint(1, 999)} {rng.choice(STREETS)}",
        borough=Borough.MANHATTAN,
        submarket=submarket,
        property_category=category,
        units=rng.randint(50, 800) if category in UNIT_CATEGORIES else None,
        gross_sf=gross_sf,
        year_built=rng.randint(1890, 2020),
        zoning_code=rng.choice(ZONING_BY_CATEGORY[category]),
        building_class=BUILDING_CLASS_BY_CATEGORY[category],
        asking_price=asking_price,
        price_per_sf=price_per_sf,
        cap_rate=round(2.5 + rng.random() * 6, 1),
        status=status,
        eligible_for_tax_program=rng.random() > 0.3,
        last_updated=as_of - timedelta(days=rng.randint(0, 90)),
    )


def generate_properties(
    count: int,
    seed: int = 42,
    as_of: Optional[datetime] = None,
    start_index: int = 0,
) -> list[PropertyRecord]:
    """Generate ``count`` synthetic records.

    The same seed always yields the same records; pass ``as_of`` as well
    to pin the ``last_updated`` timestamps.

    Args:
        count: Number of records
        seed: RNG seed
        as_of: Reference time for ``last_updated`` (now by default)
        start_index: First index used in the generated ids

    Returns:
        List of PropertyRecord
    """
    rng = random.Random(seed)
    as_of = as_of or datetime.now()
    records = [generate_property(rng, start_index + i, as_of) for i in range(count)]
    logger.debug(f"Generated {len(records)} synthetic properties (seed={seed})")
    return records
