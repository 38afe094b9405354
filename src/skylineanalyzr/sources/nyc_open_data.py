"""NYC Open Data (Socrata) client.

Socrata SODA API: JSON rows per dataset, optional app token
 - DOB permit issuance (ipu4-2q9a)
 - ACRIS real property master (bnx9-e6tj) and legals used for deed sales (8h5j-fqxa)
 - PLUTO tax lots (64uk-42ks)
 - Zoning districts (8yby-8b9u)
 - HPD housing maintenance code violations (wvxf-dwi5)

Throttled at 1000 calls/hour per process; responses cached 15 minutes.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Optional

import pydantic

from ..config import Settings
from ..models.market import CachedResponse
from ..models.property import PropertyCategory, PropertyRecord
from .base import BaseSourceClient
from .ratelimit import TokenBucket

logger = logging.getLogger(__name__)

DATASETS = {
    "permits": "ipu4-2q9a",
    "acris": "bnx9-e6tj",
    "acris_legals": "8h5j-fqxa",
    "pluto": "64uk-42ks",
    "zoning": "8yby-8b9u",
    "hpd_violations": "wvxf-dwi5",
}

MANHATTAN_DATASETS = ("conversion-permits", "commercial-properties", "office-sales", "zoning", "violations")

DEFAULT_LIMIT = 1000

PERMIT_FIELDS = (
    "bin,house__,street_name,job__,doc__,borough,work_type,permit_status,filing_date,"
    "issuance_date,expiration_date,job_start_date,permittee_s_first_name,"
    "permittee_s_last_name,permittee_s_business_name"
)
ACRIS_FIELDS = (
    "document_id,record_type,crfn,borough,doc_type,document_date,document_amt,recorded_filed,"
    "modified_date,reel_yr,reel_nbr,reel_pg,percent_trans,good_through_date"
)
PLUTO_FIELDS = (
    "bbl,borough,address,zonedist1,bldgclass,landuse,ownername,lotarea,bldgarea,comarea,"
    "resarea,officearea,retailarea,numfloors,unitsres,unitstotal,assesstot,yearbuilt,"
    "yearalter1,yearalter2,histdist,landmark,builtfar,residfar,commfar"
)

# PLUTO building class prefix -> asset category
BUILDING_CLASS_CATEGORIES = {
    "O": PropertyCategory.OFFICE_BUILDINGS,
    "C": PropertyCategory.MULTIFAMILY,
    "D": PropertyCategory.MULTIFAMILY,
    "S": PropertyCategory.MIXED_USE,
    "E": PropertyCategory.INDUSTRIAL,
    "F": PropertyCategory.INDUSTRIAL,
    "V": PropertyCategory.DEVELOPMENT_SITE,
}


def _int(value: Any) -> Optional[int]:
    try:
        parsed = int(float(value))
    except (TypeError, ValueError):
        return None
    return parsed or None


def pluto_to_record(row: dict) -> Optional[PropertyRecord]:
    """Normalize one PLUTO tax lot into a PropertyRecord.

    Returns None for rows pydantic rejects; a few malformed lots should not
    sink a whole page.
    """
    building_class = (row.get("bldgclass") or "").strip().upper() or None
    category = BUILDING_CLASS_CATEGORIES.get(building_class[0]) if building_class else None
    try:
        return PropertyRecord(
            id=str(row["bbl"]).split(".")[0] if row.get("bbl") else None,
            address=row.get("address") or "",
            borough=row.get("borough"),
            property_category=category,
            units=_int(row.get("unitsres")),
            gross_sf=_int(row.get("bldgarea")),
            year_built=_int(row.get("yearbuilt")),
            zoning_code=row.get("zonedist1"),
            building_class=building_class,
        )
    except pydantic.ValidationError as e:
        logger.debug(f"Skipping PLUTO row {row.get('bbl')}: {e}")
        return None


def pluto_to_records(rows: list[dict]) -> list[PropertyRecord]:
    records = [pluto_to_record(row) for row in rows or []]
    return [r for r in records if r is not None]


def analyze_conversion_potential(
    properties: list[dict],
    permits: list[dict],
    as_of: Optional[date] = None,
) -> dict[str, Any]:
    """Summarize raw PLUTO lots and DOB permits into conversion signals."""
    as_of = as_of or date.today()
    analysis: dict[str, Any] = {
        "conversionOpportunities": 0,
        "averageAge": 0,
        "marketActivity": "MODERATE",
        "recommendations": [],
    }

    years = [_int(p.get("yearbuilt")) for p in properties]
    ages = [as_of.year - y for y in years if y and y > 1900]
    if ages:
        analysis["averageAge"] = sum(ages) / len(ages)

    analysis["conversionOpportunities"] = sum(
        1 for p in properties
        if (p.get("bldgclass") or "").upper().startswith(("O", "K"))
    )

    if permits:
        cutoff = as_of - timedelta(days=365)
        recent = 0
        for permit in permits:
            try:
                issued = datetime.fromisoformat(str(permit.get("issuance_date"))[:10]).date()
            except ValueError:
                continue
            if issued > cutoff:
                recent += 1
        if recent > 20:
            analysis["marketActivity"] = "HIGH"
        elif recent < 5:
            analysis["marketActivity"] = "LOW"

    if analysis["averageAge"] > 50:
        analysis["recommendations"].append("Focus on pre-war buildings with good bones")
    if analysis["conversionOpportunities"] > 10:
        analysis["recommendations"].append("Strong pipeline of conversion candidates identified")
    if analysis["marketActivity"] == "HIGH":
        analysis["recommendations"].append("Market timing favorable for conversions")

    return analysis


class NYCOpenDataClient(BaseSourceClient):
    """Client for NYC Open Data Socrata datasets.

    Example:
        async with NYCOpenDataClient() as nyc:
            resp = await nyc.get_pluto()
            for record in resp.unwrap():
                print(record.address, record.building_class)
    """

    name = "nyc_open_data"
    base_url = "https://data.cityofnewyork.us/resource/"
    default_ttl_ms = 15 * 60 * 1000

    def __init__(self, settings: Optional[Settings] = None, rate_limiter: Optional[TokenBucket] = None, **kwargs):
        super().__init__(settings=settings, **kwargs)
        self.default_ttl_ms = self.settings.nyc_cache_ttl_ms
        self.rate_limiter = rate_limiter or TokenBucket(
            self.settings.nyc_rate_limit, self.settings.nyc_rate_window_ms
        )

    def _auth_params(self) -> dict[str, str]:
        if self.settings.nyc_app_token:
            return {"$$app_token": self.settings.nyc_app_token}
        return {}

    async def query(
        self,
        dataset: str,
        where: Optional[str] = None,
        select: Optional[str] = None,
        limit: int = DEFAULT_LIMIT,
        offset: Optional[int] = None,
        order: Optional[str] = None,
        normalize=None,
    ) -> CachedResponse:
        """Run a SoQL query against one dataset.

        Args:
            dataset: Socrata dataset id (e.g. '64uk-42ks')
            where: SoQL $where clause
            select: Comma-separated $select columns
            limit: $limit (default 1000)
            offset: $offset for paging
            order: $order clause

        Returns:
            CachedResponse with the list of raw rows (or normalized payload)
        """
        params: dict[str, Any] = {"$limit": limit}
        if where:
            params["$where"] = where
        if select:
            params["$select"] = select
        if offset:
            params["$offset"] = offset
        if order:
            params["$order"] = order
        return await self._request(f"{dataset}.json", params, normalize=normalize)

    # Borough-coded datasets (ACRIS/DOB use "1" for Manhattan, PLUTO uses "MN")

    async def get_permits(self, borough: str = "1") -> CachedResponse:
        """DOB permit issuance for a borough."""
        return await self.query(
            DATASETS["permits"], where=f"borough='{borough}'", select=PERMIT_FIELDS, limit=5000
        )

    async def get_acris_records(self, borough: str = "1") -> CachedResponse:
        return await self.query(
            DATASETS["acris"], where=f"borough='{borough}'", select=ACRIS_FIELDS, limit=5000
        )

    async def get_pluto(self, borough: str = "MN", limit: int = 10000) -> CachedResponse:
        """PLUTO tax lots normalized to PropertyRecords."""
        return await self.query(
            DATASETS["pluto"],
            where=f"borough='{borough}'",
            select=PLUTO_FIELDS,
            limit=limit,
            normalize=pluto_to_records,
        )

    # Manhattan conversion datasets

    async def get_conversion_permits(self, limit: int = 100) -> CachedResponse:
        return await self.query(
            DATASETS["permits"],
            where=(
                "borough='MANHATTAN' AND (work_type LIKE '%CONVERSION%' "
                "OR work_type LIKE '%ALTERATION%' OR work_type LIKE '%CHANGE OF USE%')"
            ),
            limit=limit,
            order="issuance_date DESC",
        )

    async def get_commercial_properties(self, limit: int = 200) -> CachedResponse:
        """Office, store and industrial-class lots in Manhattan, raw PLUTO rows."""
        return await self.query(
            DATASETS["pluto"],
            where="borough='MN' AND (bldgclass LIKE 'O%' OR bldgclass LIKE 'K%' OR bldgclass LIKE 'M%')",
            limit=limit,
            order="yearbuilt DESC",
        )

    async def get_office_sales(self, limit: int = 100) -> CachedResponse:
        return await self.query(
            DATASETS["acris_legals"],
            where="borough='1' AND document_type='DEED'",
            limit=limit,
            order="recorded_datetime DESC",
        )

    async def get_zoning(self, limit: int = 150) -> CachedResponse:
        return await self.query(DATASETS["zoning"], where="borough='M'", limit=limit)

    async def get_violations(self, limit: int = 100) -> CachedResponse:
        return await self.query(
            DATASETS["hpd_violations"],
            where="borough='MANHATTAN'",
            limit=limit,
            order="inspectiondate DESC",
        )

    async def get_dataset(self, kind: str, limit: Optional[int] = None) -> CachedResponse:
        """Fetch one of the Manhattan conversion datasets by name.

        Raises:
            KeyError: If ``kind`` is not a known dataset name
        """
        fetchers = {
            "conversion-permits": self.get_conversion_permits,
            "commercial-properties": self.get_commercial_properties,
            "office-sales": self.get_office_sales,
            "zoning": self.get_zoning,
            "violations": self.get_violations,
        }
        fetcher = fetchers[kind]
        return await fetcher(limit) if limit else await fetcher()
