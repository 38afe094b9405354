"""Federal Reserve Economic Data (FRED) client.

FRED API: JSON observations per series, API key required
 - Commercial real estate loans (CREACBM027NBOG)
 - Construction spending (TTLCONS)
 - Mortgage rates, housing starts, permits and the wider macro catalog

Throttled at 120 calls/minute per process; responses cached 30 minutes.
"""

import logging
from datetime import date
from typing import Any, Optional

from ..config import Settings
from ..models.market import CachedResponse, EconomicSeries, Observation
from .base import BaseSourceClient
from .ratelimit import TokenBucket

logger = logging.getLogger(__name__)

# FRED marks a missing observation with a single dot
MISSING_VALUE = "."

SERIES_LABELS = {
    "MORTGAGE30US": "30-Year Fixed Rate Mortgage Average",
    "HOUST": "Housing Starts",
    "PERMIT": "New Private Housing Units Authorized by Building Permits",
    "CSUSHPISA": "S&P/Case-Shiller U.S. National Home Price Index",
    "CREACBM027NBOG": "Commercial Real Estate Loans, All Commercial Banks",
    "TLCOMCONS": "Total Construction Spending: Commercial",
    "TTLCONS": "Total Construction Spending",
    "RHORUSQ156N": "Homeownership Rate",
    "RRVRUSQ156N": "Rental Vacancy Rate",
    "FEDFUNDS": "Federal Funds Effective Rate",
    "TB3MS": "3-Month Treasury Bill",
    "GS5": "5-Year Treasury Constant Maturity",
    "GS10": "10-Year Treasury Constant Maturity",
    "GDP": "Gross Domestic Product",
    "UNRATE": "Unemployment Rate",
    "CPILFESL": "Core CPI (less food and energy)",
    "UMCSENT": "University of Michigan Consumer Sentiment",
    "SP500": "S&P 500",
    "VIXCLS": "CBOE Volatility Index",
}

SERIES_CATEGORIES = {
    "real-estate": [
        "MORTGAGE30US",
        "HOUST",
        "PERMIT",
        "CSUSHPISA",
        "CREACBM027NBOG",
        "TLCOMCONS",
        "RHORUSQ156N",
        "RRVRUSQ156N",
    ],
    "interest-rates": ["FEDFUNDS", "MORTGAGE30US", "TB3MS", "GS5", "GS10"],
    "economic": ["GDP", "UNRATE", "CPILFESL", "UMCSENT", "SP500", "VIXCLS"],
    "all": [
        "MORTGAGE30US",
        "FEDFUNDS",
        "HOUST",
        "PERMIT",
        "CREACBM027NBOG",
        "TLCOMCONS",
        "GDP",
        "UNRATE",
        "CPILFESL",
        "UMCSENT",
    ],
}

SERIES_START = date(2020, 1, 1)


def parse_observations(series_id: str, payload: dict) -> EconomicSeries:
    """Turn a raw ``series/observations`` payload into an EconomicSeries.

    Observations carrying the "." sentinel or an unparseable value are
    dropped. Output is oldest-first, so ``latest`` is the newest reading.
    """
    observations = []
    for obs in (payload or {}).get("observations", []):
        value_str = obs.get("value")
        if value_str is None or value_str == MISSING_VALUE:
            continue
        try:
            observations.append(Observation(
                date=date.fromisoformat(obs["date"]),
                value=float(value_str),
            ))
        except (KeyError, ValueError, TypeError):
            continue

    observations.sort(key=lambda o: o.date)
    return EconomicSeries(
        series_id=series_id,
        label=SERIES_LABELS.get(series_id, series_id),
        observations=observations,
    )


class FREDClient(BaseSourceClient):
    """Client for the FRED series observations API.

    Example:
        async with FREDClient() as fred:
            resp = await fred.get_commercial_re_loans()
            series = resp.unwrap()
            print(series.label, series.latest, series.direction)
    """

    name = "fred"
    base_url = "https://api.stlouisfed.org/fred/"
    default_ttl_ms = 30 * 60 * 1000
    unavailable_message = "FRED API key not configured"

    def __init__(self, settings: Optional[Settings] = None, rate_limiter: Optional[TokenBucket] = None, **kwargs):
        super().__init__(settings=settings, **kwargs)
        self.default_ttl_ms = self.settings.fred_cache_ttl_ms
        self.rate_limiter = rate_limiter or TokenBucket(
            self.settings.fred_rate_limit, self.settings.fred_rate_window_ms
        )

    def is_available(self) -> bool:
        return bool(self.settings.fred_api_key)

    def _auth_params(self) -> dict[str, str]:
        return {"api_key": self.settings.fred_api_key}

    async def get_economic_series(
        self,
        series_id: str,
        start: date | None = None,
        end: date | None = None,
        limit: int | None = None,
    ) -> CachedResponse:
        """Fetch observations for one series.

        Args:
            series_id: FRED series ID (e.g. 'MORTGAGE30US')
            start: observation_start
            end: observation_end
            limit: Maximum observations returned

        Returns:
            CachedResponse wrapping an EconomicSeries
        """
        params: dict[str, Any] = {"series_id": series_id, "file_type": "json"}
        if start:
            params["observation_start"] = start.isoformat()
        if end:
            params["observation_end"] = end.isoformat()
        if limit:
            params["limit"] = limit

        return await self._request(
            "series/observations",
            params,
            normalize=lambda raw: parse_observations(series_id, raw),
        )

    async def get_category(self, category: str = "all") -> dict[str, CachedResponse]:
        """Fetch every series in a catalog category.

        Unknown categories fall back to "all". Series are fetched one at a
        time so a category never bursts the rate limiter.
        """
        series_ids = SERIES_CATEGORIES.get(category, SERIES_CATEGORIES["all"])
        results = {}
        for series_id in series_ids:
            results[series_id] = await self.get_economic_series(series_id, limit=50)
        failed = [sid for sid, resp in results.items() if not resp.success]
        if failed:
            logger.warning(f"FRED category {category}: {len(failed)} series unavailable ({', '.join(failed)})")
        return results

    async def get_commercial_re_loans(self) -> CachedResponse:
        """Commercial real estate loans at all commercial banks since 2020."""
        return await self.get_economic_series("CREACBM027NBOG", start=SERIES_START, limit=100)

    async def get_construction_spending(self) -> CachedResponse:
        """Total construction spending since 2020."""
        return await self.get_economic_series("TTLCONS", start=SERIES_START, limit=100)

    async def get_mortgage_rate(self) -> CachedResponse:
        return await self.get_economic_series("MORTGAGE30US", start=SERIES_START)
