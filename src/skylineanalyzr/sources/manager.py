"""Source manager: owns the clients and aggregates them.

``fetch_all`` fans out to every source at once and never fails as a
whole; a source that errors or is rate limited is reported in
``degraded_sources`` and the remaining data is returned with a
PartialDataWarning attached.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

import httpx

from ..config import Settings, config
from ..errors import PartialDataWarning
from ..models.market import CachedResponse, EconomicSeries, MarketContext
from ..storage.cache import MemoryCache, SQLiteCache
from .base import epoch_ms
from .fred import FREDClient
from .nyc_open_data import NYCOpenDataClient
from .synthetic import SyntheticIndexClient, SyntheticMarketClient

logger = logging.getLogger(__name__)


@dataclass
class AggregateResult:
    """Results of one fan-out over every source."""

    results: dict[str, CachedResponse] = field(default_factory=dict)
    degraded_sources: list[str] = field(default_factory=list)
    warning: Optional[PartialDataWarning] = None

    def payload(self, key: str) -> Any:
        """Payload of a successful result, else None."""
        resp = self.results.get(key)
        if resp is None or not resp.success:
            return None
        return resp.payload

    def to_dict(self) -> dict:
        return {
            "success": True,
            "results": {k: v.model_dump(mode="json", by_alias=True) for k, v in self.results.items()},
            "degradedSources": self.degraded_sources,
            "warning": self.warning.message if self.warning else None,
        }


def create_cache(settings: Settings):
    """Build the response cache selected by ``settings.cache_backend``."""
    if settings.cache_backend == "sqlite":
        return SQLiteCache(cache_dir=settings.cache_dir)
    return MemoryCache()


class SourceManager:
    """Owns one client per external source, sharing a single cache.

    Example:
        manager = SourceManager()
        aggregate = await manager.fetch_all()
        if aggregate.warning:
            print(aggregate.warning.message)
        context = manager.build_context(aggregate)
        await manager.close()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[Any] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep=None,
    ):
        self.settings = settings or config
        self.cache = cache if cache is not None else create_cache(self.settings)
        shared = {"settings": self.settings, "cache": self.cache, "transport": transport, "sleep": sleep}
        self.nyc = NYCOpenDataClient(**shared)
        self.fred = FREDClient(**shared)
        self.market = SyntheticMarketClient(**shared)
        self.index = SyntheticIndexClient(**shared)

    @property
    def clients(self) -> list:
        return [self.nyc, self.fred, self.market, self.index]

    def _requests(self) -> dict:
        return {
            "dob_permits": self.nyc.get_permits(),
            "acris_records": self.nyc.get_acris_records(),
            "pluto": self.nyc.get_pluto(),
            "commercial_loans": self.fred.get_commercial_re_loans(),
            "construction_spending": self.fred.get_construction_spending(),
            "mortgage_rate": self.fred.get_mortgage_rate(),
            "market_snapshot": self.market.get_market_snapshot(),
            "home_value_index": self.index.get_home_value_index(),
        }

    async def fetch_all(self) -> AggregateResult:
        """Fetch every source concurrently, tolerating individual failures."""
        requests = self._requests()
        outcomes = await asyncio.gather(*requests.values(), return_exceptions=True)

        results: dict[str, CachedResponse] = {}
        for key, outcome in zip(requests, outcomes):
            if isinstance(outcome, Exception):
                logger.warning(f"Source {key} failed: {outcome}")
                outcome = CachedResponse(
                    success=False,
                    source_name=key,
                    fetched_at_epoch_ms=epoch_ms(),
                    error_message=str(outcome) or type(outcome).__name__,
                )
            results[key] = outcome

        degraded = [key for key, resp in results.items() if not resp.success]
        warning = PartialDataWarning(degraded_sources=degraded) if degraded else None
        if warning:
            logger.info(warning.message)
        return AggregateResult(results=results, degraded_sources=degraded, warning=warning)

    @staticmethod
    def build_context(aggregate: AggregateResult, as_of: Optional[date] = None) -> MarketContext:
        """Normalize an aggregate into the MarketContext the scoring engine reads."""
        as_of = as_of or date.today()

        mortgage_rate = None
        rates = aggregate.payload("mortgage_rate")
        if isinstance(rates, EconomicSeries) and rates.latest:
            mortgage_rate = rates.latest.value

        median_price_per_sf = None
        snapshot = aggregate.payload("market_snapshot")
        if snapshot is not None:
            median_price_per_sf = snapshot.manhattan.price_per_sq_ft

        # Recent-first, as consumed by the price optimizer
        trends: list[float] = []
        loans = aggregate.payload("commercial_loans")
        if isinstance(loans, EconomicSeries):
            trends = [obs.value for obs in reversed(loans.observations)]

        return MarketContext(
            current_year=as_of.year,
            as_of=as_of,
            mortgage_rate=mortgage_rate,
            median_price_per_sf=median_price_per_sf,
            trends=trends,
            degraded_sources=list(aggregate.degraded_sources),
        )

    async def market_context(self, as_of: Optional[date] = None) -> tuple[MarketContext, AggregateResult]:
        aggregate = await self.fetch_all()
        return self.build_context(aggregate, as_of), aggregate

    def health(self) -> dict[str, dict]:
        """Availability and remaining rate-limit tokens per source."""
        status = {}
        for client in self.clients:
            limiter = client.rate_limiter
            status[client.name] = {
                "available": client.is_available(),
                "tokensRemaining": int(limiter.tokens) if limiter else None,
            }
        return status

    async def close(self):
        for client in self.clients:
            await client.close()
