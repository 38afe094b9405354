"""Tests for the source clients, run against httpx.MockTransport."""

import asyncio
from datetime import date, datetime

import httpx
import pytest

from skylineanalyzr.errors import RateLimitExceeded, SourceUnavailable
from skylineanalyzr.models.market import EconomicSeries, HomeValueIndex, MarketSnapshot
from skylineanalyzr.models.property import Borough, PropertyCategory
from skylineanalyzr.sources.fred import SERIES_CATEGORIES, FREDClient, parse_observations
from skylineanalyzr.sources.nyc_open_data import (
    NYCOpenDataClient,
    analyze_conversion_potential,
    pluto_to_records,
)
from skylineanalyzr.sources.ratelimit import TokenBucket
from skylineanalyzr.sources.synthetic import (
    SyntheticIndexClient,
    SyntheticMarketClient,
    generate_properties,
)
from skylineanalyzr.storage.cache import SQLiteCache

FRED_PAYLOAD = {
    "observations": [
        {"date": "2024-01-01", "value": "4.5"},
        {"date": "2024-02-01", "value": "."},
        {"date": "2023-12-01", "value": "4.0"},
    ]
}

PLUTO_ROWS = [
    {
        "bbl": "1001930001.00000000",
        "borough": "MN",
        "address": "100 HUDSON STREET",
        "zonedist1": "C6-2A",
        "bldgclass": "O4",
        "bldgarea": "40000",
        "unitsres": "0",
        "yearbuilt": "1920",
    },
    {
        "bbl": "1001930002",
        "borough": "MN",
        "address": "VACANT LOT",
        "bldgclass": "V1",
        "bldgarea": "0",
        "yearbuilt": "0",
    },
    {"bbl": "1001930003", "borough": "MN", "unitsres": "-3"},
]


class Recorder:
    """MockTransport handler that records requests and replays one response."""

    def __init__(self, status_code: int = 200, json=None):
        self.status_code = status_code
        self.json = json if json is not None else {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.json)


def fred_client(settings, handler, **kwargs) -> FREDClient:
    return FREDClient(
        settings=settings,
        transport=httpx.MockTransport(handler),
        jitter_ms=lambda: 0,
        **kwargs,
    )


class TestParseObservations:
    """Test FRED payload normalization."""

    def test_drops_missing_and_sorts(self):
        series = parse_observations("MORTGAGE30US", FRED_PAYLOAD)

        assert [o.date for o in series.observations] == [date(2023, 12, 1), date(2024, 1, 1)]
        assert series.latest.value == 4.5
        assert series.direction == "up"
        assert series.label == "30-Year Fixed Rate Mortgage Average"

    def test_unparseable_values_skipped(self):
        series = parse_observations("X", {"observations": [{"date": "2024-01-01", "value": "n/a"}]})
        assert series.observations == []
        assert series.direction == "stable"
        assert series.label == "X"

    def test_empty_payload(self):
        assert parse_observations("X", {}).latest is None


class TestFREDClient:
    """Test the FRED client pipeline."""

    def test_fetch_and_cache(self, settings, fake_sleep):
        """Second identical call is served from cache without HTTP."""
        handler = Recorder(json=FRED_PAYLOAD)

        async def run():
            async with fred_client(settings, handler, sleep=fake_sleep) as fred:
                first = await fred.get_mortgage_rate()
                second = await fred.get_mortgage_rate()
            return first, second

        first, second = asyncio.run(run())

        assert first.success and not first.cached
        assert second.success and second.cached
        assert isinstance(second.payload, EconomicSeries)
        assert second.payload.latest.value == 4.5
        assert len(handler.requests) == 1

        params = handler.requests[0].url.params
        assert params["series_id"] == "MORTGAGE30US"
        assert params["api_key"] == "test-key"
        assert params["observation_start"] == "2020-01-01"

    def test_cache_key_excludes_credentials(self, settings):
        fred = fred_client(settings, Recorder())
        assert "test-key" not in fred.cache_key("series/observations", {"series_id": "GS10"})

    def test_rate_limited(self, settings, clock):
        """An empty bucket raises before any request is sent."""
        handler = Recorder(json=FRED_PAYLOAD)
        bucket = TokenBucket(capacity=1, refill_period_ms=60_000, clock=clock)

        async def run():
            fred = fred_client(settings, handler, rate_limiter=bucket)
            await fred.get_economic_series("GS10")
            try:
                await fred.get_economic_series("GS5")
            finally:
                await fred.close()

        with pytest.raises(RateLimitExceeded) as exc_info:
            asyncio.run(run())

        assert exc_info.value.wait_time_ms == 60_000
        assert exc_info.value.source == "fred"
        assert len(handler.requests) == 1

    def test_cache_hit_skips_rate_limit(self, settings, clock):
        """Cached responses do not spend tokens."""
        handler = Recorder(json=FRED_PAYLOAD)
        bucket = TokenBucket(capacity=1, refill_period_ms=60_000, clock=clock)

        async def run():
            fred = fred_client(settings, handler, rate_limiter=bucket)
            await fred.get_economic_series("GS10")
            resp = await fred.get_economic_series("GS10")
            await fred.close()
            return resp

        assert asyncio.run(run()).cached

    def test_failure_after_retries(self, settings, fake_sleep):
        """A server error becomes a failed response after retrying."""
        handler = Recorder(status_code=500)

        async def run():
            fred = fred_client(settings, handler, sleep=fake_sleep)
            resp = await fred.get_construction_spending()
            await fred.close()
            return resp

        resp = asyncio.run(run())

        assert not resp.success
        assert resp.error_message
        assert resp.source_name == "fred"
        assert len(handler.requests) == 3
        assert fake_sleep.delays == [pytest.approx(0.01), pytest.approx(0.02)]
        with pytest.raises(SourceUnavailable):
            resp.unwrap()

    def test_failures_not_cached(self, settings, fake_sleep):
        handler = Recorder(status_code=503)

        async def run():
            fred = fred_client(settings, handler, sleep=fake_sleep)
            await fred.get_economic_series("GS10")
            await fred.get_economic_series("GS10")
            await fred.close()

        asyncio.run(run())
        assert len(handler.requests) == 6

    def test_category_falls_back_to_all(self, settings):
        handler = Recorder(json=FRED_PAYLOAD)

        async def run():
            fred = fred_client(settings, handler)
            results = await fred.get_category("crypto")
            await fred.close()
            return results

        results = asyncio.run(run())
        assert list(results) == SERIES_CATEGORIES["all"]
        assert all(r.success for r in results.values())

    def test_sqlite_cache_shared_across_clients(self, settings, tmp_path):
        """Raw payloads persisted in SQLite normalize again on a hit."""
        handler = Recorder(json=FRED_PAYLOAD)
        cache = SQLiteCache(cache_dir=tmp_path)

        async def run():
            first = fred_client(settings, handler, cache=cache)
            await first.get_mortgage_rate()
            await first.close()
            second = fred_client(settings, handler, cache=cache)
            resp = await second.get_mortgage_rate()
            await second.close()
            return resp

        resp = asyncio.run(run())
        assert resp.cached
        assert resp.payload.latest.value == 4.5
        assert len(handler.requests) == 1

    def test_availability(self, settings):
        assert fred_client(settings, Recorder()).is_available()
        keyless = settings.model_copy(update={"fred_api_key": None})
        assert not fred_client(keyless, Recorder()).is_available()

    def test_keyless_fails_without_requests(self, settings, fake_sleep):
        """Without an API key nothing is sent and nothing is retried."""
        keyless = settings.model_copy(update={"fred_api_key": None})
        handler = Recorder(json=FRED_PAYLOAD)

        async def run():
            fred = fred_client(keyless, handler, sleep=fake_sleep)
            results = await fred.get_category("interest-rates")
            await fred.close()
            return results

        results = asyncio.run(run())

        assert not any(r.success for r in results.values())
        assert results["GS10"].error_message == "FRED API key not configured"
        assert handler.requests == []
        assert fake_sleep.delays == []

    def test_malformed_payload_not_cached(self, settings, fake_sleep):
        """A 200 with an unexpected body fails cleanly and is refetched next time."""
        handler = Recorder(json=[1, 2])

        async def run():
            fred = fred_client(settings, handler, sleep=fake_sleep)
            first = await fred.get_economic_series("GS10")
            second = await fred.get_economic_series("GS10")
            await fred.close()
            return fred, first, second

        fred, first, second = asyncio.run(run())

        assert not first.success
        assert first.error_message.startswith("Malformed fred response")
        assert not second.success and not second.cached
        assert len(handler.requests) == 2
        assert fred.cache.size() == 0
        with pytest.raises(SourceUnavailable):
            first.unwrap()

    def test_malformed_cache_entry_evicted(self, settings):
        """A cached payload that no longer normalizes is dropped and refetched."""
        handler = Recorder(json=FRED_PAYLOAD)
        fred = fred_client(settings, handler)
        key = fred.cache_key("series/observations", {"series_id": "GS10", "file_type": "json"})
        fred.cache.set(key, "garbage")

        async def run():
            first = await fred.get_economic_series("GS10")
            second = await fred.get_economic_series("GS10")
            await fred.close()
            return first, second

        first, second = asyncio.run(run())

        assert not first.success
        assert second.success and not second.cached
        assert second.payload.latest.value == 4.5
        assert len(handler.requests) == 1


class TestNYCOpenData:
    """Test the NYC Open Data client."""

    def test_pluto_normalized(self, settings):
        handler = Recorder(json=PLUTO_ROWS)

        async def run():
            async with NYCOpenDataClient(settings=settings, transport=httpx.MockTransport(handler)) as nyc:
                return await nyc.get_pluto()

        resp = asyncio.run(run())
        office, lot = resp.payload

        assert len(resp.payload) == 2
        assert office.id == "1001930001"
        assert office.borough == Borough.MANHATTAN
        assert office.property_category == PropertyCategory.OFFICE_BUILDINGS
        assert office.gross_sf == 40000
        assert office.year_built == 1920
        assert office.units is None
        assert lot.gross_sf is None
        assert lot.year_built is None
        assert lot.property_category == PropertyCategory.DEVELOPMENT_SITE

        params = handler.requests[0].url.params
        assert params["$where"] == "borough='MN'"
        assert params["$limit"] == "10000"
        assert "$$app_token" not in params

    def test_app_token_sent(self, settings):
        handler = Recorder(json=[])
        tokened = settings.model_copy(update={"nyc_app_token": "abc"})

        async def run():
            async with NYCOpenDataClient(settings=tokened, transport=httpx.MockTransport(handler)) as nyc:
                return await nyc.get_zoning()

        asyncio.run(run())
        assert handler.requests[0].url.params["$$app_token"] == "abc"

    def test_dataset_by_name(self, settings):
        handler = Recorder(json=[{"job__": "1"}])

        async def run():
            async with NYCOpenDataClient(settings=settings, transport=httpx.MockTransport(handler)) as nyc:
                return await nyc.get_dataset("conversion-permits", limit=5)

        resp = asyncio.run(run())
        assert resp.payload == [{"job__": "1"}]
        assert handler.requests[0].url.params["$limit"] == "5"
        assert "ipu4-2q9a" in handler.requests[0].url.path

    def test_cached_rows_not_shared(self, settings):
        """Mutating a response leaves the cached rows intact."""
        handler = Recorder(json=[{"job__": "1"}])

        async def run():
            async with NYCOpenDataClient(settings=settings, transport=httpx.MockTransport(handler)) as nyc:
                first = await nyc.get_dataset("conversion-permits")
                first.payload.append({"job__": "injected"})
                first.payload[0]["job__"] = "changed"
                return await nyc.get_dataset("conversion-permits")

        second = asyncio.run(run())
        assert second.cached
        assert second.payload == [{"job__": "1"}]

    def test_unknown_dataset(self, settings):
        nyc = NYCOpenDataClient(settings=settings, transport=httpx.MockTransport(Recorder()))
        with pytest.raises(KeyError):
            asyncio.run(nyc.get_dataset("parking-tickets"))

    def test_pluto_rows_helper(self):
        assert [r.id for r in pluto_to_records(PLUTO_ROWS)] == ["1001930001", "1001930002"]
        assert pluto_to_records([]) == []

    def test_analyze_conversion_potential(self):
        properties = [{"yearbuilt": "1920", "bldgclass": "O4"}, {"yearbuilt": "1950", "bldgclass": "K1"}]
        permits = [{"issuance_date": "2025-05-01T00:00:00"}] * 3
        analysis = analyze_conversion_potential(properties, permits, as_of=date(2025, 6, 1))

        assert analysis["averageAge"] == 90
        assert analysis["conversionOpportunities"] == 2
        assert analysis["marketActivity"] == "LOW"
        assert analysis["recommendations"] == ["Focus on pre-war buildings with good bones"]


class TestSynthetic:
    """Test the synthetic providers."""

    def test_market_snapshot(self, settings):
        client = SyntheticMarketClient(settings=settings)

        async def run():
            return await client.get_market_snapshot(), await client.get_market_snapshot()

        first, second = asyncio.run(run())
        assert isinstance(first.payload, MarketSnapshot)
        assert first.payload.synthetic
        assert first.payload.manhattan.price_per_sq_ft == 1456
        assert second.cached

    def test_home_value_index(self, settings):
        resp = asyncio.run(SyntheticIndexClient(settings=settings).get_home_value_index())
        index = resp.unwrap()

        assert isinstance(index, HomeValueIndex)
        assert index.synthetic
        assert index.manhattan.forecast.one_year == 0.089

    def test_generate_properties_seeded(self):
        """The same seed and reference time give the same records."""
        as_of = datetime(2025, 6, 1)
        first = generate_properties(20, seed=3, as_of=as_of)
        second = generate_properties(20, seed=3, as_of=as_of)

        assert first == second
        assert [r.id for r in first[:2]] == ["synthetic-0000", "synthetic-0001"]
        assert all(r.borough == Borough.MANHATTAN for r in first)

    def test_generated_records_consistent(self):
        for record in generate_properties(50, seed=11, as_of=datetime(2025, 6, 1)):
            assert record.price_per_sf_consistent()
            assert 2.5 <= record.cap_rate <= 8.5
            if record.property_category == PropertyCategory.DEVELOPMENT_SITE:
                assert record.gross_sf is None
            else:
                assert record.gross_sf is not None

    def test_start_index(self):
        records = generate_properties(2, seed=1, start_index=60)
        assert [r.id for r in records] == ["synthetic-0060", "synthetic-0061"]
