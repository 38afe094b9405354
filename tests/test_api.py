"""Tests for the FastAPI application."""

import httpx
import pytest
from fastapi.testclient import TestClient

from backend.app.main import create_app
from skylineanalyzr.sources.manager import SourceManager

FRED_PAYLOAD = {"observations": [{"date": "2024-01-01", "value": "4.5"}]}


def make_transport(fred_status: int = 200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.stlouisfed.org":
            if fred_status != 200:
                return httpx.Response(fred_status)
            return httpx.Response(200, json=FRED_PAYLOAD)
        return httpx.Response(200, json=[{"zonedist": "R10"}])

    return httpx.MockTransport(handler)


@pytest.fixture
def make_client(settings, dataset, fake_sleep):
    """Factory for a TestClient around injected state."""
    clients = []

    def factory(fred_status: int = 200, app_settings=None, raise_server_exceptions: bool = True) -> TestClient:
        app_settings = app_settings or settings
        sources = SourceManager(app_settings, transport=make_transport(fred_status), sleep=fake_sleep)
        app = create_app(dataset=dataset, sources=sources, settings=app_settings)
        client = TestClient(app, raise_server_exceptions=raise_server_exceptions)
        client.__enter__()
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


@pytest.fixture
def tribeca_payload(tribeca_office) -> dict:
    return tribeca_office.model_dump(mode="json", by_alias=True)


class TestRoot:
    """Test root and health endpoints."""

    def test_root(self, client):
        assert client.get("/").json()["name"] == "SkylineAnalyzr API"

    def test_health(self, client):
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["properties"] == 3
        assert body["sources"]["fred"]["available"] is True


class TestConversionAnalysis:
    """Test /api/analysis."""

    def test_empty_properties(self, client):
        response = client.post("/api/analysis/conversion", json={"properties": []})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "No properties provided for analysis"}

    def test_comprehensive(self, client, tribeca_payload):
        response = client.post("/api/analysis/conversion", json={"properties": [tribeca_payload]})
        body = response.json()

        assert response.status_code == 200
        assert body["propertiesAnalyzed"] == 1
        assert body["scoredProperties"][0]["score"]["overall"] == 91
        assert body["marketMetrics"]["avgConversionScore"] == 91
        assert body["marketMetrics"]["topSubmarkets"] == ["Tribeca"]
        assert "analyses" not in body

    def test_property_analysis(self, client, tribeca_payload):
        body = client.post(
            "/api/analysis/conversion",
            json={"properties": [tribeca_payload], "analysisType": "risk"},
        ).json()

        assert len(body["analyses"]) == 1
        assert "marketMetrics" not in body

    def test_price_filter(self, client, tribeca_payload):
        body = client.post(
            "/api/analysis/conversion",
            json={"properties": [tribeca_payload], "filters": {"priceRange": [0, 1_000_000]}},
        ).json()

        assert body["propertiesAnalyzed"] == 0
        assert body["scoredProperties"] == []

    def test_price_range_bounds(self, client, tribeca_payload):
        """priceRangeMin and priceRangeMax filter like the priceRange pair."""
        excluded = client.post(
            "/api/analysis/conversion",
            json={"properties": [tribeca_payload], "filters": {"priceRangeMin": 0, "priceRangeMax": 1}},
        ).json()
        included = client.post(
            "/api/analysis/conversion",
            json={"properties": [tribeca_payload], "filters": {"priceRangeMin": 20_000_000}},
        ).json()

        assert excluded["propertiesAnalyzed"] == 0
        assert included["propertiesAnalyzed"] == 1

    def test_explicit_bound_overrides_pair(self, client, tribeca_payload):
        body = client.post(
            "/api/analysis/conversion",
            json={
                "properties": [tribeca_payload],
                "filters": {"priceRange": [0, 1_000_000], "priceRangeMax": 30_000_000},
            },
        ).json()
        assert body["propertiesAnalyzed"] == 1

    def test_unknown_analysis_type(self, client, tribeca_payload):
        response = client.post(
            "/api/analysis/conversion",
            json={"properties": [tribeca_payload], "analysisType": "astrology"},
        )

        assert response.status_code == 422
        assert response.json()["success"] is False

    def test_unknown_profile(self, client, tribeca_payload):
        response = client.post(
            "/api/analysis/conversion",
            json={"properties": [tribeca_payload], "profile": "speculative"},
        )
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_invalid_property(self, client):
        response = client.post("/api/analysis/conversion", json={"properties": [{"units": -1}]})
        assert response.status_code == 400

    def test_capabilities(self, client):
        caps = client.get("/api/analysis/capabilities").json()["capabilities"]
        assert set(caps["profiles"]) == {"conversion", "investment", "market"}


class TestProperties:
    """Test /api/properties."""

    def test_list_with_filter(self, client):
        body = client.get("/api/properties", params={"submarket": "Tribeca"}).json()

        assert body["total"] == 1
        assert body["data"][0]["id"] == "tribeca-1"
        assert body["analytics"]["boroughBreakdown"] == {"Manhattan": 1}

    def test_pagination(self, client):
        body = client.get("/api/properties", params={"limit": 2, "page": 2}).json()

        assert body["total"] == 3
        assert len(body["data"]) == 1
        assert body["pagination"]["totalPages"] == 2

    def test_get_property(self, client):
        assert client.get("/api/properties/tribeca-1").json()["data"]["submarket"] == "Tribeca"

    def test_missing_property(self, client):
        response = client.get("/api/properties/nope")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Property not found"}

    def test_add_property(self, client):
        response = client.post("/api/properties", json={"id": "new-1", "submarket": "Chelsea"})

        assert response.json()["success"] is True
        assert client.get("/api/properties/new-1").status_code == 200

    def test_expand_and_stats(self, client):
        body = client.post("/api/properties/expand", json={"count": 2}).json()

        assert len(body["newProperties"]) == 2
        assert client.get("/api/properties/stats").json()["stats"]["totalProperties"] == 5

    def test_expand_validation(self, client):
        response = client.post("/api/properties/expand", json={"count": 0})

        assert response.status_code == 422
        assert response.json()["success"] is False


class TestIntelligence:
    """Test /api/intelligence."""

    def test_investment_scoring(self, client):
        body = client.post("/api/intelligence/investment-scoring", json={}).json()

        assert len(body["properties"]) == 3
        assert body["properties"][0]["investmentProjections"] is not None
        assert body["summary"]["totalAnalyzed"] == 3

    def test_market_insights(self, client):
        body = client.get("/api/intelligence/market-insights").json()

        assert body["marketMetrics"]["totalProperties"] == 3
        assert set(body["submarketAnalysis"]) == {"Midtown East", "Tribeca", "Harlem"}

    def test_optimize_by_id(self, client):
        body = client.post("/api/intelligence/optimize", json={"propertyId": "tribeca-1"}).json()

        assert body["comparablesConsidered"] == 2
        assert body["optimization"]["propertyId"] == "tribeca-1"

    def test_optimize_unknown_id(self, client):
        response = client.post("/api/intelligence/optimize", json={"propertyId": "nope"})
        assert response.status_code == 404

    def test_optimize_requires_property(self, client):
        response = client.post("/api/intelligence/optimize", json={})
        assert response.status_code == 400

    def test_portfolio_optimization(self, client):
        body = client.post(
            "/api/intelligence/portfolio-optimization",
            json={"constraints": {"maxInvestment": 30_000_000}},
        ).json()
        portfolio = body["portfolio"]

        assert body["candidatesConsidered"] == 3
        assert [h["property"]["id"] for h in portfolio["properties"]] == ["tribeca-1", "harlem-1"]
        assert portfolio["totalInvestment"] == 24_000_000
        assert "expectedROI" in portfolio

    def test_portfolio_invalid_style(self, client):
        response = client.post(
            "/api/intelligence/portfolio-optimization",
            json={"constraints": {"investmentStyle": "reckless"}},
        )
        assert response.status_code == 422


class TestMarket:
    """Test /api/market."""

    def test_fred_category(self, client):
        body = client.get("/api/market/fred", params={"category": "interest-rates"}).json()

        assert body["seriesCount"] == 5
        assert body["data"]["GS10"]["latest_value"] == 4.5
        assert body["degradedSources"] == []

    def test_fred_rate_limited(self, make_client, settings):
        """An exhausted token bucket maps to 429."""
        throttled = settings.model_copy(update={"fred_rate_limit": 1})
        response = make_client(app_settings=throttled).get(
            "/api/market/fred", params={"category": "interest-rates"}
        )

        assert response.status_code == 429
        assert response.json()["waitTimeMs"] > 0

    def test_nyc_dataset(self, client):
        body = client.get("/api/market/nyc/zoning").json()
        assert body["count"] == 1
        assert body["success"] is True

    def test_unknown_nyc_dataset(self, client):
        assert client.get("/api/market/nyc/parking-tickets").status_code == 404

    def test_snapshot(self, client):
        body = client.get("/api/market/snapshot").json()

        assert body["synthetic"] is True
        assert body["snapshot"]["manhattan"]["pricePerSqFt"] == 1456

    def test_comprehensive_degraded(self, make_client):
        """FRED outages degrade the combined view instead of failing it."""
        body = make_client(fred_status=500).get("/api/market/comprehensive").json()

        assert body["success"] is True
        assert body["degradedSources"] == ["commercial_loans", "construction_spending", "mortgage_rate"]
        assert body["context"]["mortgageRate"] is None
        assert body["context"]["medianPricePerSf"] == 1456


class TestErrors:
    """Test error mapping."""

    def test_unhandled_error(self, make_client, dataset, monkeypatch):
        """Unexpected exceptions become a 500 JSON body."""
        client = make_client(raise_server_exceptions=False)

        def broken():
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(dataset, "stats", broken)
        response = client.get("/api/properties/stats")

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "disk on fire"}
