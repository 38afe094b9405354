"""Pytest fixtures and test utilities."""

from datetime import date

import pytest

from skylineanalyzr.analysis import ConversionCalculator, PropertyRanker
from skylineanalyzr.config import Settings
from skylineanalyzr.dataset import Dataset
from skylineanalyzr.models.market import MarketContext
from skylineanalyzr.models.property import CostAssumptions, PropertyRecord


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class RecordingSleep:
    """Async sleep that returns at once and remembers each delay (seconds)."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(start=1_000.0)


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the environment, with fast retries."""
    return Settings(
        _env_file=None,
        fred_api_key="test-key",
        nyc_app_token=None,
        max_retries=2,
        retry_base_delay_ms=10,
        cache_backend="memory",
        cache_dir=tmp_path / "cache",
        dataset_path=None,
        synthetic_count=12,
        synthetic_seed=7,
    )


@pytest.fixture
def context_2025() -> MarketContext:
    """Market context pinned to mid-2025."""
    return MarketContext(current_year=2025, as_of=date(2025, 6, 1))


@pytest.fixture
def calculator() -> ConversionCalculator:
    """ConversionCalculator with the default assumptions."""
    return ConversionCalculator(CostAssumptions())


@pytest.fixture
def ranker(context_2025: MarketContext, calculator: ConversionCalculator) -> PropertyRanker:
    """Conversion-profile PropertyRanker pinned to 2025."""
    return PropertyRanker(context=context_2025, calculator=calculator)


@pytest.fixture
def tribeca_office() -> PropertyRecord:
    """Pre-war Tribeca office building zoned residential."""
    return PropertyRecord(
        id="tribeca-1",
        address="100 Hudson Street",
        borough="Manhattan",
        submarket="Tribeca",
        property_category="Office Buildings",
        gross_sf=40000,
        year_built=1920,
        zoning_code="R10",
        asking_price=22_000_000,
        price_per_sf=550,
        cap_rate=5.0,
        status="Available",
        eligible_for_tax_program=True,
    )


@pytest.fixture
def midtown_tower() -> PropertyRecord:
    """Large, expensive Midtown East office tower."""
    return PropertyRecord(
        id="midtown-1",
        address="300 Park Avenue",
        borough="Manhattan",
        submarket="Midtown East",
        property_category="Office Buildings",
        gross_sf=150_000,
        year_built=1985,
        zoning_code="C5-3",
        asking_price=180_000_000,
        price_per_sf=1200,
        cap_rate=3.5,
        status="Under Contract",
    )


@pytest.fixture
def harlem_site() -> PropertyRecord:
    """Small Harlem mixed-use building with no pricing."""
    return PropertyRecord(
        id="harlem-1",
        address="20 West 125th Street",
        borough="Manhattan",
        submarket="Harlem",
        property_category="Mixed-Use Buildings",
        gross_sf=4000,
        year_built=1960,
        zoning_code="M1-5",
        status="Completed",
    )


@pytest.fixture
def sample_records(
    tribeca_office: PropertyRecord,
    midtown_tower: PropertyRecord,
    harlem_site: PropertyRecord,
) -> list[PropertyRecord]:
    """List of sample records."""
    return [midtown_tower, tribeca_office, harlem_site]


@pytest.fixture
def dataset(sample_records: list[PropertyRecord]) -> Dataset:
    return Dataset(records=sample_records, seed=99)

