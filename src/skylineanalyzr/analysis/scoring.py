"""Multi-factor property scoring.

One deterministic engine parameterized by a scoring profile. A profile names
the dimensions it uses, their weight points (summing to 100) and a few rule
switches; every sub-score function is shared between profiles.

The engine performs no I/O. Missing attributes fall back to fixed defaults
and never raise; only structurally invalid input (``None``, non-mappings,
values pydantic rejects) raises ValidationError.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

import pydantic

from ..errors import ValidationError
from ..models.market import MarketContext
from ..models.property import PropertyRecord, PropertyStatus, ScoreBreakdown

logger = logging.getLogger(__name__)


# Prestige of the submarket
LOCATION_SCORES = {
    "Financial District": 85,
    "Midtown South": 90,
    "Tribeca": 95,
    "SoHo": 88,
    "Chelsea": 82,
    "Hell's Kitchen": 78,
    "Upper East Side": 75,
    "Midtown East": 70,
    "Lower East Side": 80,
    "Greenwich Village": 92,
}
DEFAULT_LOCATION_SCORE = 65

# Transaction velocity, not prestige
MARKET_SCORES = {
    "Financial District": 85,
    "Midtown South": 90,
    "Tribeca": 95,
    "SoHo": 88,
    "Chelsea": 82,
    "Hell's Kitchen": 85,
}
DEFAULT_MARKET_SCORE = 70

EMERGING_SUBMARKETS = frozenset({"Hell's Kitchen", "Lower East Side", "Long Island City"})
HIGH_LIQUIDITY_SUBMARKETS = frozenset({"Midtown South", "Financial District", "Tribeca"})

# Age assumed when year_built is unknown
DEFAULT_BUILDING_AGE = 50

STATUS_MODIFIERS = {
    PropertyStatus.AVAILABLE: 10,
    PropertyStatus.UNDER_CONTRACT: -20,
}

DIMENSIONS = ("location", "building", "financial", "market", "risk", "growth", "liquidity")


@dataclass(frozen=True)
class ScoringProfile:
    """Named weight table plus rule switches.

    Attributes:
        name: Profile tag
        weights: Integer weight points per dimension, summing to 100
        risk_base: Starting value of the risk score
        status_modifiers: Apply listing-status bonus/penalty to the market score
        age_risk_adjustment: Apply building-age bonus/penalty to the risk score
    """

    name: Literal["conversion", "investment", "market"]
    weights: dict[str, int] = field(default_factory=dict)
    risk_base: int = 80
    status_modifiers: bool = False
    age_risk_adjustment: bool = False

    def __post_init__(self):
        unknown = set(self.weights) - set(DIMENSIONS)
        if unknown:
            raise ValueError(f"Unknown scoring dimensions: {sorted(unknown)}")
        if sum(self.weights.values()) != 100:
            raise ValueError(f"Weights for profile {self.name!r} must sum to 100")

    @property
    def dimensions(self) -> tuple[str, ...]:
        return tuple(d for d in DIMENSIONS if d in self.weights)


CONVERSION = ScoringProfile(
    name="conversion",
    weights={"location": 25, "building": 20, "financial": 25, "market": 20, "risk": 10},
    risk_base=80,
)

INVESTMENT = ScoringProfile(
    name="investment",
    weights={"location": 20, "financial": 25, "market": 15, "risk": 15, "growth": 15, "liquidity": 10},
    risk_base=70,
    status_modifiers=True,
    age_risk_adjustment=True,
)

MARKET = ScoringProfile(
    name="market",
    weights={"location": 20, "financial": 20, "market": 40, "liquidity": 20},
    status_modifiers=True,
)

PROFILES = {p.name: p for p in (CONVERSION, INVESTMENT, MARKET)}


def get_profile(profile: "ScoringProfile | str") -> ScoringProfile:
    """Resolve a profile instance or name."""
    if isinstance(profile, ScoringProfile):
        return profile
    try:
        return PROFILES[str(profile).lower()]
    except KeyError:
        raise ValidationError(
            f"Unknown scoring profile {profile!r}; expected one of {sorted(PROFILES)}"
        ) from None


def clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, value))


def round_half_up(points_total: int) -> int:
    """Round a sum of (weight points x score) to an integer score.

    Weight points sum to 100, so dividing by 100 gives the weighted average.
    Integer arithmetic keeps .5 cases exact.
    """
    return (points_total + 50) // 100


# =========================================================================
# Sub-scores
# =========================================================================


def location_score(record: PropertyRecord) -> int:
    return LOCATION_SCORES.get(record.submarket or "", DEFAULT_LOCATION_SCORE)


def building_score(record: PropertyRecord, current_year: int) -> int:
    age = record.age(current_year)
    if age is None:
        age = DEFAULT_BUILDING_AGE

    if 80 <= age <= 120:
        score = 85  # pre-war
    elif 40 <= age < 80:
        score = 75
    elif age < 40:
        score = 65
    else:
        score = 60

    building_class = (record.building_class or "").upper()
    if building_class.startswith("O"):
        score += 10
    elif building_class.startswith("K"):
        score += 5

    return clamp(score)


def financial_score(record: PropertyRecord) -> int:
    price_per_sf = record.effective_price_per_sf
    if not price_per_sf:
        return 60
    if price_per_sf < 600:
        return 90
    if price_per_sf < 800:
        return 80
    if price_per_sf < 1000:
        return 70
    return 50


def market_score(record: PropertyRecord, profile: ScoringProfile) -> int:
    score = MARKET_SCORES.get(record.submarket or "", DEFAULT_MARKET_SCORE)
    if profile.status_modifiers and record.status is not None:
        score += STATUS_MODIFIERS.get(record.status, 0)
    return clamp(score)


def risk_score(record: PropertyRecord, profile: ScoringProfile, current_year: int) -> int:
    """Higher is safer."""
    score = profile.risk_base

    zoning = (record.zoning_code or "").upper()
    if "R" in zoning:
        score += 10
    elif "C" in zoning:
        score += 5
    elif "M" in zoning:
        score -= 5

    if record.gross_sf is not None:
        if record.gross_sf > 100_000:
            score -= 10
        elif record.gross_sf < 5_000:
            score -= 5

    if profile.age_risk_adjustment:
        age = record.age(current_year)
        if age is not None:
            if 80 <= age <= 120:
                score += 10
            elif age > 120:
                score -= 15

    return clamp(score)


def growth_score(record: PropertyRecord) -> int:
    score = 60
    if record.submarket in EMERGING_SUBMARKETS:
        score += 20
    category = record.property_category
    if category is not None and category.is_office and record.status != PropertyStatus.COMPLETED:
        score += 15  # conversion upside
    return clamp(score)


def liquidity_score(record: PropertyRecord) -> int:
    score = 50
    if record.submarket in HIGH_LIQUIDITY_SUBMARKETS:
        score += 20
    price = record.asking_price or 0
    if 0 < price < 10_000_000:
        score += 15
    elif price > 50_000_000:
        score -= 10
    return clamp(score)


# =========================================================================
# Public operations
# =========================================================================


def coerce_record(record: Any) -> PropertyRecord:
    """Validate input into a PropertyRecord or raise ValidationError."""
    if isinstance(record, PropertyRecord):
        return record
    if record is None:
        raise ValidationError("Property record is required")
    if not isinstance(record, Mapping):
        raise ValidationError(
            f"Property record must be a PropertyRecord or mapping, got {type(record).__name__}"
        )
    try:
        return PropertyRecord.model_validate(dict(record))
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid property record: {e}") from e


def score_property(
    record: PropertyRecord | Mapping[str, Any],
    context: MarketContext | None = None,
    profile: ScoringProfile | str = CONVERSION,
) -> ScoreBreakdown:
    """Score one property under a profile.

    Args:
        record: PropertyRecord or a mapping that validates into one
        context: Market context; only ``current_year`` is read here
        profile: Profile instance or name

    Returns:
        ScoreBreakdown with the profile's dimensions populated and
        ``rank`` unset

    Raises:
        ValidationError: If the record is structurally invalid
    """
    record = coerce_record(record)
    profile = get_profile(profile)
    context = context or MarketContext()
    year = context.current_year

    calculators = {
        "location": lambda: location_score(record),
        "building": lambda: building_score(record, year),
        "financial": lambda: financial_score(record),
        "market": lambda: market_score(record, profile),
        "risk": lambda: risk_score(record, profile, year),
        "growth": lambda: growth_score(record),
        "liquidity": lambda: liquidity_score(record),
    }
    sub_scores = {dim: calculators[dim]() for dim in profile.dimensions}

    points = sum(profile.weights[dim] * score for dim, score in sub_scores.items())
    overall = clamp(round_half_up(points))

    return ScoreBreakdown(
        property_id=record.id,
        address=record.address,
        profile=profile.name,
        overall=overall,
        **sub_scores,
    )


def rank_batch(
    records: Iterable[PropertyRecord | Mapping[str, Any]],
    context: MarketContext | None = None,
    profile: ScoringProfile | str = CONVERSION,
) -> list[ScoreBreakdown]:
    """Score every record and rank by overall score, best first.

    Ties keep input order (Python's sort is stable), so the earlier record
    gets the better rank. Re-running on the same input gives the same ranks.
    """
    if records is None:
        raise ValidationError("Records are required")
    context = context or MarketContext()
    scored = [score_property(r, context, profile) for r in records]
    ordered = sorted(scored, key=lambda s: s.overall, reverse=True)
    ranked = [s.model_copy(update={"rank": i}) for i, s in enumerate(ordered, start=1)]
    logger.debug(f"Ranked {len(ranked)} properties with {get_profile(profile).name} profile")
    return ranked


def score_with_records(
    records: Iterable[PropertyRecord | Mapping[str, Any]],
    context: MarketContext | None = None,
    profile: ScoringProfile | str = CONVERSION,
) -> list[tuple[PropertyRecord, ScoreBreakdown]]:
    """Like rank_batch but keeps each breakdown paired with its record."""
    context = context or MarketContext()
    pairs = []
    for r in records:
        record = coerce_record(r)
        pairs.append((record, score_property(record, context, profile)))
    pairs.sort(key=lambda p: p[1].overall, reverse=True)
    return [(rec, s.model_copy(update={"rank": i})) for i, (rec, s) in enumerate(pairs, start=1)]
