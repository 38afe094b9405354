"""Market-level metrics over a set of property records."""

import logging
from collections import Counter
from statistics import mean
from typing import Sequence

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from ..models.property import PropertyRecord, PropertyStatus

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


class _CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class MarketMetrics(_CamelModel):
    """Aggregate indicators for a set of records.

    ``conversion_rate`` is the share of completed projects and
    ``market_velocity`` the share that is available or under contract.
    """

    total_properties: int = 0
    total_value: float = 0
    avg_cap_rate: float = 0
    avg_price_per_sf: float = Field(default=0, alias="avgPricePerSF")
    conversion_rate: float = 0
    market_velocity: float = 0
    risk_score: int = Field(default=50, ge=0, le=100)
    opportunity_score: int = Field(default=50, ge=0, le=100)


class SubmarketStats(_CamelModel):
    count: int
    total_value: float
    avg_value: float
    avg_cap_rate: float
    avg_price_per_sf: float = Field(alias="avgPricePerSF")
    performance_score: int


class PropertyTypeStats(_CamelModel):
    count: int
    total_value: float
    avg_value: float
    avg_cap_rate: float
    conversion_potential: int


def _avg(values: Sequence[float]) -> float:
    return mean(values) if values else 0.0


def _clamp(value: int) -> int:
    return max(0, min(100, value))


def calculate_market_metrics(records: Sequence[PropertyRecord]) -> MarketMetrics:
    """Compute portfolio-wide metrics and market risk/opportunity scores."""
    total = len(records)
    if total == 0:
        return MarketMetrics()

    avg_cap_rate = _avg([r.cap_rate or 0 for r in records])
    avg_price_per_sf = _avg([r.effective_price_per_sf or 0 for r in records])

    completed = sum(1 for r in records if r.status == PropertyStatus.COMPLETED)
    active = sum(
        1 for r in records
        if r.status in (PropertyStatus.AVAILABLE, PropertyStatus.UNDER_CONTRACT)
    )
    conversion_rate = completed / total
    velocity = active / total

    risk = 50
    if avg_cap_rate > 6:
        risk -= 10
    if avg_cap_rate < 4:
        risk += 15
    if conversion_rate > 0.8:
        risk += 10  # saturation
    if velocity < 0.2:
        risk += 10

    opportunity = 50
    if avg_cap_rate > 5:
        opportunity += 15
    if velocity > 0.3:
        opportunity += 10
    if conversion_rate < 0.6:
        opportunity += 15

    return MarketMetrics(
        total_properties=total,
        total_value=sum(r.asking_price or 0 for r in records),
        avg_cap_rate=avg_cap_rate,
        avg_price_per_sf=avg_price_per_sf,
        conversion_rate=conversion_rate,
        market_velocity=velocity,
        risk_score=_clamp(risk),
        opportunity_score=_clamp(opportunity),
    )


def submarket_score(avg_cap_rate: float, avg_price_per_sf: float, count: int) -> int:
    score = 50

    if avg_cap_rate > 6:
        score += 20
    elif avg_cap_rate > 4:
        score += 10
    elif avg_cap_rate < 3:
        score -= 10

    if avg_price_per_sf < 600:
        score += 15
    elif avg_price_per_sf > 1000:
        score -= 10

    if count > 10:
        score += 10
    elif count < 3:
        score -= 5

    return _clamp(score)


def _group(records: Sequence[PropertyRecord], key) -> dict[str, list[PropertyRecord]]:
    groups: dict[str, list[PropertyRecord]] = {}
    for record in records:
        groups.setdefault(key(record), []).append(record)
    return groups


def analyze_submarkets(records: Sequence[PropertyRecord]) -> dict[str, SubmarketStats]:
    """Per-submarket totals, averages and a performance score, in first-seen order."""
    result = {}
    for name, group in _group(records, lambda r: r.submarket or UNKNOWN).items():
        total_value = sum(r.asking_price or 0 for r in group)
        avg_cap = _avg([r.cap_rate or 0 for r in group])
        avg_ppsf = _avg([r.effective_price_per_sf or 0 for r in group])
        result[name] = SubmarketStats(
            count=len(group),
            total_value=total_value,
            avg_value=total_value / len(group),
            avg_cap_rate=avg_cap,
            avg_price_per_sf=avg_ppsf,
            performance_score=submarket_score(avg_cap, avg_ppsf, len(group)),
        )
    return result


def conversion_potential(category_name: str) -> int:
    if "Office" in category_name:
        return 85
    if "Mixed-Use" in category_name:
        return 70
    if "Industrial" in category_name:
        return 60
    return 40


def analyze_property_types(records: Sequence[PropertyRecord]) -> dict[str, PropertyTypeStats]:
    result = {}
    groups = _group(
        records,
        lambda r: r.property_category.value if r.property_category else UNKNOWN,
    )
    for name, group in groups.items():
        total_value = sum(r.asking_price or 0 for r in group)
        result[name] = PropertyTypeStats(
            count=len(group),
            total_value=total_value,
            avg_value=total_value / len(group),
            avg_cap_rate=_avg([r.cap_rate or 0 for r in group]),
            conversion_potential=conversion_potential(name),
        )
    return result


def top_submarkets(submarkets: dict[str, SubmarketStats], n: int = 3) -> list[str]:
    ranked = sorted(submarkets.items(), key=lambda kv: kv[1].performance_score, reverse=True)
    return [name for name, _ in ranked[:n]]


def strategic_recommendations(
    metrics: MarketMetrics,
    submarkets: dict[str, SubmarketStats],
) -> list[str]:
    recommendations = []

    if metrics.opportunity_score > 70:
        recommendations.append("Strong market conditions - consider aggressive acquisition strategy")
    elif metrics.opportunity_score < 40:
        recommendations.append("Challenging market - focus on selective, high-quality opportunities")

    if metrics.avg_cap_rate > 6:
        recommendations.append("Above-average cap rates indicate good return potential")

    if metrics.conversion_rate < 0.5:
        recommendations.append("Low conversion rate suggests untapped conversion opportunities")

    if metrics.market_velocity > 0.4:
        recommendations.append("High market velocity - act quickly on opportunities")

    best = top_submarkets(submarkets)
    if best:
        recommendations.append(f"Focus on top-performing submarkets: {', '.join(best)}")

    return recommendations


def market_risk_factors(metrics: MarketMetrics, records: Sequence[PropertyRecord]) -> list[str]:
    risks = []

    if metrics.risk_score > 70:
        risks.append("High market risk - conduct thorough due diligence")

    if metrics.avg_cap_rate < 4:
        risks.append("Low cap rates may indicate overvalued market")

    if metrics.conversion_rate > 0.8:
        risks.append("High conversion rate may indicate market saturation")

    if metrics.market_velocity < 0.2:
        risks.append("Low market velocity suggests liquidity concerns")

    if records:
        counts = Counter(r.submarket or UNKNOWN for r in records)
        if max(counts.values()) / len(records) > 0.6:
            risks.append("High geographic concentration increases portfolio risk")

    return risks
