"""Conversion and investment return projections.

This module turns a property record (and, for investment returns, its score
breakdown) into the cost, revenue and return figures shown next to a score.
"""

import logging
import math
from datetime import date
from typing import Optional

from ..config import config
from ..models.property import (
    CostAssumptions,
    FinancialProjection,
    InvestmentProjection,
    PropertyRecord,
    ScoreBreakdown,
)
from .scoring import INVESTMENT, growth_score, liquidity_score, location_score, risk_score

logger = logging.getLogger(__name__)

# Projection horizon for ROI
ROI_YEARS = 5

# Used when the record has no cap rate
DEFAULT_BASE_ROI = 5.0


class ConversionCalculator:
    """Office-to-residential conversion arithmetic.

    Example:
        calc = ConversionCalculator()
        projection = calc.project_financials(record)
        print(f"Break-even: {projection.break_even_months} months")
    """

    def __init__(self, cost_assumptions: Optional[CostAssumptions] = None):
        """Initialize calculator.

        Args:
            cost_assumptions: Cost and rent assumptions. Defaults to the
                values in Settings.
        """
        self.costs = cost_assumptions or config.cost_assumptions()

    def cap_rate(self, total_investment: float, annual_revenue: float) -> float:
        """Cap Rate = (Annual Revenue / Total Investment) × 100"""
        if total_investment <= 0:
            return 0.0
        return annual_revenue / total_investment * 100

    def estimated_units(self, gross_sf: int) -> int:
        return math.floor(gross_sf / self.costs.average_unit_sf)

    def project_financials(self, record: PropertyRecord) -> FinancialProjection:
        """Project the economics of converting a building to rentals.

        A record without GSF is costed at ``default_gross_sf``; a record
        without an asking price has zero acquisition cost.
        """
        costs = self.costs
        acquisition_cost = record.asking_price or 0
        gross_sf = record.gross_sf or costs.default_gross_sf

        conversion_cost = gross_sf * costs.per_sf_conversion_cost
        total_investment = acquisition_cost + conversion_cost

        units = self.estimated_units(gross_sf)
        annual_revenue = units * costs.monthly_rent_per_unit * 12
        cap_rate = self.cap_rate(total_investment, annual_revenue)

        if annual_revenue > 0:
            break_even_months = math.ceil(total_investment / (annual_revenue / 12))
            payback_years = total_investment / annual_revenue
        else:
            break_even_months = 0
            payback_years = 0.0

        roi = cap_rate * ROI_YEARS + costs.assumed_annual_appreciation_pct * ROI_YEARS

        return FinancialProjection(
            acquisition_cost=acquisition_cost,
            conversion_cost=conversion_cost,
            total_investment=total_investment,
            estimated_units=units,
            projected_annual_revenue=annual_revenue,
            projected_cap_rate=cap_rate,
            break_even_months=break_even_months,
            projected_roi=roi,
            payback_period_years=payback_years,
        )

    def project_investment_returns(
        self,
        record: PropertyRecord,
        breakdown: ScoreBreakdown,
        current_year: Optional[int] = None,
    ) -> InvestmentProjection:
        """Score-adjusted ROI, payback and risk-adjusted return.

        Dimensions missing from the breakdown (scored with a profile that
        does not use them) are computed with the investment profile rules.
        """
        location = breakdown.location if breakdown.location is not None else location_score(record)
        growth = breakdown.growth if breakdown.growth is not None else growth_score(record)
        liquidity = breakdown.liquidity if breakdown.liquidity is not None else liquidity_score(record)
        if breakdown.risk is not None:
            risk = breakdown.risk
        else:
            risk = risk_score(record, INVESTMENT, current_year or date.today().year)

        cap_rate = record.cap_rate or 0
        price = record.asking_price or 0

        base_roi = cap_rate if cap_rate > 0 else DEFAULT_BASE_ROI
        roi = base_roi * (1 + location / 100 * 0.3 + growth / 100 * 0.2)

        annual_cash_flow = price * (cap_rate / 100)
        payback = price / annual_cash_flow if annual_cash_flow > 0 else 0.0

        risk_adjusted = roi * (risk / 100)

        return InvestmentProjection(
            projected_roi=round(roi, 2),
            payback_period=round(payback, 2),
            risk_adjusted_return=round(risk_adjusted, 2),
            liquidity_score=liquidity,
        )


def project_financials(
    record: PropertyRecord,
    cost_assumptions: Optional[CostAssumptions] = None,
) -> FinancialProjection:
    """Module-level shortcut for ConversionCalculator.project_financials."""
    return ConversionCalculator(cost_assumptions).project_financials(record)


def project_investment_returns(
    record: PropertyRecord,
    breakdown: ScoreBreakdown,
) -> InvestmentProjection:
    return ConversionCalculator().project_investment_returns(record, breakdown)
