"""Scoring and analysis modules for conversion evaluation.

This package provides the scoring engine, financial projections, price
optimization, portfolio construction, generated commentary and batch
ranking.
"""

from .calculator import ConversionCalculator, project_financials, project_investment_returns
from .insights import (
    generate_recommendations,
    identify_opportunities,
    identify_risk_factors,
    investment_thesis,
)
from .optimizer import PriceOptimizer, optimize_pricing
from .portfolio import PortfolioConstraints, PortfolioOptimizer, optimize_portfolio
from .ranker import PropertyRanker
from .scoring import CONVERSION, INVESTMENT, MARKET, ScoringProfile, rank_batch, score_property

__all__ = [
    "CONVERSION",
    "INVESTMENT",
    "MARKET",
    "ScoringProfile",
    "score_property",
    "rank_batch",
    "ConversionCalculator",
    "project_financials",
    "project_investment_returns",
    "PriceOptimizer",
    "optimize_pricing",
    "PortfolioConstraints",
    "PortfolioOptimizer",
    "optimize_portfolio",
    "generate_recommendations",
    "identify_risk_factors",
    "identify_opportunities",
    "investment_thesis",
    "PropertyRanker",
]
