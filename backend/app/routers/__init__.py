"""API routers."""

from . import analysis, intelligence, market, properties

__all__ = ["analysis", "intelligence", "market", "properties"]
