"""External data sources for conversion analysis.

This package provides rate-limited, cached and retried clients for NYC Open
Data and FRED, clearly labelled synthetic market providers, and a manager
that aggregates them with graceful degradation.
"""

from .base import BaseSourceClient
from .fred import FREDClient
from .manager import AggregateResult, SourceManager
from .nyc_open_data import NYCOpenDataClient
from .ratelimit import TokenBucket
from .retry import fetch_with_retry
from .synthetic import SyntheticIndexClient, SyntheticMarketClient, generate_properties

__all__ = [
    "AggregateResult",
    "BaseSourceClient",
    "FREDClient",
    "NYCOpenDataClient",
    "SourceManager",
    "SyntheticIndexClient",
    "SyntheticMarketClient",
    "TokenBucket",
    "fetch_with_retry",
    "generate_properties",
]
