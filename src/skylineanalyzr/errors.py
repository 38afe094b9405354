"""Exception hierarchy for SkylineAnalyzr.

The scoring engine only ever raises ValidationError, and only for
structurally invalid input. The data access layer raises RateLimitExceeded
and reports SourceUnavailable as a typed failure result; callers that need
an exception get one from CachedResponse.unwrap().
"""

from dataclasses import dataclass, field
from typing import Optional


class SkylineError(Exception):
    """Base exception for all SkylineAnalyzr errors."""


class ValidationError(SkylineError):
    """Raised when a public scoring function receives malformed input."""


class DataSourceError(SkylineError):
    """Base exception for external data source errors.

    Attributes:
        source: Name of the data source that raised the error
        message: Error description
    """

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"[{source}] {message}")


class RateLimitExceeded(DataSourceError):
    """Raised when a source's token bucket has no call available."""

    def __init__(self, source: str, wait_time_ms: int):
        self.wait_time_ms = wait_time_ms
        seconds = -(-wait_time_ms // 1000)
        super().__init__(source, f"Rate limit exceeded. Wait {seconds} seconds.")


class SourceUnavailable(DataSourceError):
    """An external call failed after all retries were exhausted."""


@dataclass
class PartialDataWarning:
    """Not a failure: attached to an aggregate result built from partial data."""

    degraded_sources: list[str] = field(default_factory=list)
    message: Optional[str] = None

    def __post_init__(self) -> None:
        if self.message is None:
            names = ", ".join(self.degraded_sources)
            self.message = f"Partial data: {names} unavailable"
