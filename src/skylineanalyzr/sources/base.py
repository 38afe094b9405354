"""Shared fetch pipeline for external data sources.

Every source client subclasses BaseSourceClient and gets the same pipeline:

    cache lookup -> availability check -> rate-limit check -> fetch with retry
    -> normalize -> cache

A cache hit is returned with ``cached=True`` without touching the rate
limiter. An empty token bucket raises RateLimitExceeded. A fetch that still
fails after retries comes back as ``CachedResponse(success=False)`` rather
than an exception, so aggregate callers can carry on with partial data. So
do unconfigured sources and payloads that fail to normalize.

Example usage:
    class MySource(BaseSourceClient):
        name = "my_source"
        base_url = "https://example.com/api/"
        default_ttl_ms = 60_000

        async def get_things(self):
            return await self._request("things.json", {"limit": 10}, normalize=list)
"""

import copy
import json
import logging
import time
from abc import ABC
from typing import Any, Callable, Optional

import httpx

from ..config import Settings, config
from ..errors import RateLimitExceeded
from ..models.market import CachedResponse
from ..storage.cache import MemoryCache
from .ratelimit import TokenBucket
from .retry import default_jitter_ms, fetch_with_retry

logger = logging.getLogger(__name__)


def epoch_ms() -> int:
    return int(time.time() * 1000)


class BaseSourceClient(ABC):
    """Base class for rate-limited, cached, retried source clients.

    Attributes:
        name: Source name used in cache keys, errors and responses
        base_url: Prefix joined with each endpoint
        default_ttl_ms: Cache TTL for this source's responses
        unavailable_message: Failure reported while is_available() is False
    """

    name: str
    base_url: str = ""
    default_ttl_ms: int = 15 * 60 * 1000
    unavailable_message: str = "source is not configured"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[Any] = None,
        rate_limiter: Optional[TokenBucket] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable] = None,
        jitter_ms: Callable[[], float] = default_jitter_ms,
    ):
        """Initialize the client.

        Args:
            settings: Settings for timeouts and retries (module config by default)
            cache: MemoryCache or SQLiteCache; a fresh MemoryCache if omitted
            rate_limiter: Token bucket; None means the source is not throttled
            transport: httpx transport, e.g. httpx.MockTransport in tests
            sleep: Awaitable sleep used between retries
            jitter_ms: Random extra backoff in milliseconds
        """
        self.settings = settings or config
        self.cache = cache if cache is not None else MemoryCache(default_ttl_ms=self.default_ttl_ms)
        self.rate_limiter = rate_limiter
        self._transport = transport
        self._sleep = sleep
        self._jitter_ms = jitter_ms
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.request_timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def is_available(self) -> bool:
        """Check if this source is configured and ready to use."""
        return True

    def cache_key(self, endpoint: str, params: Optional[dict] = None) -> str:
        """Stable key from the endpoint and sorted parameters."""
        encoded = json.dumps(params or {}, sort_keys=True, default=str)
        return f"{self.name}:{endpoint}:{encoded}"

    def _auth_params(self) -> dict[str, str]:
        """Credentials appended to every request, kept out of cache keys."""
        return {}

    async def _fetch(self, endpoint: str, params: dict) -> Any:
        """Perform one HTTP GET and decode the JSON body."""
        client = await self._get_client()
        resp = await client.get(f"{self.base_url}{endpoint}", params={**params, **self._auth_params()})
        resp.raise_for_status()
        return resp.json()

    def _failure(self, message: str) -> CachedResponse:
        return CachedResponse(
            success=False,
            source_name=self.name,
            fetched_at_epoch_ms=epoch_ms(),
            error_message=message,
        )

    def _normalize(self, key: str, raw: Any, normalize: Callable[[Any], Any], cached: bool) -> CachedResponse:
        """Normalize a raw payload into a response.

        The normalizer gets its own copy, so callers never share objects
        with the cache. A payload that fails to normalize is dropped from
        the cache and reported as a failure.
        """
        try:
            payload = normalize(copy.deepcopy(raw))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"[{self.name}] malformed payload for {key}: {e}")
            if cached:
                self.cache.delete(key)
            return self._failure(f"Malformed {self.name} response: {e}")

        return CachedResponse(
            payload=payload,
            success=True,
            source_name=self.name,
            fetched_at_epoch_ms=epoch_ms(),
            cached=cached,
        )

    async def _request(
        self,
        endpoint: str,
        params: Optional[dict] = None,
        normalize: Optional[Callable[[Any], Any]] = None,
        ttl_ms: Optional[int] = None,
    ) -> CachedResponse:
        """Run the cache / rate-limit / retry pipeline for one endpoint.

        Raw payloads are cached once they normalize cleanly, and
        ``normalize`` runs again on every hit, so a SQLite-backed cache only
        ever stores plain JSON.

        Raises:
            RateLimitExceeded: If the token bucket is empty
        """
        params = params or {}
        normalize = normalize or (lambda raw: raw)
        key = self.cache_key(endpoint, params)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return self._normalize(key, cached, normalize, cached=True)

        if not self.is_available():
            logger.debug(f"[{self.name}] skipped {endpoint}: {self.unavailable_message}")
            return self._failure(self.unavailable_message)

        if self.rate_limiter is not None:
            if not self.rate_limiter.can_proceed():
                raise RateLimitExceeded(self.name, self.rate_limiter.wait_time_ms())
            self.rate_limiter.record_call()

        retry_kwargs = {}
        if self._sleep is not None:
            retry_kwargs["sleep"] = self._sleep
        try:
            raw = await fetch_with_retry(
                lambda: self._fetch(endpoint, params),
                max_retries=self.settings.max_retries,
                base_delay_ms=self.settings.retry_base_delay_ms,
                retry_on=(httpx.HTTPError, ValueError),
                jitter_ms=self._jitter_ms,
                **retry_kwargs,
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"[{self.name}] {endpoint} unavailable: {e}")
            return self._failure(str(e) or type(e).__name__)

        response = self._normalize(key, raw, normalize, cached=False)
        if response.success:
            self.cache.set(key, raw, self.default_ttl_ms if ttl_ms is None else ttl_ms)
        return response
