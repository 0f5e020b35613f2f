"""
================================================================================
MetaForge - Base Scraper Provider
================================================================================
Contract implemented by every external metadata source (builtin or plugin).

A provider declares `id`, `name` and `capabilities` and overrides the
coroutine methods matching those capabilities:

    search          search(query, locale)          -> List[SearchResult]
    info            get_info(id, locale)           -> *Info record
    tags            get_tags(id, locale)           -> List[Tag]
    characters      get_characters(id, locale)     -> List[GameCharacter]
    persons         get_persons(id, locale)        -> List[GamePerson | CharacterPerson]
    companies       get_companies(id, locale)      -> List[GameCompany]
    covers/backdrops/logos/icons/photos            -> List[str] (image URLs)

Methods receive the provider-internal id (already resolved by the engine).
Rate limiting, retries and caching are the provider's own business;
HttpProviderMixin gives provider authors a ready-made httpx client for it.
================================================================================
"""

from typing import Any, FrozenSet, List, Optional, Sequence
import time
import asyncio
import logging

import httpx

from ..models import SearchResult, Tag
from ..slots import CAPABILITY_METHODS

logger = logging.getLogger(__name__)


class BaseScraperProvider:
    """
    Base class for scraper providers.

    Every method is optional. A method counts as implemented when a
    subclass overrides it; the registry checks this against
    `capabilities` once, at registration.

    Example:
        class MyProvider(BaseScraperProvider):
            id = "my-db"
            name = "My Database"
            capabilities = ("search", "info", "covers")

            async def search(self, query, locale=None):
                ...

            async def get_info(self, provider_id, locale=None):
                ...

            async def get_covers(self, provider_id, locale=None):
                ...
    """

    # Provider identification
    id: str = ""
    name: str = ""

    # Explicit capability declaration (slots + "search")
    capabilities: Sequence[str] = ()

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def search(self, query: str, locale: Optional[str] = None) -> List[SearchResult]:
        raise NotImplementedError(f"{self.id} does not implement search")

    # =========================================================================
    # CORE METADATA
    # =========================================================================

    async def get_info(self, provider_id: str, locale: Optional[str] = None) -> Any:
        raise NotImplementedError(f"{self.id} does not implement get_info")

    async def get_tags(self, provider_id: str, locale: Optional[str] = None) -> List[Tag]:
        raise NotImplementedError(f"{self.id} does not implement get_tags")

    # =========================================================================
    # RELATED ENTITIES
    # =========================================================================

    async def get_characters(self, provider_id: str, locale: Optional[str] = None) -> List[Any]:
        raise NotImplementedError(f"{self.id} does not implement get_characters")

    async def get_persons(self, provider_id: str, locale: Optional[str] = None) -> List[Any]:
        raise NotImplementedError(f"{self.id} does not implement get_persons")

    async def get_companies(self, provider_id: str, locale: Optional[str] = None) -> List[Any]:
        raise NotImplementedError(f"{self.id} does not implement get_companies")

    # =========================================================================
    # MEDIA ASSETS
    # =========================================================================

    async def get_covers(self, provider_id: str, locale: Optional[str] = None) -> List[str]:
        raise NotImplementedError(f"{self.id} does not implement get_covers")

    async def get_backdrops(self, provider_id: str, locale: Optional[str] = None) -> List[str]:
        raise NotImplementedError(f"{self.id} does not implement get_backdrops")

    async def get_logos(self, provider_id: str, locale: Optional[str] = None) -> List[str]:
        raise NotImplementedError(f"{self.id} does not implement get_logos")

    async def get_icons(self, provider_id: str, locale: Optional[str] = None) -> List[str]:
        raise NotImplementedError(f"{self.id} does not implement get_icons")

    async def get_photos(self, provider_id: str, locale: Optional[str] = None) -> List[str]:
        raise NotImplementedError(f"{self.id} does not implement get_photos")

    def __repr__(self):
        return f"<{self.__class__.__name__}(id='{self.id}', capabilities={list(self.capabilities)})>"


def implemented_capabilities(provider: Any) -> FrozenSet[str]:
    """
    Capabilities whose method the provider actually implements.

    Subclasses of BaseScraperProvider implement a method by overriding it;
    duck-typed providers implement it by having a callable attribute.
    """
    implemented = set()
    for capability, method in CAPABILITY_METHODS.items():
        if isinstance(provider, BaseScraperProvider):
            if getattr(type(provider), method, None) is not getattr(BaseScraperProvider, method):
                implemented.add(capability)
        elif callable(getattr(provider, method, None)):
            implemented.add(capability)
    return frozenset(implemented)


# =============================================================================
# HTTP HELPER FOR PROVIDER AUTHORS
# =============================================================================

class RateLimiter:
    """
    Minimum-interval rate limiter for API requests.

    Serializes callers so that consecutive requests are at least
    60 / requests_per_minute seconds apart.
    """

    def __init__(self, requests_per_minute: int):
        self.requests_per_minute = requests_per_minute
        self.min_interval = 60.0 / requests_per_minute
        self.last_request = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self):
        async with self._lock:
            elapsed = time.monotonic() - self.last_request
            if self.last_request and elapsed < self.min_interval:
                wait_time = self.min_interval - elapsed
                logger.debug(f"Rate limit: waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)
            self.last_request = time.monotonic()


class HttpProviderMixin:
    """
    Rate-limited JSON client with retries, for providers that talk HTTP.

    Subclasses set `base_url` and may tune `rate_limit` (requests per
    minute), `timeout`, `max_retries` and `retry_delay`.

    Retries:
      - 429: exponential backoff (retry_delay * 2^attempt)
      - 5xx and transport errors: fixed retry_delay
      - other 4xx: raised immediately
    """

    base_url: str = ""
    rate_limit: int = 60
    timeout: float = 10
    max_retries: int = 3
    retry_delay: float = 1.0
    user_agent: str = "MetaForge/1.0"

    _client: Optional[httpx.AsyncClient] = None
    _rate_limiter: Optional[RateLimiter] = None
    _transport: Optional[httpx.AsyncBaseTransport] = None

    @property
    def rate_limiter(self) -> RateLimiter:
        if self._rate_limiter is None:
            self._rate_limiter = RateLimiter(self.rate_limit)
        return self._rate_limiter

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={'User-Agent': self.user_agent, 'Accept': 'application/json'},
            )
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _retry_delay_for(self, error: httpx.HTTPError, attempt: int) -> Optional[float]:
        """Seconds to wait before retrying `error`, or None to give up."""
        if isinstance(error, httpx.HTTPStatusError):
            status = error.response.status_code
            if status == 429:
                return self.retry_delay * (2 ** attempt)
            if status < 500:
                return None
        if attempt >= self.max_retries - 1:
            return None
        return self.retry_delay

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        """
        Send a rate-limited request and decode the JSON body.

        Raises:
            httpx.HTTPError: the last failure once retries are exhausted
        """
        client = await self._get_client()
        name = getattr(self, 'id', self.__class__.__name__)
        last_error: Optional[httpx.HTTPError] = None

        for attempt in range(self.max_retries):
            await self.rate_limiter.acquire()
            try:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPError as e:
                last_error = e
                delay = self._retry_delay_for(e, attempt)
                if delay is None:
                    raise
                logger.warning(
                    f"{name}: {method} {url} failed ({e}), "
                    f"retry {attempt + 1}/{self.max_retries} in {delay}s"
                )
                await asyncio.sleep(delay)

        if last_error is None:
            raise RuntimeError(f"{name}: max_retries must be at least 1")
        raise last_error

    async def _get_json(self, url: str, **kwargs) -> Any:
        return await self._request('GET', url, **kwargs)

    async def _post_json(self, url: str, payload: Any, **kwargs) -> Any:
        return await self._request('POST', url, json=payload, **kwargs)
