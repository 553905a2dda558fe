"""SourceAdapter: abstract contract for external CV data sources."""
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Type

import httpx

from ...schemas.external_data import SourceId, SourcePayload
from ..cache import CacheService

logger = logging.getLogger(__name__)


class SourceAdapter(ABC):
    """
    Fetches data about one person from one external source and shapes it
    into that source's schema.

    Implementations return an empty/default payload when the person simply
    has no data there, and raise SourceFetchError on network or API failure.
    Results are cached under ``<source>_adapter:<identifier>``.
    """

    source_id: SourceId
    schema: Type[SourcePayload]

    def __init__(
        self,
        cache: Optional[CacheService] = None,
        client: Optional[httpx.AsyncClient] = None,
        cache_ttl: int = 3600,
    ):
        self.cache = cache
        self.client = client
        self.cache_ttl = cache_ttl

    def cache_key(self, identifier: str) -> str:
        return f"{self.source_id.value}_adapter:{identifier}"

    async def fetch_data(self, identifier: str) -> SourcePayload:
        """Return the payload for ``identifier``, from cache when possible."""
        key = self.cache_key(identifier)
        if self.cache is not None:
            cached = await self.cache.get(key)
            if cached is not None:
                logger.info(f"[{self.source_id.value.upper()}] Returning cached data for {identifier}")
                return self.schema.model_validate(cached)

        data = await self._fetch(identifier)

        if self.cache is not None:
            await self.cache.set(key, data.model_dump(mode="json"), self.cache_ttl)
        return data

    @abstractmethod
    async def _fetch(self, identifier: str) -> SourcePayload:
        ...

    def _client_options(self) -> dict:
        """Keyword arguments for the httpx.AsyncClient created per fetch."""
        return {}

    def _request_options(self) -> dict:
        """Per-request headers, timeout and redirect policy for every GET."""
        return {"timeout": 30.0}

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        """
        Yield the injected client, or a fresh one closed on exit.

        An injected client is shared and owned by the caller, so only
        ``_request_options`` applies to it; client-level settings such as
        the redirect limit stay the caller's.
        """
        if self.client is not None:
            yield self.client
            return
        async with httpx.AsyncClient(**self._client_options()) as client:
            yield client

    async def _get(self, client: httpx.AsyncClient, url: str, **kwargs) -> httpx.Response:
        options = self._request_options()
        headers = {**options.pop("headers", {}), **kwargs.pop("headers", {})}
        return await client.get(url, headers=headers, **{**options, **kwargs})
