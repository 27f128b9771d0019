"""
Search Client - HTTP adapter for Algolia-compatible search servers.

Features:
- Async HTTP client with connection reuse
- Application ID / API key headers
- Typed errors (NetworkError, BackendError), no retries
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from facetscope.config import BackendError, NetworkError, Settings

logger = logging.getLogger(__name__)

__all__ = ["SearchClient"]


class SearchClient:
    """
    Search backend client.

    Example:
        >>> async with SearchClient("http://localhost:7700") as client:
        ...     data = await client.search("movies", {"query": "alien"})
    """

    def __init__(
        self,
        base_url: str = "http://localhost:7700",
        application_id: str | None = None,
        api_key: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize search client.

        Args:
            base_url: Search server URL
            application_id: Sent as x-algolia-application-id
            api_key: Sent as x-algolia-api-key
            timeout: Transport timeout in seconds
            transport: Custom httpx transport
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._headers: dict[str, str] = {}
        if application_id:
            self._headers["x-algolia-application-id"] = application_id
        if api_key:
            self._headers["x-algolia-api-key"] = api_key
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> SearchClient:
        """Create a client from configured settings."""
        return cls(
            base_url=settings.backend_url,
            application_id=settings.application_id,
            api_key=settings.api_key,
            # Transport limit sits above the slot timeout so slots can report it
            timeout=max(settings.request_timeout * 3, 30.0),
        )

    async def __aenter__(self) -> SearchClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    async def search(self, index_name: str, body: dict[str, Any]) -> dict[str, Any]:
        """
        Run a query against ``index_name``.

        Args:
            index_name: Index to search
            body: Query endpoint body

        Returns:
            Raw response JSON
        """
        return await self._post(f"/1/indexes/{quote(index_name, safe='')}/query", body)

    async def search_facet_values(
        self,
        index_name: str,
        facet_name: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Count values of one facet.

        Args:
            index_name: Index to search
            facet_name: Facet attribute
            body: {facetQuery, filters, maxFacetHits}

        Returns:
            Raw response JSON
        """
        path = (
            f"/1/indexes/{quote(index_name, safe='')}"
            f"/facets/{quote(facet_name, safe='')}/query"
        )
        return await self._post(path, body)

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        client = await self._get_client()
        try:
            response = await client.post(path, json=body)
        except httpx.TimeoutException as e:
            raise NetworkError(f"Timed out calling {path}", {"path": path}, timeout=True) from e
        except httpx.TransportError as e:
            raise NetworkError(f"Cannot reach {self.base_url}: {e}", {"path": path}) from e

        if response.is_error:
            raise BackendError(
                _error_message(response),
                status_code=response.status_code,
                details={"path": path},
            )

        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(f"Response from {path} is not JSON", details={"path": path}) from e
        if not isinstance(data, dict):
            raise BackendError(f"Response from {path} is not an object", details={"path": path})

        logger.debug("POST %s -> %d", path, response.status_code)
        return data

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None


def _error_message(response: httpx.Response) -> str:
    """Prefer the server's ``message`` field over the status line."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"]
    return f"HTTP {response.status_code} {response.reason_phrase}".strip()
