"""
Dispatch Contracts - Interfaces for dispatch domain.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SearchBackend(Protocol):
    """Contract for the remote search index."""

    async def search(
        self,
        index_name: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Run a query.

        Args:
            index_name: Index to search
            body: Query endpoint request body

        Returns:
            Raw response ({hits, nbHits, page, nbPages, ...})

        Raises:
            NetworkError: Backend unreachable or timed out
            BackendError: Error status or unreadable body
        """
        ...

    async def search_facet_values(
        self,
        index_name: str,
        facet_name: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Count values of one facet attribute.

        Args:
            index_name: Index to search
            facet_name: Facet attribute
            body: {facetQuery, filters, maxFacetHits}

        Returns:
            Raw response ({facetHits: [{value, highlighted, count}], ...})
        """
        ...
