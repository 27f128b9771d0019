"""
Search Session - One search surface from user input to rendered results.

Coordinates:
- The canonical SearchState (changed only through reduce)
- The primary query slot
- One facet count slot per rendered sidebar attribute
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping

from facetscope.config import Settings, get_settings
from facetscope.domains.dispatch import (
    FacetCount,
    FacetCountSync,
    QueryDispatcher,
    SearchBackend,
    SearchResult,
    SlotSnapshot,
)
from facetscope.domains.filters import FilterBuilder, FilterExpressionBuilder
from facetscope.domains.state import (
    PartialSearchState,
    SearchState,
    reduce,
    toggle_facet_value,
)

from .models import SessionView

logger = logging.getLogger(__name__)

__all__ = ["SearchSession"]


class SearchSession:
    """
    Search state plus the requests that keep each surface up to date.

    Example:
        >>> session = SearchSession(client, "movies", facet_attributes=["genre"])
        >>> view = await session.update(PartialSearchState(query="alien"))
        >>> view.results.value.nb_hits
        >>> view = await session.toggle_facet("genre", "Horror")
    """

    def __init__(
        self,
        backend: SearchBackend,
        index_name: str,
        facet_attributes: Iterable[str] = (),
        settings: Settings | None = None,
        builder: FilterBuilder | None = None,
    ) -> None:
        """
        Initialize session.

        Args:
            backend: Search backend adapter
            index_name: Index to search
            facet_attributes: Attributes rendered in the facet sidebar
            settings: Client settings (defaults to get_settings())
            builder: Filter expression builder
        """
        self._backend = backend
        self._settings = settings or get_settings()
        self._builder = builder or FilterExpressionBuilder()
        self._facet_attributes: tuple[str, ...] = tuple(dict.fromkeys(facet_attributes))
        self._start(index_name)

    def _start(self, index_name: str) -> None:
        """Fresh state and fresh slots for ``index_name``."""
        self._index_name = index_name
        self._state = SearchState.from_settings(self._settings)
        self._dispatcher = QueryDispatcher(
            self._backend,
            index_name,
            builder=self._builder,
            timeout=self._settings.request_timeout,
        )
        self._facets = FacetCountSync(
            self._backend,
            index_name,
            builder=self._builder,
            timeout=self._settings.request_timeout,
            max_facet_hits=self._settings.max_facet_hits,
        )
        logger.info("Search session started on index %s", index_name)

    @property
    def index_name(self) -> str:
        return self._index_name

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def facet_attributes(self) -> tuple[str, ...]:
        return self._facet_attributes

    @property
    def results(self) -> SlotSnapshot[SearchResult]:
        return self._dispatcher.latest

    @property
    def facet_counts(self) -> dict[str, SlotSnapshot[list[FacetCount]]]:
        counts = self._facets.counts
        return {a: counts[a] for a in self._facet_attributes if a in counts}

    def view(self) -> SessionView:
        """Everything the surfaces need to render, as one snapshot."""
        return SessionView(
            index_name=self._index_name,
            state=self._state,
            results=self.results,
            facet_counts=self.facet_counts,
        )

    def apply(self, partial: PartialSearchState) -> SearchState:
        """Reduce ``partial`` into the session state without querying."""
        self._state = reduce(self._state, partial)
        return self._state

    async def refresh(self, facet_queries: Mapping[str, str] | None = None) -> SessionView:
        """
        Query for the current state: primary results and facet counts.

        Raises:
            InvalidFilterValue: Nothing is sent when a numeric filter is bad
        """
        state = self._state
        # Fail before either request goes out
        self._builder.build(state.facet_selections, state.numeric_filters)

        await asyncio.gather(
            self._dispatcher.dispatch(state),
            self._facets.sync(state, self._facet_attributes, facet_queries),
        )
        return self.view()

    async def update(self, partial: PartialSearchState) -> SessionView:
        """Apply ``partial`` and refresh."""
        self.apply(partial)
        return await self.refresh()

    async def toggle_facet(self, attribute: str, value: str) -> SessionView:
        """Select or deselect one facet value and refresh."""
        return await self.update(toggle_facet_value(self._state, attribute, value))

    async def search_facet(self, attribute: str, facet_query: str) -> SlotSnapshot[list[FacetCount]]:
        """Search within one facet's values under the current refinements."""
        return await self._facets.sync_attribute(self._state, attribute, facet_query)

    def set_facet_attributes(self, attributes: Iterable[str]) -> None:
        """Change which attributes the sidebar renders."""
        self._facet_attributes = tuple(dict.fromkeys(attributes))
        self._facets.retain(self._facet_attributes)

    def switch_index(self, index_name: str) -> SearchState:
        """
        Move to another index with a fresh state.

        Slots are recreated, so responses still in flight for the old index
        can never reach the new view.
        """
        logger.info("Switching index %s -> %s", self._index_name, index_name)
        self._start(index_name)
        return self._state

    async def drain(self) -> None:
        """Wait for every request still in flight."""
        await asyncio.gather(self._dispatcher.drain(), self._facets.drain())
