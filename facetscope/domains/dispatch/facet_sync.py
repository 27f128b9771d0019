"""
Facet Count Sync - Sidebar counts that ignore each facet's own selections.

For every rendered facet attribute one auxiliary request is sent whose filter
leaves out that attribute's clause, so the counts answer "how many hits if I
also picked this value". Each attribute is its own slot: staleness, timeouts
and failures never leak from one attribute to another.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from facetscope.config.errors import BackendError, FacetScopeError
from facetscope.domains.filters import FilterBuilder, FilterExpressionBuilder
from facetscope.domains.state.models import SearchState

from .codec import encode_facet_values_request
from .contracts import SearchBackend
from .models import FacetCount, RequestEnvelope, RequestKind, SearchError, SlotSnapshot
from .slots import Slot, settle_within

logger = logging.getLogger(__name__)

__all__ = ["FacetCountSync", "parse_facet_hits"]

FacetSnapshot = SlotSnapshot[list[FacetCount]]


def parse_facet_hits(attribute: str, raw: Any) -> list[FacetCount]:
    """
    Read ``facetHits`` into counts ordered by count desc, then value.

    Raises:
        BackendError: Body is not a facet-values response
    """
    if not isinstance(raw, Mapping) or not isinstance(raw.get("facetHits"), list):
        raise BackendError(f"Malformed facet response for '{attribute}'")

    counts = []
    for hit in raw["facetHits"]:
        try:
            counts.append(
                FacetCount(
                    attribute=attribute,
                    value=str(hit["value"]),
                    count=int(hit["count"]),
                    highlighted=hit.get("highlighted"),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            raise BackendError(f"Malformed facet hit for '{attribute}': {hit!r}") from e

    counts.sort(key=lambda c: (-c.count, c.value))
    return counts


class FacetCountSync:
    """
    Keeps per-attribute facet counts in step with the search state.

    Example:
        >>> sync = FacetCountSync(client, "movies")
        >>> counts = await sync.sync(state, ["genre", "year"])
        >>> [(c.value, c.count) for c in counts["genre"].value]
    """

    def __init__(
        self,
        backend: SearchBackend,
        index_name: str,
        builder: FilterBuilder | None = None,
        timeout: float | None = 10.0,
        max_facet_hits: int = 10,
    ) -> None:
        """
        Initialize facet sync.

        Args:
            backend: Search backend adapter
            index_name: Index to query
            builder: Filter expression builder
            timeout: Seconds before a facet shows a timeout (None waits forever)
            max_facet_hits: Values requested per facet
        """
        self._backend = backend
        self._index_name = index_name
        self._builder = builder or FilterExpressionBuilder()
        self._timeout = timeout
        self._max_facet_hits = max_facet_hits
        self._slots: dict[str, Slot[list[FacetCount]]] = {}
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def counts(self) -> dict[str, FacetSnapshot]:
        """Current snapshot for every tracked attribute."""
        return {attribute: slot.snapshot for attribute, slot in self._slots.items()}

    def snapshot(self, attribute: str) -> FacetSnapshot | None:
        slot = self._slots.get(attribute)
        return slot.snapshot if slot else None

    def retain(self, attributes: Iterable[str]) -> None:
        """Stop tracking attributes that are no longer rendered."""
        keep = set(attributes)
        for attribute in list(self._slots):
            if attribute not in keep:
                del self._slots[attribute]
                logger.debug("Dropped facet slot %s", attribute)

    async def sync(
        self,
        state: SearchState,
        attributes: Iterable[str],
        facet_queries: Mapping[str, str] | None = None,
    ) -> dict[str, FacetSnapshot]:
        """
        Refresh counts for every rendered attribute.

        Args:
            state: Search intent
            attributes: Facet attributes shown in the sidebar
            facet_queries: Optional per-attribute search within facet values

        Returns:
            Attribute to snapshot, for the requested attributes

        Raises:
            InvalidFilterValue: Raised before any request is sent
        """
        facet_queries = facet_queries or {}
        ordered = list(dict.fromkeys(attributes))

        # Build everything first so a bad numeric value blocks every request
        bodies = {
            attribute: encode_facet_values_request(
                state,
                attribute,
                facet_query=facet_queries.get(attribute, ""),
                max_facet_hits=self._max_facet_hits,
                builder=self._builder,
            )
            for attribute in ordered
        }

        waits = [self._start(state, attribute, body) for attribute, body in bodies.items()]
        await asyncio.gather(*waits)
        return {attribute: self._slots[attribute].snapshot for attribute in ordered}

    async def sync_attribute(
        self,
        state: SearchState,
        attribute: str,
        facet_query: str = "",
    ) -> FacetSnapshot:
        """Refresh a single attribute, e.g. while typing in its search box."""
        result = await self.sync(state, [attribute], {attribute: facet_query})
        return result[attribute]

    async def _start(self, state: SearchState, attribute: str, body: dict[str, Any]) -> None:
        slot = self._slots.setdefault(attribute, Slot(f"facet:{attribute}"))
        envelope = slot.issue(state, RequestKind.FACET, attribute=attribute)

        task = asyncio.create_task(self._execute(slot, envelope, body))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

        if not await settle_within(task, self._timeout):
            logger.warning(
                "Facet %s #%d exceeded %.1fs",
                attribute,
                envelope.sequence_number,
                self._timeout,
            )
            slot.fail_if_pending(envelope, SearchError.timeout(self._timeout or 0))

    async def _execute(
        self,
        slot: Slot[list[FacetCount]],
        envelope: RequestEnvelope,
        body: dict[str, Any],
    ) -> None:
        attribute = envelope.attribute or ""
        try:
            raw = await self._backend.search_facet_values(self._index_name, attribute, body)
            counts = parse_facet_hits(attribute, raw)
        except FacetScopeError as e:
            logger.warning("Facet %s #%d failed: %s", attribute, envelope.sequence_number, e)
            slot.fail(envelope, SearchError.from_exception(e))
            return
        except Exception as e:
            logger.exception("Facet %s #%d raised unexpectedly", attribute, envelope.sequence_number)
            slot.fail(envelope, SearchError.from_exception(e))
            return

        slot.resolve(envelope, counts)

    async def drain(self) -> None:
        """Wait for requests still in flight (including superseded ones)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
