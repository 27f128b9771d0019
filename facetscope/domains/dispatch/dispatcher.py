"""
Query Dispatcher - Primary search requests with stale-response discard.

Features:
- Per-request sequence numbers, last-issued-wins
- Bounded wait without cancelling the request
- Typed per-slot errors, no automatic retry
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from facetscope.config.errors import FacetScopeError
from facetscope.domains.filters import FilterBuilder, FilterExpressionBuilder
from facetscope.domains.state.models import SearchState

from .codec import encode_search_request
from .contracts import SearchBackend
from .models import (
    ErrorReason,
    RequestEnvelope,
    RequestKind,
    SearchError,
    SearchResult,
    SlotSnapshot,
)
from .slots import Slot, settle_within

logger = logging.getLogger(__name__)

__all__ = ["QueryDispatcher"]


class QueryDispatcher:
    """
    Issues the primary query for a search surface.

    Only the response to the most recently issued request can change
    ``latest``; earlier responses are dropped whenever they arrive.

    Example:
        >>> dispatcher = QueryDispatcher(client, "movies")
        >>> snapshot = await dispatcher.dispatch(state)
        >>> snapshot.value.nb_hits
    """

    def __init__(
        self,
        backend: SearchBackend,
        index_name: str,
        builder: FilterBuilder | None = None,
        timeout: float | None = 10.0,
    ) -> None:
        """
        Initialize dispatcher.

        Args:
            backend: Search backend adapter
            index_name: Index to query
            builder: Filter expression builder
            timeout: Seconds before the slot shows a timeout (None waits forever)
        """
        self._backend = backend
        self._index_name = index_name
        self._builder = builder or FilterExpressionBuilder()
        self._timeout = timeout
        self._slot: Slot[SearchResult] = Slot(RequestKind.PRIMARY.value)
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def index_name(self) -> str:
        return self._index_name

    @property
    def latest(self) -> SlotSnapshot[SearchResult]:
        """Last resolved state of the primary slot."""
        return self._slot.snapshot

    async def dispatch(
        self,
        state: SearchState,
        facets: Iterable[str] = (),
    ) -> SlotSnapshot[SearchResult]:
        """
        Query the backend for ``state``.

        Args:
            state: Search intent
            facets: Attributes whose distribution should come back with hits

        Returns:
            Slot snapshot once this request settled or timed out. If a newer
            request was issued meanwhile, the snapshot reflects that one.

        Raises:
            InvalidFilterValue: Raised before anything is sent
        """
        body = encode_search_request(state, facets=facets, builder=self._builder)
        envelope = self._slot.issue(state, RequestKind.PRIMARY)

        task = asyncio.create_task(self._execute(envelope, body))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

        if not await settle_within(task, self._timeout):
            logger.warning(
                "Search #%d on %s exceeded %.1fs",
                envelope.sequence_number,
                self._index_name,
                self._timeout,
            )
            self._slot.fail_if_pending(envelope, SearchError.timeout(self._timeout or 0))

        return self._slot.snapshot

    async def _execute(self, envelope: RequestEnvelope, body: dict[str, Any]) -> None:
        """Run one request and settle the slot with its outcome."""
        try:
            raw = await self._backend.search(self._index_name, body)
            result = SearchResult.model_validate(raw)
        except FacetScopeError as e:
            logger.warning("Search #%d failed: %s", envelope.sequence_number, e)
            self._slot.fail(envelope, SearchError.from_exception(e))
            return
        except ValidationError as e:
            logger.warning("Search #%d returned an unexpected body: %s", envelope.sequence_number, e)
            self._slot.fail(
                envelope,
                SearchError(reason=ErrorReason.INVALID_RESPONSE, message="Malformed search response"),
            )
            return
        except Exception as e:
            logger.exception("Search #%d raised unexpectedly", envelope.sequence_number)
            self._slot.fail(envelope, SearchError.from_exception(e))
            return

        if self._slot.resolve(envelope, result):
            logger.debug(
                "Search #%d: %d hits in %dms",
                envelope.sequence_number,
                result.nb_hits,
                result.processing_time_ms,
            )

    async def drain(self) -> None:
        """Wait for requests still in flight (including superseded ones)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
