"""
Tests for slots and the query dispatcher.
"""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock

import pytest

from facetscope.config import BackendError, InvalidFilterValue, NetworkError
from facetscope.domains.state.models import NumericFilter, NumericOperator, SearchState

from .contracts import SearchBackend
from .dispatcher import QueryDispatcher
from .models import ErrorReason, RequestKind, SearchError, SlotStatus
from .slots import Slot, settle_within


def _response(query: str, nb_hits: int = 1) -> dict[str, Any]:
    return {
        "hits": [{"objectID": f"{query}-{i}", "title": query} for i in range(nb_hits)],
        "nbHits": nb_hits,
        "page": 0,
        "nbPages": 1,
        "hitsPerPage": 20,
        "processingTimeMS": 3,
        "query": query,
    }


class GatedBackend:
    """Backend whose responses are released by the test, in any order."""

    def __init__(self) -> None:
        self.gates: dict[str, asyncio.Event] = {}
        self.bodies: list[dict[str, Any]] = []

    def gate(self, query: str) -> asyncio.Event:
        return self.gates.setdefault(query, asyncio.Event())

    async def search(self, index_name: str, body: dict[str, Any]) -> dict[str, Any]:
        self.bodies.append(body)
        await self.gate(body["query"]).wait()
        return _response(body["query"])

    async def search_facet_values(
        self, index_name: str, facet_name: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        return {"facetHits": []}


@pytest.fixture
def mock_backend() -> AsyncMock:
    """Create a mock backend answering immediately."""
    mock = AsyncMock()
    mock.search.return_value = _response("alien", nb_hits=2)
    return mock


@pytest.fixture
def gated_backend() -> GatedBackend:
    return GatedBackend()


# --- Slot Tests ---


def test_slot_issue_increments_sequence() -> None:
    """Test each issue gets the next sequence number and marks loading."""
    slot: Slot[str] = Slot("primary")
    first = slot.issue(SearchState(), RequestKind.PRIMARY)
    second = slot.issue(SearchState(query="x"), RequestKind.PRIMARY)

    assert (first.sequence_number, second.sequence_number) == (1, 2)
    assert slot.latest_sequence == 2
    assert slot.snapshot.status is SlotStatus.LOADING
    assert slot.snapshot.target_state == SearchState(query="x")


def test_slot_drops_stale_responses() -> None:
    """Test only the latest issued request can settle the slot."""
    slot: Slot[str] = Slot("primary")
    first = slot.issue(SearchState(), RequestKind.PRIMARY)
    second = slot.issue(SearchState(), RequestKind.PRIMARY)

    assert slot.resolve(second, "new") is True
    assert slot.resolve(first, "old") is False
    assert slot.fail(first, SearchError.timeout(1)) is False
    assert slot.snapshot.value == "new"
    assert slot.snapshot.ok


def test_slot_keeps_value_while_loading() -> None:
    """Test the previous value stays visible until the next one settles."""
    slot: Slot[str] = Slot("primary")
    slot.resolve(slot.issue(SearchState(), RequestKind.PRIMARY), "first")
    slot.issue(SearchState(), RequestKind.PRIMARY)

    assert slot.snapshot.is_loading
    assert slot.snapshot.value == "first"


def test_slot_fail_if_pending() -> None:
    """Test a timeout only lands on a current, loading request."""
    slot: Slot[str] = Slot("primary")
    envelope = slot.issue(SearchState(), RequestKind.PRIMARY)
    slot.resolve(envelope, "done")
    assert slot.fail_if_pending(envelope, SearchError.timeout(1)) is False

    envelope = slot.issue(SearchState(), RequestKind.PRIMARY)
    assert slot.fail_if_pending(envelope, SearchError.timeout(1)) is True
    assert slot.snapshot.status is SlotStatus.ERROR
    assert slot.snapshot.error.reason is ErrorReason.TIMEOUT


def test_request_envelope_slot_key() -> None:
    """Test envelopes name the slot they belong to."""
    slot: Slot[str] = Slot("facet:genre")
    envelope = slot.issue(SearchState(), RequestKind.FACET, attribute="genre")
    assert envelope.slot_key == "facet:genre"


async def test_settle_within_does_not_cancel() -> None:
    """Test a timed-out task keeps running."""
    gate = asyncio.Event()

    async def work() -> str:
        await gate.wait()
        return "late"

    task = asyncio.create_task(work())
    assert await settle_within(task, 0.01) is False
    assert not task.cancelled()

    gate.set()
    assert await task == "late"


# --- SearchError Tests ---


def test_search_error_from_exception() -> None:
    """Test adapter errors map onto reasons."""
    assert SearchError.from_exception(NetworkError("down")).reason is ErrorReason.NETWORK
    assert SearchError.from_exception(NetworkError("slow", timeout=True)).reason is ErrorReason.TIMEOUT

    error = SearchError.from_exception(BackendError("Index not found", status_code=404))
    assert error.reason is ErrorReason.BACKEND
    assert error.status_code == 404

    assert SearchError.from_exception(BackendError("not json")).reason is ErrorReason.INVALID_RESPONSE
    assert SearchError.from_exception(RuntimeError("boom")).reason is ErrorReason.UNKNOWN


# --- QueryDispatcher Tests ---


def test_mock_backend_satisfies_contract(gated_backend: GatedBackend) -> None:
    """Test the test backend matches the SearchBackend protocol."""
    assert isinstance(gated_backend, SearchBackend)


async def test_dispatch_success(mock_backend: AsyncMock) -> None:
    """Test a successful dispatch settles the primary slot."""
    dispatcher = QueryDispatcher(mock_backend, "movies")
    snapshot = await dispatcher.dispatch(SearchState(query="alien"), facets=["genre"])

    assert snapshot.ok
    assert snapshot.sequence_number == 1
    assert snapshot.value.nb_hits == 2
    assert snapshot.value.hits[0]["objectID"] == "alien-0"
    assert dispatcher.latest == snapshot

    index_name, body = mock_backend.search.call_args.args
    assert index_name == "movies"
    assert body["query"] == "alien"
    assert body["facets"] == ["genre"]


async def test_dispatch_out_of_order_responses(gated_backend: GatedBackend) -> None:
    """Test a late response for an older request never replaces a newer one."""
    dispatcher = QueryDispatcher(gated_backend, "movies", timeout=None)

    first = asyncio.create_task(dispatcher.dispatch(SearchState(query="a")))
    await asyncio.sleep(0)
    second = asyncio.create_task(dispatcher.dispatch(SearchState(query="ab")))
    await asyncio.sleep(0)

    # Newer response first
    gated_backend.gate("ab").set()
    snapshot = await second
    assert snapshot.value.query == "ab"

    gated_backend.gate("a").set()
    await first

    assert dispatcher.latest.value.query == "ab"
    assert dispatcher.latest.sequence_number == 2
    assert dispatcher.latest.target_state.query == "ab"


async def test_dispatch_in_order_responses(gated_backend: GatedBackend) -> None:
    """Test the older response is shown until the newer one arrives."""
    dispatcher = QueryDispatcher(gated_backend, "movies", timeout=None)

    first = asyncio.create_task(dispatcher.dispatch(SearchState(query="a")))
    await asyncio.sleep(0)
    second = asyncio.create_task(dispatcher.dispatch(SearchState(query="ab")))
    await asyncio.sleep(0)

    gated_backend.gate("a").set()
    await first
    # Superseded before it arrived, so it is dropped
    assert dispatcher.latest.value is None
    assert dispatcher.latest.is_loading

    gated_backend.gate("ab").set()
    await second
    assert dispatcher.latest.value.query == "ab"


async def test_dispatch_backend_error(mock_backend: AsyncMock) -> None:
    """Test backend failures become slot errors, without retry."""
    mock_backend.search.side_effect = BackendError("Index movies not found", status_code=404)
    dispatcher = QueryDispatcher(mock_backend, "movies")

    snapshot = await dispatcher.dispatch(SearchState(query="alien"))

    assert snapshot.status is SlotStatus.ERROR
    assert snapshot.error.reason is ErrorReason.BACKEND
    assert snapshot.error.status_code == 404
    assert snapshot.value is None
    assert mock_backend.search.await_count == 1


async def test_dispatch_network_error(mock_backend: AsyncMock) -> None:
    """Test transport failures become network errors."""
    mock_backend.search.side_effect = NetworkError("Cannot reach backend")
    dispatcher = QueryDispatcher(mock_backend, "movies")

    snapshot = await dispatcher.dispatch(SearchState())
    assert snapshot.error.reason is ErrorReason.NETWORK


async def test_dispatch_malformed_response(mock_backend: AsyncMock) -> None:
    """Test an unreadable body becomes an invalid_response error."""
    mock_backend.search.return_value = {"hits": "not-a-list"}
    dispatcher = QueryDispatcher(mock_backend, "movies")

    snapshot = await dispatcher.dispatch(SearchState())
    assert snapshot.error.reason is ErrorReason.INVALID_RESPONSE


async def test_dispatch_error_then_success(mock_backend: AsyncMock) -> None:
    """Test a later successful request clears the error."""
    mock_backend.search.side_effect = [NetworkError("down"), _response("alien")]
    dispatcher = QueryDispatcher(mock_backend, "movies")

    assert (await dispatcher.dispatch(SearchState())).status is SlotStatus.ERROR
    snapshot = await dispatcher.dispatch(SearchState())
    assert snapshot.ok
    assert snapshot.error is None


async def test_dispatch_invalid_filter_sends_nothing(mock_backend: AsyncMock) -> None:
    """Test bad numeric values fail before a sequence number is issued."""
    dispatcher = QueryDispatcher(mock_backend, "movies")
    state = SearchState(
        numeric_filters=(NumericFilter(attribute="year", operator=NumericOperator.GTE, value="x"),)
    )

    with pytest.raises(InvalidFilterValue):
        await dispatcher.dispatch(state)

    mock_backend.search.assert_not_called()
    assert dispatcher.latest.sequence_number == 0
    assert dispatcher.latest.status is SlotStatus.IDLE


async def test_dispatch_timeout_then_late_success(gated_backend: GatedBackend) -> None:
    """Test a timeout is shown, then replaced if the same request resolves."""
    dispatcher = QueryDispatcher(gated_backend, "movies", timeout=0.01)

    snapshot = await dispatcher.dispatch(SearchState(query="slow"))
    assert snapshot.status is SlotStatus.ERROR
    assert snapshot.error.reason is ErrorReason.TIMEOUT

    gated_backend.gate("slow").set()
    await dispatcher.drain()

    assert dispatcher.latest.ok
    assert dispatcher.latest.value.query == "slow"


async def test_dispatch_timeout_then_superseded(gated_backend: GatedBackend) -> None:
    """Test a late response after a newer request is dropped."""
    dispatcher = QueryDispatcher(gated_backend, "movies", timeout=0.01)

    await dispatcher.dispatch(SearchState(query="slow"))
    gated_backend.gate("fast").set()
    snapshot = await dispatcher.dispatch(SearchState(query="fast"))
    assert snapshot.value.query == "fast"

    gated_backend.gate("slow").set()
    await dispatcher.drain()
    assert dispatcher.latest.value.query == "fast"
