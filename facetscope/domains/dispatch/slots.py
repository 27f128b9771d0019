"""
Slots - Independent request/response lanes with last-issued-wins ordering.

Every request issued on a slot gets the next sequence number. A response may
update the slot only if its number is still the highest ever issued there;
anything older is dropped on arrival, whatever order the network delivers in.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Generic, TypeVar

from facetscope.config.errors import StaleResponse
from facetscope.domains.state.models import SearchState

from .models import RequestEnvelope, RequestKind, SearchError, SlotSnapshot, SlotStatus

logger = logging.getLogger(__name__)

__all__ = ["Slot", "settle_within"]

T = TypeVar("T")


class Slot(Generic[T]):
    """
    One lane (the primary query, or one facet attribute).

    Sequence counters are guarded by a lock so the ordering rule also holds
    when a slot is shared across threads.
    """

    def __init__(self, key: str) -> None:
        self.key = key
        self._lock = threading.Lock()
        self._latest = 0
        self._snapshot: SlotSnapshot[T] = SlotSnapshot(key=key)

    @property
    def latest_sequence(self) -> int:
        """Highest sequence number issued so far."""
        return self._latest

    @property
    def snapshot(self) -> SlotSnapshot[T]:
        """Current read-only state."""
        return self._snapshot

    def issue(
        self,
        target_state: SearchState,
        kind: RequestKind,
        attribute: str | None = None,
    ) -> RequestEnvelope:
        """Stamp a new request; every earlier request becomes stale."""
        with self._lock:
            self._latest += 1
            envelope = RequestEnvelope(
                sequence_number=self._latest,
                target_state=target_state,
                kind=kind,
                attribute=attribute,
            )
            self._snapshot = self._snapshot.model_copy(
                update={
                    "status": SlotStatus.LOADING,
                    "sequence_number": envelope.sequence_number,
                    "target_state": target_state,
                    "error": None,
                }
            )
        logger.debug("Slot %s issued #%d", self.key, envelope.sequence_number)
        return envelope

    def is_current(self, envelope: RequestEnvelope) -> bool:
        return envelope.sequence_number == self._latest

    def resolve(self, envelope: RequestEnvelope, value: T) -> bool:
        """Record a successful response. Returns False if it was stale."""
        return self._settle(envelope, SlotStatus.SUCCESS, value=value, error=None)

    def fail(self, envelope: RequestEnvelope, error: SearchError) -> bool:
        """Record a failed response. Returns False if it was stale."""
        return self._settle(envelope, SlotStatus.ERROR, value=None, error=error)

    def fail_if_pending(self, envelope: RequestEnvelope, error: SearchError) -> bool:
        """Fail the slot only if ``envelope`` is current and still loading."""
        with self._lock:
            if not self.is_current(envelope) or self._snapshot.status is not SlotStatus.LOADING:
                return False
            self._snapshot = self._snapshot.model_copy(
                update={"status": SlotStatus.ERROR, "value": None, "error": error}
            )
        logger.debug("Slot %s gave up waiting on #%d", self.key, envelope.sequence_number)
        return True

    def _settle(
        self,
        envelope: RequestEnvelope,
        status: SlotStatus,
        value: Any,
        error: SearchError | None,
    ) -> bool:
        try:
            with self._lock:
                self._ensure_current(envelope)
                self._snapshot = self._snapshot.model_copy(
                    update={"status": status, "value": value, "error": error}
                )
        except StaleResponse as exc:
            logger.debug("Dropped stale response: %s", exc.message)
            return False

        logger.debug("Slot %s settled #%d as %s", self.key, envelope.sequence_number, status.value)
        return True

    def _ensure_current(self, envelope: RequestEnvelope) -> None:
        if envelope.sequence_number != self._latest:
            raise StaleResponse(self.key, envelope.sequence_number, self._latest)


async def settle_within(task: asyncio.Task[Any], timeout: float | None) -> bool:
    """
    Wait for ``task`` for at most ``timeout`` seconds without cancelling it.

    Returns:
        True if the task finished in time, False on timeout
    """
    if timeout is None:
        await task
        return True
    try:
        await asyncio.wait_for(asyncio.shield(task), timeout)
    except asyncio.TimeoutError:
        return False
    return True
