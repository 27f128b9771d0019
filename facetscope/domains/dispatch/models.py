"""
Dispatch Models - Results, errors and per-slot snapshots.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from facetscope.config.errors import BackendError, ErrorCode, FacetScopeError, NetworkError
from facetscope.domains.state.models import SearchState

T = TypeVar("T")


class RequestKind(str, Enum):
    """Which lane a request belongs to."""

    PRIMARY = "primary"
    FACET = "facet"


class SlotStatus(str, Enum):
    """Render state of a slot."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class ErrorReason(str, Enum):
    """Why a request failed, as shown to a surface."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    BACKEND = "backend"
    INVALID_RESPONSE = "invalid_response"
    UNKNOWN = "unknown"


class RequestEnvelope(BaseModel):
    """Bookkeeping for one dispatched request. Never shown to users."""

    sequence_number: int
    target_state: SearchState
    kind: RequestKind
    attribute: str | None = None

    model_config = {"frozen": True}

    @property
    def slot_key(self) -> str:
        if self.kind is RequestKind.FACET:
            return f"facet:{self.attribute}"
        return self.kind.value


class SearchError(BaseModel):
    """Request-time failure scoped to one slot."""

    reason: ErrorReason
    message: str
    status_code: int | None = None

    model_config = {"frozen": True}

    @classmethod
    def from_exception(cls, exc: Exception) -> SearchError:
        """Map an adapter exception onto a slot error."""
        if isinstance(exc, NetworkError):
            reason = ErrorReason.TIMEOUT if exc.code is ErrorCode.NETWORK_TIMEOUT else ErrorReason.NETWORK
            return cls(reason=reason, message=exc.message)
        if isinstance(exc, BackendError):
            reason = ErrorReason.BACKEND if exc.status_code else ErrorReason.INVALID_RESPONSE
            return cls(reason=reason, message=exc.message, status_code=exc.status_code)
        if isinstance(exc, FacetScopeError):
            return cls(reason=ErrorReason.UNKNOWN, message=exc.message)
        return cls(reason=ErrorReason.UNKNOWN, message=str(exc) or type(exc).__name__)

    @classmethod
    def timeout(cls, seconds: float) -> SearchError:
        return cls(reason=ErrorReason.TIMEOUT, message=f"No response within {seconds:g}s")


class SearchResult(BaseModel):
    """Primary query response."""

    hits: list[dict[str, Any]] = Field(default_factory=list)
    nb_hits: int = Field(default=0, alias="nbHits")
    page: int = 0
    nb_pages: int = Field(default=0, alias="nbPages")
    hits_per_page: int = Field(default=20, alias="hitsPerPage")
    processing_time_ms: int = Field(default=0, alias="processingTimeMS")
    query: str = ""
    facets: dict[str, dict[str, int]] | None = None
    exhaustive_nb_hits: bool | None = Field(default=None, alias="exhaustiveNbHits")

    model_config = {"frozen": True, "populate_by_name": True}


class FacetCount(BaseModel):
    """Document count for one facet value under the other refinements."""

    attribute: str
    value: str
    count: int = Field(ge=0)
    highlighted: str | None = None

    model_config = {"frozen": True}


class SlotSnapshot(BaseModel, Generic[T]):
    """
    Read-only view of a slot's last resolved state.

    ``value`` holds the last successful payload; it is kept while a newer
    request is loading and cleared when the slot settles on an error.
    """

    key: str
    status: SlotStatus = SlotStatus.IDLE
    sequence_number: int = 0
    value: T | None = None
    error: SearchError | None = None
    target_state: SearchState | None = None

    model_config = {"frozen": True}

    @property
    def is_loading(self) -> bool:
        return self.status is SlotStatus.LOADING

    @property
    def ok(self) -> bool:
        return self.status is SlotStatus.SUCCESS
