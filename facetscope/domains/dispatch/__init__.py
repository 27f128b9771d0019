"""
Dispatch Domain - Requests to the search backend and response ordering.

This domain handles:
- Request bodies for the query and facet-values endpoints
- Per-slot sequence numbers (last-issued-wins)
- The primary query slot
- One independent slot per rendered facet attribute
"""

from .codec import (
    decode_search_request,
    encode_facet_values_request,
    encode_search_request,
    parse_numeric_filter,
)
from .contracts import SearchBackend
from .dispatcher import QueryDispatcher
from .facet_sync import FacetCountSync, parse_facet_hits
from .models import (
    ErrorReason,
    FacetCount,
    RequestEnvelope,
    RequestKind,
    SearchError,
    SearchResult,
    SlotSnapshot,
    SlotStatus,
)
from .slots import Slot, settle_within

__all__ = [
    # Contracts
    "SearchBackend",
    # Models
    "SearchResult",
    "SearchError",
    "ErrorReason",
    "FacetCount",
    "RequestEnvelope",
    "RequestKind",
    "SlotSnapshot",
    "SlotStatus",
    # Codec
    "encode_search_request",
    "decode_search_request",
    "encode_facet_values_request",
    "parse_numeric_filter",
    # Implementations
    "Slot",
    "settle_within",
    "QueryDispatcher",
    "FacetCountSync",
    "parse_facet_hits",
]
