"""
Session Models - What each surface reads after a refresh.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from facetscope.domains.dispatch.models import SlotSnapshot
from facetscope.domains.state.models import SearchState


class SessionView(BaseModel):
    """Read-only snapshot of one search surface."""

    index_name: str
    state: SearchState
    results: SlotSnapshot
    facet_counts: dict[str, SlotSnapshot] = Field(default_factory=dict)

    model_config = {"frozen": True}
