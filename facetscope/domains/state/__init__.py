"""
State Domain - Canonical search intent.

This domain handles:
- The SearchState record shared by the query box, result list and sidebar
- Partial updates and page invalidation rules
- Toggle and range helpers for UI surfaces
"""

from .models import (
    HighlightConfig,
    NumericFilter,
    NumericOperator,
    PartialSearchState,
    SearchState,
)
from .reducer import (
    add_numeric_filter,
    clear_refinements,
    reduce,
    remove_numeric_filter,
    set_numeric_range,
    toggle_facet_value,
)

__all__ = [
    # Models
    "SearchState",
    "PartialSearchState",
    "NumericFilter",
    "NumericOperator",
    "HighlightConfig",
    # Reducer
    "reduce",
    "toggle_facet_value",
    "add_numeric_filter",
    "remove_numeric_filter",
    "set_numeric_range",
    "clear_refinements",
]
