"""
Params Reducer - Merges partial updates into the next SearchState.

``reduce`` sits on the UI hot path: it is pure and never raises. Malformed
numbers are clamped instead of rejected.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from .models import NumericFilter, NumericOperator, PartialSearchState, SearchState

logger = logging.getLogger(__name__)

__all__ = [
    "reduce",
    "toggle_facet_value",
    "add_numeric_filter",
    "remove_numeric_filter",
    "set_numeric_range",
    "clear_refinements",
]

# Changing any of these invalidates the current page
_PAGE_RESETTING_FIELDS = frozenset({"query", "facet_selections", "numeric_filters"})


def reduce(current: SearchState, partial: PartialSearchState) -> SearchState:
    """
    Apply a partial update to the current state.

    Args:
        current: State before the update
        partial: Fields to change

    Returns:
        The next state (``current`` itself when nothing changes)
    """
    fields = partial.specified_fields()
    if not fields:
        return current

    update: dict[str, Any] = {}

    if "query" in fields:
        update["query"] = partial.query
    if "facet_selections" in fields:
        update["facet_selections"] = _merge_selections(
            current.facet_selections, partial.facet_selections or {}
        )
    if "numeric_filters" in fields:
        update["numeric_filters"] = tuple(partial.numeric_filters or ())
    if "sort" in fields:
        update["sort"] = tuple(partial.sort or ())
    if "hits_per_page" in fields:
        update["hits_per_page"] = max(1, partial.hits_per_page or 0)
    if "page" in fields:
        update["page"] = max(0, partial.page or 0)
    if "distinct" in fields:
        update["distinct"] = _clamp_distinct(partial.distinct)
    if "highlight" in fields:
        update["highlight"] = partial.highlight

    if fields & _PAGE_RESETTING_FIELDS:
        update["page"] = 0

    logger.debug("Reduced fields %s (page=%s)", sorted(fields), update.get("page", current.page))
    # model_copy skips validation; every value above is already normalized
    return current.model_copy(update=update)


def _merge_selections(
    current: Mapping[str, frozenset[str]],
    changes: Mapping[str, frozenset[str]],
) -> Mapping[str, frozenset[str]]:
    """Replace whole value sets per attribute; drop attributes left empty."""
    merged = dict(current)
    for attribute, values in changes.items():
        if values:
            merged[attribute] = frozenset(values)
        else:
            merged.pop(attribute, None)
    return MappingProxyType(merged)


def _clamp_distinct(value: bool | int | None) -> bool | int | None:
    if value is None or isinstance(value, bool):
        return value
    return value if value > 0 else False


# --- Update helpers for UI surfaces ---


def toggle_facet_value(state: SearchState, attribute: str, value: str) -> PartialSearchState:
    """Select ``value`` if it is not selected, otherwise deselect it."""
    selected = set(state.facet_selections.get(attribute, frozenset()))
    selected.symmetric_difference_update({value})
    return PartialSearchState(facet_selections={attribute: frozenset(selected)})


def add_numeric_filter(state: SearchState, numeric_filter: NumericFilter) -> PartialSearchState:
    """Append a numeric filter, keeping insertion order."""
    return PartialSearchState(numeric_filters=(*state.numeric_filters, numeric_filter))


def remove_numeric_filter(state: SearchState, numeric_filter: NumericFilter) -> PartialSearchState:
    """Remove every occurrence of ``numeric_filter``."""
    return PartialSearchState(
        numeric_filters=tuple(f for f in state.numeric_filters if f != numeric_filter)
    )


def set_numeric_range(
    state: SearchState,
    attribute: str,
    minimum: Any = None,
    maximum: Any = None,
) -> PartialSearchState:
    """
    Replace all filters on ``attribute`` with an inclusive range.

    Either bound may be omitted; omitting both clears the attribute.
    """
    kept = [f for f in state.numeric_filters if f.attribute != attribute]
    if minimum is not None:
        kept.append(NumericFilter(attribute=attribute, operator=NumericOperator.GTE, value=minimum))
    if maximum is not None:
        kept.append(NumericFilter(attribute=attribute, operator=NumericOperator.LTE, value=maximum))
    return PartialSearchState(numeric_filters=tuple(kept))


def clear_refinements(state: SearchState) -> PartialSearchState:
    """Deselect every facet value and drop all numeric filters."""
    return PartialSearchState(
        facet_selections={attribute: frozenset() for attribute in state.facet_selections},
        numeric_filters=(),
    )
