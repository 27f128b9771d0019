"""
Request Codec - SearchState to backend request bodies, and back.

Request shape (query endpoint):
    {query, filters, facets, numericFilters, page, hitsPerPage,
     attributesToHighlight, highlightPreTag, highlightPostTag, sort, distinct}

Empty optional fields are omitted. Numeric constraints travel only inside
``filters``; ``numericFilters`` is read when decoding bodies built elsewhere.
``decode_search_request`` recovers facet selections and numeric filters from
``filters`` and appends any ``numericFilters`` entries.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from facetscope.config.errors import InvalidFilterExpression
from facetscope.domains.filters import (
    FilterBuilder,
    FilterExpressionBuilder,
    check_attribute,
    parse_filter_expression,
    parse_number,
)
from facetscope.domains.state.models import (
    HighlightConfig,
    NumericFilter,
    NumericOperator,
    SearchState,
)

__all__ = [
    "encode_search_request",
    "decode_search_request",
    "encode_facet_values_request",
    "parse_numeric_filter",
]

# Longest operators first so ">=" is not read as ">"
_OPERATORS = (">=", "<=", ">", "<", "=")


def parse_numeric_filter(text: str) -> NumericFilter:
    """Parse ``year>=2020`` into a NumericFilter."""
    for op in _OPERATORS:
        pos = text.find(op)
        if pos > 0:
            attribute = check_attribute(text[:pos].strip())
            raw = text[pos + len(op):].strip()
            try:
                value = parse_number(raw)
            except ValueError:
                raise InvalidFilterExpression(
                    f"Numeric filter value is not a number: {text!r}",
                    {"filter": text},
                ) from None
            return NumericFilter(attribute=attribute, operator=NumericOperator(op), value=value)
    raise InvalidFilterExpression(f"No comparison operator in {text!r}", {"filter": text})


def encode_search_request(
    state: SearchState,
    facets: Iterable[str] = (),
    builder: FilterBuilder | None = None,
) -> dict[str, Any]:
    """
    Build the query endpoint body for ``state``.

    Args:
        state: Search intent
        facets: Attributes whose value distribution should be returned
        builder: Filter builder (default FilterExpressionBuilder)

    Raises:
        InvalidFilterValue: A numeric filter value is not a number
    """
    builder = builder or FilterExpressionBuilder()
    expression = builder.build(state.facet_selections, state.numeric_filters)

    body: dict[str, Any] = {
        "query": state.query,
        "page": state.page,
        "hitsPerPage": state.hits_per_page,
        "attributesToHighlight": list(state.highlight.attributes_to_highlight),
        "highlightPreTag": state.highlight.pre_tag,
        "highlightPostTag": state.highlight.post_tag,
    }
    if not expression.is_empty:
        body["filters"] = expression.text
    facet_list = list(dict.fromkeys(facets))
    if facet_list:
        body["facets"] = facet_list
    if state.sort:
        body["sort"] = list(state.sort)
    if state.distinct is not None:
        body["distinct"] = state.distinct
    return body


def decode_search_request(body: Mapping[str, Any]) -> SearchState:
    """
    Rebuild a SearchState from a query endpoint body.

    Raises:
        InvalidFilterExpression: ``filters`` or ``numericFilters`` unreadable
    """
    parsed = parse_filter_expression(body.get("filters") or "")

    raw_numeric = body.get("numericFilters") or []
    if isinstance(raw_numeric, str):
        raw_numeric = [raw_numeric]
    numeric_filters = tuple(parsed.numeric_filters) + tuple(
        parse_numeric_filter(str(item)) for item in raw_numeric
    )

    defaults = HighlightConfig()
    highlight = HighlightConfig(
        pre_tag=body.get("highlightPreTag", defaults.pre_tag),
        post_tag=body.get("highlightPostTag", defaults.post_tag),
        attributes_to_highlight=tuple(
            body.get("attributesToHighlight", defaults.attributes_to_highlight)
        ),
    )

    return SearchState(
        query=body.get("query") or "",
        facet_selections=parsed.facet_selections,
        numeric_filters=numeric_filters,
        sort=tuple(body.get("sort") or ()),
        page=max(0, int(body.get("page") or 0)),
        hits_per_page=max(1, int(body.get("hitsPerPage", 20))),
        distinct=body.get("distinct"),
        highlight=highlight,
    )


def encode_facet_values_request(
    state: SearchState,
    attribute: str,
    facet_query: str = "",
    max_facet_hits: int = 10,
    builder: FilterBuilder | None = None,
) -> dict[str, Any]:
    """
    Build the facet-values endpoint body for one attribute.

    The attribute's own selections are left out of ``filters`` so its other
    values keep their counts.
    """
    builder = builder or FilterExpressionBuilder()
    expression = builder.build_excluding(attribute, state.facet_selections, state.numeric_filters)

    body: dict[str, Any] = {"facetQuery": facet_query, "maxFacetHits": max_facet_hits}
    if not expression.is_empty:
        body["filters"] = expression.text
    return body
