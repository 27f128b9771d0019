"""
Tests for request encoding and decoding.
"""

from __future__ import annotations

import pytest

from facetscope.config import InvalidFilterExpression, InvalidFilterValue
from facetscope.domains.state.models import (
    HighlightConfig,
    NumericFilter,
    NumericOperator,
    SearchState,
)

from .codec import (
    decode_search_request,
    encode_facet_values_request,
    encode_search_request,
    parse_numeric_filter,
)


@pytest.fixture
def refined_state() -> SearchState:
    """A state using every request field."""
    return SearchState(
        query="alien",
        facet_selections={
            "genre": frozenset({"Horror", "Sci-Fi"}),
            "country": frozenset({"US"}),
        },
        numeric_filters=(
            NumericFilter(attribute="year", operator=NumericOperator.GTE, value=1979),
            NumericFilter(attribute="rating", operator=NumericOperator.GT, value=7.5),
        ),
        sort=("year:desc",),
        page=2,
        hits_per_page=10,
        distinct=1,
        highlight=HighlightConfig(pre_tag="<b>", post_tag="</b>", attributes_to_highlight=("title",)),
    )


# --- Encoding Tests ---


def test_encode_default_state() -> None:
    """Test a fresh state sends only the always-present fields."""
    body = encode_search_request(SearchState())
    assert body == {
        "query": "",
        "page": 0,
        "hitsPerPage": 20,
        "attributesToHighlight": ["*"],
        "highlightPreTag": "<em>",
        "highlightPostTag": "</em>",
    }


def test_encode_full_state(refined_state: SearchState) -> None:
    """Test every field is carried into the body."""
    body = encode_search_request(refined_state, facets=["genre", "country", "genre"])
    assert body["query"] == "alien"
    assert body["filters"] == (
        '(country = "US") AND (genre = "Horror" OR genre = "Sci-Fi") '
        "AND (year >= 1979) AND (rating > 7.5)"
    )
    assert "numericFilters" not in body
    assert body["facets"] == ["genre", "country"]
    assert body["sort"] == ["year:desc"]
    assert body["page"] == 2
    assert body["hitsPerPage"] == 10
    assert body["distinct"] == 1
    assert body["attributesToHighlight"] == ["title"]
    assert body["highlightPreTag"] == "<b>"


def test_encode_distinct_false_is_sent() -> None:
    """Test distinct=False is an explicit value, unlike None."""
    body = encode_search_request(SearchState(distinct=False))
    assert body["distinct"] is False


def test_encode_rejects_bad_numeric_value() -> None:
    """Test encoding fails when a numeric value is not a number."""
    state = SearchState(
        numeric_filters=(NumericFilter(attribute="year", operator=NumericOperator.GTE, value="2020"),)
    )
    with pytest.raises(InvalidFilterValue):
        encode_search_request(state)


def test_encode_facet_values_request_excludes_own_attribute(refined_state: SearchState) -> None:
    """Test the facet-values body leaves out the attribute's own selections."""
    body = encode_facet_values_request(refined_state, "genre", facet_query="ho", max_facet_hits=5)
    assert body == {
        "facetQuery": "ho",
        "maxFacetHits": 5,
        "filters": '(country = "US") AND (year >= 1979) AND (rating > 7.5)',
    }


def test_encode_facet_values_request_without_filters() -> None:
    """Test no filters key when nothing else is refined."""
    state = SearchState(facet_selections={"genre": frozenset({"Horror"})})
    body = encode_facet_values_request(state, "genre")
    assert body == {"facetQuery": "", "maxFacetHits": 10}


# --- Decoding Tests ---


def test_decode_inverts_encode(refined_state: SearchState) -> None:
    """Test a body decodes to the state it was built from."""
    assert decode_search_request(encode_search_request(refined_state)) == refined_state


def test_decode_numeric_filters_from_filters_text() -> None:
    """Test numeric filters are read from filters when numericFilters is absent."""
    state = decode_search_request({"filters": '(genre = "Drama") AND (year < 2000)'})
    assert state.facet_selections == {"genre": frozenset({"Drama"})}
    assert state.numeric_filters == (
        NumericFilter(attribute="year", operator=NumericOperator.LT, value=2000),
    )


def test_decode_appends_numeric_filters_field() -> None:
    """Test numericFilters entries are added after those read from filters."""
    state = decode_search_request(
        {"filters": "(year >= 1979)", "numericFilters": ["rating>7.5", "votes>=100"]}
    )
    assert state.numeric_filters == (
        NumericFilter(attribute="year", operator=NumericOperator.GTE, value=1979),
        NumericFilter(attribute="rating", operator=NumericOperator.GT, value=7.5),
        NumericFilter(attribute="votes", operator=NumericOperator.GTE, value=100),
    )


def test_decode_numeric_filters_field_as_string() -> None:
    """Test a single numericFilters string is accepted."""
    state = decode_search_request({"numericFilters": "year<2000"})
    assert state.numeric_filters == (
        NumericFilter(attribute="year", operator=NumericOperator.LT, value=2000),
    )


def test_decode_round_trip_unicode_attributes() -> None:
    """Test accented attribute names survive encoding and decoding."""
    state = SearchState(
        facet_selections={"année": frozenset({"2020"}), "género": frozenset({"Terror"})},
        numeric_filters=(NumericFilter(attribute="durée", operator=NumericOperator.LTE, value=120),),
    )
    body = encode_search_request(state)
    assert body["filters"] == '(année = "2020") AND (género = "Terror") AND (durée <= 120)'
    assert decode_search_request(body) == state


def test_decode_clamps_paging() -> None:
    """Test out-of-range paging values are clamped."""
    state = decode_search_request({"page": -2, "hitsPerPage": 0})
    assert state.page == 0
    assert state.hits_per_page == 1


def test_decode_rejects_bad_filters() -> None:
    """Test unreadable filters raise."""
    with pytest.raises(InvalidFilterExpression):
        decode_search_request({"filters": "genre:Drama"})


# --- Numeric Filter String Tests ---


def test_parse_numeric_filter() -> None:
    """Test attr-op-value strings, longest operator first."""
    assert parse_numeric_filter("year>=2020") == NumericFilter(
        attribute="year", operator=NumericOperator.GTE, value=2020
    )
    assert parse_numeric_filter("rating < 7.5") == NumericFilter(
        attribute="rating", operator=NumericOperator.LT, value=7.5
    )
    assert parse_numeric_filter("year=1999").operator is NumericOperator.EQ


def test_parse_numeric_filter_errors() -> None:
    """Test missing operators, non-numeric values and unknown operators raise."""
    with pytest.raises(InvalidFilterExpression):
        parse_numeric_filter("year")
    with pytest.raises(InvalidFilterExpression):
        parse_numeric_filter("year>=recent")
    with pytest.raises(InvalidFilterExpression):
        parse_numeric_filter("year!=5")
    with pytest.raises(InvalidFilterExpression):
        parse_numeric_filter("my year>5")
