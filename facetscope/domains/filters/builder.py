"""
Filter Expression Builder - Derives backend filter strings from refinements.

Grammar produced:
    (genre = "Action" OR genre = "Drama") AND (year >= 2020)

Facet values are always quoted and escaped, so a value can never break out
of its clause. Attribute names are validated, never escaped.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping

from facetscope.config.errors import InvalidFilterExpression, InvalidFilterValue
from facetscope.domains.state.models import NumericFilter

from .models import FacetClause, FilterExpression, NumericClause

logger = logging.getLogger(__name__)

__all__ = [
    "FilterExpressionBuilder",
    "escape_value",
    "format_number",
    "check_attribute",
    "ATTRIBUTE_PATTERN",
]

ATTRIBUTE_PATTERN = re.compile(r"[^\W\d][\w\-]*(?:\.[^\W\d][\w\-]*)*")


def escape_value(value: str) -> str:
    """Quote a facet value, escaping backslashes and double quotes."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def format_number(value: int | float) -> str:
    """Render a number the way the backend parses it back."""
    if isinstance(value, int):
        return str(value)
    return repr(value)


def check_attribute(attribute: str) -> str:
    """Reject attribute names that are not plain (dotted) identifiers."""
    if not ATTRIBUTE_PATTERN.fullmatch(attribute):
        raise InvalidFilterExpression(
            f"Invalid attribute name: {attribute!r}",
            {"attribute": attribute},
        )
    return attribute


class FilterExpressionBuilder:
    """
    Builds filter expressions from facet selections and numeric filters.

    Example:
        >>> builder = FilterExpressionBuilder()
        >>> builder.build({"genre": {"Action"}}, []).text
        '(genre = "Action")'
    """

    def build(
        self,
        facet_selections: Mapping[str, Iterable[str]],
        numeric_filters: Iterable[NumericFilter],
    ) -> FilterExpression:
        """
        Build the full filter expression.

        Args:
            facet_selections: Attribute to selected values
            numeric_filters: Numeric constraints, in insertion order

        Returns:
            FilterExpression (empty when nothing is selected)

        Raises:
            InvalidFilterValue: A numeric filter value is not a number
        """
        facet_clauses = tuple(
            self._facet_clause(attribute, values)
            for attribute, values in sorted(facet_selections.items())
            if values
        )
        numeric_clauses = tuple(self._numeric_clause(f) for f in numeric_filters)

        text = " AND ".join(
            [c.text for c in facet_clauses] + [c.text for c in numeric_clauses]
        )
        return FilterExpression(
            text=text,
            facet_clauses=facet_clauses,
            numeric_clauses=numeric_clauses,
        )

    def build_excluding(
        self,
        attribute: str,
        facet_selections: Mapping[str, Iterable[str]],
        numeric_filters: Iterable[NumericFilter],
    ) -> FilterExpression:
        """Build the expression without the clause for ``attribute``."""
        remaining = {attr: values for attr, values in facet_selections.items() if attr != attribute}
        return self.build(remaining, numeric_filters)

    def _facet_clause(self, attribute: str, values: Iterable[str]) -> FacetClause:
        check_attribute(attribute)
        ordered = tuple(sorted(str(v) for v in values))
        terms = " OR ".join(f"{attribute} = {escape_value(v)}" for v in ordered)
        return FacetClause(attribute=attribute, values=ordered, text=f"({terms})")

    def _numeric_clause(self, numeric_filter: NumericFilter) -> NumericClause:
        attribute = check_attribute(numeric_filter.attribute)
        value = numeric_filter.value

        # bool is an int subclass; "true" is not a number to the backend
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            logger.debug("Rejected numeric filter %s: %r", attribute, value)
            raise InvalidFilterValue(attribute, value)
        if isinstance(value, float) and not math.isfinite(value):
            raise InvalidFilterValue(attribute, value)

        op = numeric_filter.operator
        return NumericClause(
            attribute=attribute,
            operator=op,
            value=value,
            text=f"({attribute} {op.value} {format_number(value)})",
        )
