"""
Filter Contracts - Interfaces for filters domain.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Protocol, runtime_checkable

from facetscope.domains.state.models import NumericFilter

from .models import FilterExpression


@runtime_checkable
class FilterBuilder(Protocol):
    """Contract for filter expression builders."""

    def build(
        self,
        facet_selections: Mapping[str, Iterable[str]],
        numeric_filters: Iterable[NumericFilter],
    ) -> FilterExpression:
        """Build the expression for all refinements."""
        ...

    def build_excluding(
        self,
        attribute: str,
        facet_selections: Mapping[str, Iterable[str]],
        numeric_filters: Iterable[NumericFilter],
    ) -> FilterExpression:
        """Build the expression without one facet attribute's clause."""
        ...
