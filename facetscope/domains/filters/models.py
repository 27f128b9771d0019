"""
Filter Models - Structured form of a backend filter expression.
"""

from __future__ import annotations

from pydantic import BaseModel

from facetscope.domains.state.models import NumericOperator


class FacetClause(BaseModel):
    """Disjunction of selected values for one facet attribute."""

    attribute: str
    values: tuple[str, ...]
    text: str

    model_config = {"frozen": True}


class NumericClause(BaseModel):
    """Single numeric comparison."""

    attribute: str
    operator: NumericOperator
    value: int | float
    text: str

    model_config = {"frozen": True}


class FilterExpression(BaseModel):
    """
    Backend filter string plus the clauses it was built from.

    An empty expression matches every document.
    """

    text: str = ""
    facet_clauses: tuple[FacetClause, ...] = ()
    numeric_clauses: tuple[NumericClause, ...] = ()

    model_config = {"frozen": True}

    @property
    def is_empty(self) -> bool:
        return not self.text

    def __str__(self) -> str:
        return self.text
