"""
State Models - Canonical search intent and partial updates.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, PositiveInt, field_validator

if TYPE_CHECKING:
    from facetscope.config import Settings


class NumericOperator(str, Enum):
    """Comparison operators accepted by numeric filters."""

    LT = "<"
    LTE = "<="
    EQ = "="
    GTE = ">="
    GT = ">"


class NumericFilter(BaseModel):
    """Single numeric constraint, e.g. ``year >= 2020``."""

    attribute: str = Field(..., min_length=1)
    operator: NumericOperator
    # Checked when the filter expression is built, not here
    value: Any

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return f"{self.attribute}{self.operator.value}{self.value}"


class HighlightConfig(BaseModel):
    """Highlighting parameters passed through to the backend."""

    pre_tag: str = "<em>"
    post_tag: str = "</em>"
    attributes_to_highlight: tuple[str, ...] = ("*",)

    model_config = {"frozen": True}


class SearchState(BaseModel):
    """
    Canonical search intent for one search surface.

    Only ever replaced through ``reduce``; consumers receive it read-only.
    """

    query: str = ""
    facet_selections: Mapping[str, frozenset[str]] = Field(
        default_factory=lambda: MappingProxyType({})
    )
    numeric_filters: tuple[NumericFilter, ...] = ()
    sort: tuple[str, ...] = ()
    page: int = Field(default=0, ge=0)
    hits_per_page: int = Field(default=20, ge=1)
    distinct: bool | PositiveInt | None = None
    highlight: HighlightConfig = Field(default_factory=HighlightConfig)

    model_config = {"frozen": True}

    @field_validator("facet_selections")
    @classmethod
    def _drop_empty_selections(
        cls, value: Mapping[str, frozenset[str]]
    ) -> Mapping[str, frozenset[str]]:
        # Read-only view so a frozen state cannot be changed through it
        return MappingProxyType({attr: values for attr, values in value.items() if values})

    @classmethod
    def from_settings(cls, settings: Settings) -> SearchState:
        """Create a default state using configured page size and highlight tags."""
        return cls(
            hits_per_page=settings.hits_per_page,
            highlight=HighlightConfig(
                pre_tag=settings.highlight_pre_tag,
                post_tag=settings.highlight_post_tag,
            ),
        )

    @property
    def has_refinements(self) -> bool:
        """True when any facet value or numeric filter is active."""
        return bool(self.facet_selections or self.numeric_filters)


class PartialSearchState(BaseModel):
    """
    Partial update emitted by a UI surface.

    Fields left unset are not touched by ``reduce``. Numbers are not
    range-checked here; ``reduce`` clamps them.
    """

    query: str | None = None
    facet_selections: dict[str, frozenset[str]] | None = None
    numeric_filters: tuple[NumericFilter, ...] | None = None
    sort: tuple[str, ...] | None = None
    page: int | None = None
    hits_per_page: int | None = None
    distinct: bool | int | None = None
    highlight: HighlightConfig | None = None

    model_config = {"frozen": True}

    def specified_fields(self) -> frozenset[str]:
        """Names of the fields this update actually carries."""
        # distinct=None is a real value ("use the index default")
        return frozenset(
            name
            for name in self.model_fields_set
            if getattr(self, name) is not None or name == "distinct"
        )
