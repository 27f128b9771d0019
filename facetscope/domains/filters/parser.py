"""
Filter Expression Parser - Reads back expressions produced by the builder.

Only the builder's own grammar is accepted:
    expression := group ( "AND" group )*
    group      := "(" comparison ( "OR" comparison )* ")"
    comparison := attribute operator ( quoted-string | number )

A group of quoted ``=`` comparisons on one attribute is a facet selection; a
group holding one numeric comparison is a numeric filter.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from facetscope.config.errors import InvalidFilterExpression
from facetscope.domains.state.models import NumericFilter, NumericOperator

__all__ = ["ParsedFilters", "parse_filter_expression", "parse_number"]

_TOKEN = re.compile(
    r"""
    \s*(?:
        (?P<lparen>\()
      | (?P<rparen>\))
      | (?P<string>"(?:[^"\\]|\\.)*")
      | (?P<op><=|>=|<|>|=)
      | (?P<number>-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)(?![\w.])
      | (?P<word>[^\W\d][\w\-]*(?:\.[^\W\d][\w\-]*)*)
    )
    """,
    re.VERBOSE,
)


@dataclass
class ParsedFilters:
    """Refinements recovered from a filter expression."""

    facet_selections: dict[str, frozenset[str]] = field(default_factory=dict)
    numeric_filters: list[NumericFilter] = field(default_factory=list)


def parse_number(text: str) -> int | float:
    """Parse an integer first, then a float (same order as the backend)."""
    try:
        return int(text)
    except ValueError:
        return float(text)


def _unescape(quoted: str) -> str:
    return re.sub(r"\\(.)", r"\1", quoted[1:-1], flags=re.DOTALL)


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    stripped = text.rstrip()
    while pos < len(stripped):
        match = _TOKEN.match(stripped, pos)
        if not match or match.end() == pos:
            raise InvalidFilterExpression(
                f"Unexpected input at offset {pos}",
                {"expression": text, "offset": pos},
            )
        kind = match.lastgroup or ""
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


class _Reader:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def peek(self) -> tuple[str, str] | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self, kind: str, value: str | None = None) -> str:
        token = self.peek()
        if token is None or token[0] != kind or (value is not None and token[1] != value):
            raise InvalidFilterExpression(
                f"Expected {value or kind}, found {token[1] if token else 'end of input'}",
                {"expression": self.text},
            )
        self.pos += 1
        return token[1]

    def at_keyword(self, keyword: str) -> bool:
        token = self.peek()
        return token is not None and token == ("word", keyword)

    def comparison(self) -> tuple[str, str, str, str]:
        attribute = self.take("word")
        operator = self.take("op")
        token = self.peek()
        if token is None or token[0] not in ("string", "number"):
            raise InvalidFilterExpression(
                f"Expected a value after '{attribute} {operator}'",
                {"expression": self.text},
            )
        self.pos += 1
        return attribute, operator, token[0], token[1]


def parse_filter_expression(text: str) -> ParsedFilters:
    """
    Parse a filter expression produced by ``FilterExpressionBuilder``.

    Args:
        text: Filter expression (empty means no refinements)

    Returns:
        ParsedFilters with facet selections and numeric filters

    Raises:
        InvalidFilterExpression: Text is outside the builder's grammar
    """
    parsed = ParsedFilters()
    if not text.strip():
        return parsed

    reader = _Reader(text)
    while True:
        reader.take("lparen")
        group = [reader.comparison()]
        while reader.at_keyword("OR"):
            reader.pos += 1
            group.append(reader.comparison())
        reader.take("rparen")
        _apply_group(parsed, group, text)

        if reader.peek() is None:
            break
        reader.take("word", "AND")

    return parsed


def _apply_group(
    parsed: ParsedFilters,
    group: list[tuple[str, str, str, str]],
    text: str,
) -> None:
    attributes = {attribute for attribute, _, _, _ in group}
    if len(attributes) != 1:
        raise InvalidFilterExpression(
            "OR groups must compare a single attribute",
            {"expression": text, "attributes": sorted(attributes)},
        )
    attribute = attributes.pop()

    if all(kind == "string" and op == "=" for _, op, kind, _ in group):
        values = frozenset(_unescape(raw) for _, _, _, raw in group)
        parsed.facet_selections[attribute] = parsed.facet_selections.get(
            attribute, frozenset()
        ) | values
        return

    if len(group) == 1 and group[0][2] == "number":
        _, op, _, raw = group[0]
        parsed.numeric_filters.append(
            NumericFilter(
                attribute=attribute,
                operator=NumericOperator(op),
                value=parse_number(raw),
            )
        )
        return

    raise InvalidFilterExpression(
        f"Unsupported clause for '{attribute}'",
        {"expression": text},
    )
