"""
Filters Domain - Backend filter expressions from refinements.

This domain handles:
- Facet disjunctions (OR within an attribute, AND across attributes)
- Numeric comparisons with fail-fast value checks
- Escaping of facet values
- Expressions excluding one facet, for facet count requests
- Reading expressions back into refinements
"""

from .builder import FilterExpressionBuilder, check_attribute, escape_value, format_number
from .contracts import FilterBuilder
from .models import FacetClause, FilterExpression, NumericClause
from .parser import ParsedFilters, parse_filter_expression, parse_number

__all__ = [
    # Contracts
    "FilterBuilder",
    # Models
    "FilterExpression",
    "FacetClause",
    "NumericClause",
    "ParsedFilters",
    # Implementations
    "FilterExpressionBuilder",
    "parse_filter_expression",
    "parse_number",
    "escape_value",
    "format_number",
    "check_attribute",
]
