"""
facetscope - Faceted search client for Algolia-compatible search backends.

Example:
    >>> from facetscope.domains.session import SearchSession
    >>> session = SearchSession(client, "movies", facet_attributes=["genre"])
    >>> await session.update(PartialSearchState(query="alien"))
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
