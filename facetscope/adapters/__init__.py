"""
Adapters - External service integrations.

All calls to the search server are wrapped here to isolate domains from
transport details.
"""

from .http import SearchClient

__all__ = [
    "SearchClient",
]
