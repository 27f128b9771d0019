"""
HTTP Adapter - The only place that talks to the search server.
"""

from .client import SearchClient

__all__ = ["SearchClient"]
