"""
CLI Interface - Command-line tools for facetscope.

Provides commands for:
- Faceted searches against a live index
- Previewing request bodies offline
"""

from .main import app, main

__all__ = ["app", "main"]
