"""
Session Domain - Wires state, filters and dispatch for one search surface.
"""

from .models import SessionView
from .session import SearchSession

__all__ = [
    "SearchSession",
    "SessionView",
]
