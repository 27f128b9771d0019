"""
Domains - Client-side search logic.

Each domain is self-contained with:
- contracts.py: Interfaces (Protocol classes), where it has seams
- models.py: Pydantic data models
- Implementation files
- test_*.py modules beside the code
"""

__all__ = [
    "state",
    "filters",
    "dispatch",
    "session",
]
