"""
Configuration - Client settings and error taxonomy.
"""

from .errors import (
    BackendError,
    ErrorCode,
    FacetScopeError,
    InvalidFilterExpression,
    InvalidFilterValue,
    NetworkError,
    StaleResponse,
)
from .settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Errors
    "ErrorCode",
    "FacetScopeError",
    "InvalidFilterValue",
    "InvalidFilterExpression",
    "NetworkError",
    "BackendError",
    "StaleResponse",
]
