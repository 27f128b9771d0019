"""
Error Taxonomy - Consistent error codes across the client.

Usage:
    from facetscope.config.errors import ErrorCode, FacetScopeError

    raise BackendError("Index not found", status_code=404)
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for machine-readable error reporting."""

    # Build-time errors
    FILTER_INVALID_VALUE = "FILTER_INVALID_VALUE"
    FILTER_INVALID_EXPRESSION = "FILTER_INVALID_EXPRESSION"

    # Request-time errors
    NETWORK_UNAVAILABLE = "NETWORK_UNAVAILABLE"
    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    BACKEND_ERROR = "BACKEND_ERROR"
    BACKEND_INVALID_RESPONSE = "BACKEND_INVALID_RESPONSE"

    # Internal
    STALE_RESPONSE = "STALE_RESPONSE"


class FacetScopeError(Exception):
    """Base exception with error code support."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to a serializable dictionary."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class InvalidFilterValue(FacetScopeError):
    """A numeric filter carries a value that is not a number."""

    def __init__(self, attribute: str, value: Any) -> None:
        super().__init__(
            ErrorCode.FILTER_INVALID_VALUE,
            f"Numeric filter on '{attribute}' needs a number, got {value!r}",
            {"attribute": attribute, "value": repr(value)},
        )
        self.attribute = attribute
        self.value = value


class InvalidFilterExpression(FacetScopeError):
    """A filter expression string could not be read back."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.FILTER_INVALID_EXPRESSION, message, details)


class NetworkError(FacetScopeError):
    """The backend could not be reached, or did not answer in time."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        timeout: bool = False,
    ) -> None:
        code = ErrorCode.NETWORK_TIMEOUT if timeout else ErrorCode.NETWORK_UNAVAILABLE
        super().__init__(code, message, details)


class BackendError(FacetScopeError):
    """The backend answered with an error status or an unreadable body."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        code = ErrorCode.BACKEND_ERROR if status_code else ErrorCode.BACKEND_INVALID_RESPONSE
        super().__init__(code, message, details)
        self.status_code = status_code


class StaleResponse(FacetScopeError):
    """A response arrived for a request that has since been superseded."""

    def __init__(self, slot: str, sequence_number: int, latest: int) -> None:
        super().__init__(
            ErrorCode.STALE_RESPONSE,
            f"Response #{sequence_number} for slot '{slot}' superseded by #{latest}",
            {"slot": slot, "sequence_number": sequence_number, "latest": latest},
        )
