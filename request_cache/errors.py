"""
Error taxonomy for the request cache.
"""

from typing import Dict, Any, Optional


class RequestCacheError(Exception):
    """Base exception for request cache failures."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a serialisable error payload."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class AbortError(RequestCacheError):
    """Non-retryable failure; stops a retry loop on the spot."""

    def __init__(self, message: str = "Aborted", details: Optional[Dict[str, Any]] = None,
                 code: str = "ABORTED"):
        super().__init__(code, message, details)


class NotFoundAbort(AbortError):
    """The remote resource does not exist."""

    def __init__(self, key: str, details: Optional[Dict[str, Any]] = None):
        self.key = key
        super().__init__("Not found", {"key": key, "status_code": 404, **(details or {})}, code="NOT_FOUND")


class TransientFetchError(RequestCacheError):
    """Transport or HTTP failure that is worth retrying."""

    def __init__(self, key: str, message: str = "Fetch failed", details: Optional[Dict[str, Any]] = None,
                 code: str = "FETCH_ERROR"):
        self.key = key
        super().__init__(code, message, {"key": key, **(details or {})})


class ParseError(TransientFetchError):
    """Response body could not be parsed."""

    def __init__(self, key: str, message: str = "Malformed response body", details: Optional[Dict[str, Any]] = None):
        super().__init__(key, message, details, code="PARSE_ERROR")
