"""
Error taxonomy shared by the API handlers.

Every handler failure is one of the ApiError subclasses below; main.py maps
them to JSON bodies of the form ``{"error": ..., "details": ...}``.
"""
from __future__ import annotations

from typing import Any, List, Optional


class ConfigurationError(RuntimeError):
    """Raised at startup when the environment does not describe a usable setup."""


class StoreError(RuntimeError):
    """Raised by repositories when the document store fails."""


# PUBLIC_INTERFACE
class ApiError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code: int = 500
    error: str = "Internal server error"

    def __init__(self, details: Any = None) -> None:
        super().__init__(details if isinstance(details, str) else self.error)
        self.details = details

    def to_body(self) -> dict:
        body = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


class Unauthorized(ApiError):
    status_code = 401
    error = "Unauthorized"

    def __init__(self, details: Any = "Valid authentication token required") -> None:
        super().__init__(details)


class BadRequest(ApiError):
    status_code = 400
    error = "Bad Request"


class ValidationFailed(ApiError):
    """Payload failed its schema contract; ``details`` lists the offending fields."""

    status_code = 400
    error = "Validation error"

    def __init__(self, errors: Optional[List[Any]] = None) -> None:
        super().__init__([_as_dict(e) for e in (errors or [])])


class NotFound(ApiError):
    status_code = 404
    error = "Not Found"


class InternalError(ApiError):
    status_code = 500
    error = "Internal server error"

    def __init__(self, details: Any = "Unexpected error") -> None:
        super().__init__(details)


def _as_dict(err: Any) -> Any:
    to_dict = getattr(err, "to_dict", None)
    return to_dict() if callable(to_dict) else err
