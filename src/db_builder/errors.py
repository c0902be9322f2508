"""Error taxonomy for backend calls.

Every error surfaced by ``ApiClient`` and the resource services is one of a
closed set, all subclasses of ``DbBuilderError``:

- ``ApiError``: any HTTP failure with a status code (base for the rest)
- ``ValidationError`` (400), optionally with a per-field message map
- ``AuthenticationError`` (401 / expired or missing session)
- ``AuthorizationError`` (403)
- ``NotFoundError`` (404)
- ``ServerError`` (5xx)
- ``NetworkError``: no response (unreachable backend, timeout)

Usage:
    from db_builder.errors import NotFoundError

    try:
        await projects.get("p1")
    except NotFoundError:
        ...
"""

from typing import Any


class DbBuilderError(Exception):
    """Base class for all client errors."""

    pass


class ApiError(DbBuilderError):
    """HTTP error response from the backend.

    Attributes:
        status_code: HTTP status code, if known.
        response: Decoded error body (dict) or ``None``.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class NetworkError(DbBuilderError):
    """No response from the server (connection failure or timeout)."""

    def __init__(self, message: str = "Network error - Backend unreachable") -> None:
        super().__init__(message)
        self.message = message


class AuthenticationError(ApiError):
    """Authentication required or session expired (401)."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, status_code=401)


class AuthorizationError(ApiError):
    """Authenticated but not permitted (403)."""

    def __init__(self, message: str = "Permission denied") -> None:
        super().__init__(message, status_code=403)


class NotFoundError(ApiError):
    """Requested resource does not exist (404)."""

    def __init__(self, resource: str | None = None) -> None:
        self.resource = resource or "Resource"
        super().__init__(f"{self.resource} not found", status_code=404)


class ValidationError(ApiError):
    """Request rejected as invalid (400).

    Attributes:
        fields: Optional mapping of field name to a list of messages.
    """

    def __init__(
        self,
        message: str,
        fields: dict[str, list[str]] | None = None,
    ) -> None:
        super().__init__(message, status_code=400)
        self.fields = fields


class ServerError(ApiError):
    """Backend failure (5xx)."""

    def __init__(
        self,
        message: str = "Internal server error",
        status_code: int = 500,
    ) -> None:
        super().__init__(message, status_code=status_code)


# Client faults: never retried
NON_RETRYABLE_ERRORS: tuple[type[DbBuilderError], ...] = (
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
)
