"""User-facing error messages and error classification helpers."""

import logging

from db_builder.errors import (
    ApiError,
    AuthenticationError,
    AuthorizationError,
    NetworkError,
    NotFoundError,
    ServerError,
    ValidationError,
)

logger = logging.getLogger(__name__)

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log in again."
FORBIDDEN_MESSAGE = "You do not have permission to perform this action."
NOT_FOUND_MESSAGE = "The requested record was not found."
INVALID_INPUT_MESSAGE = "The information you entered contains errors."
NETWORK_MESSAGE = "Check your internet connection and try again."
SERVER_MESSAGE = "Server error. Please try again later."
GENERIC_MESSAGE = "An error occurred."
UNKNOWN_MESSAGE = "An unknown error occurred."


def get_error_message(error: object) -> str:
    """Map ``error`` to a message suitable for showing to the user."""
    if isinstance(error, AuthenticationError):
        return SESSION_EXPIRED_MESSAGE
    if isinstance(error, AuthorizationError):
        return FORBIDDEN_MESSAGE
    if isinstance(error, NotFoundError):
        return error.message or NOT_FOUND_MESSAGE
    if isinstance(error, ValidationError):
        if isinstance(error.fields, dict) and error.fields:
            lines = [
                f"{name}: {', '.join(messages)}"
                for name, messages in error.fields.items()
            ]
            return "Validation error:\n" + "\n".join(lines)
        return error.message or INVALID_INPUT_MESSAGE
    if isinstance(error, NetworkError):
        return NETWORK_MESSAGE
    if isinstance(error, ServerError):
        return SERVER_MESSAGE
    if isinstance(error, ApiError):
        return error.message or GENERIC_MESSAGE
    if isinstance(error, Exception):
        return str(error) or UNKNOWN_MESSAGE
    return UNKNOWN_MESSAGE


def handle_error(error: object, context: str | None = None) -> str:
    """Log ``error`` (tagged with ``context``) and return its user message."""
    message = get_error_message(error)
    if context:
        logger.error("[%s] %s", context, error)
    else:
        logger.error("Error: %s", error)
    return message


def should_logout(error: object) -> bool:
    return isinstance(error, AuthenticationError)


def is_retriable(error: object) -> bool:
    """Transient failures worth retrying: network, server and other 5xx."""
    if isinstance(error, (NetworkError, ServerError)):
        return True
    return (
        isinstance(error, ApiError)
        and error.status_code is not None
        and error.status_code >= 500
    )
