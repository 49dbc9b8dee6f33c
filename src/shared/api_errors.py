"""
Error taxonomy for calls against the license-keys backend.

Every failure the admin client surfaces derives from AdminApiError. The HTTP
client converts httpx exceptions into TransportError or ServerRejectionError;
the edit-form adapter raises PatchValidationError before any request is sent.
Callers facing the user (the MCP tools) turn these into messages; nothing in
the client retries or swallows them.
"""

from dataclasses import dataclass
from typing import Any, Literal

import httpx

ErrorCategory = Literal[
    "auth",        # 401 - Invalid or expired token
    "forbidden",   # 403 - Access denied
    "not_found",   # 404 - Resource not found
    "validation",  # 400/422 - Validation error
    "conflict",    # 409 - Duplicate code, email, etc.
    "internal",    # 5xx or unexpected errors
]

GENERIC_TRANSPORT_MESSAGE = "No se pudo conectar con el servidor"


class AdminApiError(Exception):
    """Base class for every error raised by the admin client."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TransportError(AdminApiError):
    """The request never got a response (connection refused, timeout, ...)."""

    status_code: int | None = None

    def __init__(self, message: str = GENERIC_TRANSPORT_MESSAGE) -> None:
        super().__init__(message)


class ServerRejectionError(AdminApiError):
    """The backend answered with a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        message: str,
        category: ErrorCategory = "internal",
        server_message: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.category = category
        self.server_message = server_message
        super().__init__(message)


class PatchValidationError(AdminApiError):
    """A dirty-field patch failed the resource's partial-update schema."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")


@dataclass
class ParsedApiError:
    """Parsed API error with semantic category and the server's own message."""

    category: ErrorCategory
    server_message: str | None


def categorize_status(status: int) -> ErrorCategory:  # noqa: PLR0911
    """Map an HTTP status code to an error category."""
    if status == 401:
        return "auth"
    if status == 403:
        return "forbidden"
    if status == 404:
        return "not_found"
    if status == 409:
        return "conflict"
    if status in (400, 422):
        return "validation"
    return "internal"


def parse_http_error(e: httpx.HTTPStatusError) -> ParsedApiError:
    """
    Parse an HTTP error into a category and the server-provided message.

    The backend reports errors as ``{"message": ...}`` or ``{"error": ...}``;
    FastAPI-style ``{"detail": ...}`` bodies are accepted as well.

    Args:
        e: The HTTP status error from httpx

    Returns:
        ParsedApiError with category and the message (None if the body has none)
    """
    return ParsedApiError(
        category=categorize_status(e.response.status_code),
        server_message=_extract_server_message(e.response),
    )


def to_server_rejection(e: httpx.HTTPStatusError, fallback: str) -> ServerRejectionError:
    """
    Build a ServerRejectionError, preferring the server's message over the fallback.

    Args:
        e: The HTTP status error from httpx
        fallback: Per-operation message used when the body carries none
            (e.g., "Error al actualizar la key")
    """
    parsed = parse_http_error(e)
    return ServerRejectionError(
        status_code=e.response.status_code,
        message=parsed.server_message or fallback,
        category=parsed.category,
        server_message=parsed.server_message,
    )


def _extract_server_message(response: httpx.Response) -> str | None:
    """Safely extract a human-readable message from an error response body."""
    try:
        body: Any = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None

    for key in ("message", "error"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value

    detail = body.get("detail")
    if isinstance(detail, str) and detail:
        return detail
    if isinstance(detail, dict):
        message = detail.get("message")
        return message if isinstance(message, str) and message else None
    if isinstance(detail, list):
        # FastAPI validation errors return a list of error objects
        messages = []
        for err in detail:
            if isinstance(err, dict):
                loc = err.get("loc", ["unknown"])
                field = loc[-1] if loc else "unknown"
                msg = err.get("msg", "invalid")
                messages.append(f"{field}: {msg}")
        return "; ".join(messages) if messages else None
    return None
