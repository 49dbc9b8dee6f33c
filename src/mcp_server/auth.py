"""Authentication utilities for MCP server."""

from fastmcp.server.dependencies import get_http_headers


class AuthenticationError(Exception):
    """Raised when the Authorization header is present but unusable."""

    pass


def get_request_token() -> str | None:
    """
    Extract the Bearer token from the incoming request, if any.

    Returns:
        The token string (without 'Bearer ' prefix), or None when the request
        carries no Authorization header (the session token is used instead).

    Raises:
        AuthenticationError: If the header is present but not a valid Bearer token.
    """
    headers = get_http_headers()
    auth_header = headers.get("authorization", "")
    if not auth_header:
        return None

    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        raise AuthenticationError("Invalid Authorization header")

    token = token.strip()
    if not token:
        raise AuthenticationError("Empty Bearer token")

    return token
