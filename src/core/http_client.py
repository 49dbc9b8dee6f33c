"""HTTP client for the license-keys REST API."""
import logging
from collections.abc import Callable
from typing import Any

import httpx

from shared.api_errors import TransportError, to_server_rejection

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]


def _get_headers(token: str | None) -> dict[str, str]:
    """Get common headers for API requests."""
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _clean_params(params: dict[str, Any] | None) -> dict[str, Any] | None:
    """Drop query parameters that were not provided."""
    if params is None:
        return None
    return {key: value for key, value in params.items() if value is not None}


def _parse_body(response: httpx.Response) -> Any:
    """Return parsed JSON, or None for an empty success body."""
    if not response.content:
        return None
    return response.json()


class ApiClient:
    """
    Authenticated JSON client over a shared httpx.AsyncClient.

    The token is looked up on every request, so signing in or out takes effect
    immediately. Failures are raised as AdminApiError subclasses:
    ServerRejectionError for non-2xx answers (carrying the server's message or
    the per-call fallback) and TransportError when no answer arrived.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        token_provider: TokenProvider,
    ) -> None:
        self._http = http
        self._token_provider = token_provider

    @property
    def is_closed(self) -> bool:
        """True once aclose() has run."""
        return self._http.is_closed

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._http.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        fallback: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """
        Send one authenticated request.

        Args:
            method: HTTP method.
            path: Path relative to the API base URL.
            fallback: Message used if the server rejects without a message.
            params: Query parameters; None values are omitted.
            json: JSON body.

        Returns:
            Parsed JSON body, or None when the body is empty.

        Raises:
            ServerRejectionError: Non-2xx response.
            TransportError: Connection failure or timeout.
        """
        try:
            response = await self._http.request(
                method,
                path,
                params=_clean_params(params),
                json=json,
                headers=_get_headers(self._token_provider()),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "api_request_rejected method=%s path=%s status=%s",
                method, path, e.response.status_code,
            )
            raise to_server_rejection(e, fallback) from e
        except httpx.RequestError as e:
            logger.warning("api_request_failed method=%s path=%s error=%s", method, path, e)
            raise TransportError() from e
        return _parse_body(response)

    async def get(
        self, path: str, *, fallback: str, params: dict[str, Any] | None = None,
    ) -> Any:
        """Make an authenticated GET request to the API."""
        return await self.request("GET", path, fallback=fallback, params=params)

    async def post(self, path: str, *, fallback: str, json: Any = None) -> Any:
        """Make an authenticated POST request to the API."""
        return await self.request("POST", path, fallback=fallback, json=json)

    async def patch(self, path: str, *, fallback: str, json: Any) -> Any:
        """Make an authenticated PATCH request to the API."""
        return await self.request("PATCH", path, fallback=fallback, json=json)

    async def put(self, path: str, *, fallback: str, json: Any) -> Any:
        """Make an authenticated PUT request to the API."""
        return await self.request("PUT", path, fallback=fallback, json=json)

    async def delete(self, path: str, *, fallback: str) -> Any:
        """Make an authenticated DELETE request to the API."""
        return await self.request("DELETE", path, fallback=fallback)
