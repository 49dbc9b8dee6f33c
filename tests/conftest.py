"""Shared fixtures: sample records, paginated payloads and a mocked backend."""
from collections.abc import AsyncGenerator, Callable
from typing import Any

import httpx
import pytest
import respx

from core.http_client import ApiClient

API_URL = "http://localhost:8000/api/v1"

KEY_TYPE_ID = "11111111-1111-1111-1111-111111111111"
CLIENT_ID = "22222222-2222-2222-2222-222222222222"
OTHER_CLIENT_ID = "33333333-3333-3333-3333-333333333333"


@pytest.fixture
def mock_api() -> respx.MockRouter:
    """Mock the REST backend at the transport level."""
    with respx.mock(base_url=API_URL, assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
async def api(mock_api: respx.MockRouter) -> AsyncGenerator[ApiClient]:  # noqa: ARG001
    """API client authenticated with a fixed token."""
    async with httpx.AsyncClient(base_url=API_URL) as http:
        yield ApiClient(http, lambda: "test_token")


@pytest.fixture
def make_key() -> Callable[..., dict[str, Any]]:
    """Factory for key records shaped like the backend's."""

    def _make_key(index: int, **overrides: Any) -> dict[str, Any]:
        key = {
            "id": f"00000000-0000-0000-0000-{index:012d}",
            "code": f"KEY-{index:04d}",
            "state": "ACTIVE",
            "init_date": "2024-01-01",
            "due_date": "2025-01-01",
            "key_type": {"id": KEY_TYPE_ID, "name": "Professional", "permissions": []},
            "client": {"id": CLIENT_ID, "name": "Acme Corp", "email": "ops@acme.test"},
            "permissions": [{"id": "p1", "name": "export"}, {"id": "p2", "name": "reports"}],
            "created_at": "2024-01-01T00:00:00Z",
            "updated_at": "2024-01-01T00:00:00Z",
        }
        key.update(overrides)
        return key

    return _make_key


@pytest.fixture
def key_page(make_key: Callable[..., dict[str, Any]]) -> Callable[..., dict[str, Any]]:
    """Factory for a paginated keys response out of ``total`` keys."""

    def _key_page(limit: int = 10, offset: int = 0, total: int = 57) -> dict[str, Any]:
        data = [make_key(i) for i in range(offset, min(offset + limit, total))]
        pages = -(-total // limit)
        return {"data": data, "total": total, "limit": limit, "offset": offset, "pages": pages}

    return _key_page


@pytest.fixture
def sample_client() -> dict[str, Any]:
    """Sample client record."""
    return {
        "id": CLIENT_ID,
        "name": "Acme Corp",
        "email": "ops@acme.test",
        "phone": "+34 600 000 000",
        "created_at": "2024-01-01T00:00:00Z",
    }


@pytest.fixture
def sample_client_list(sample_client: dict[str, Any]) -> dict[str, Any]:
    """Sample paginated clients response."""
    return {
        "data": [
            sample_client,
            {
                "id": OTHER_CLIENT_ID,
                "name": "Globex",
                "email": "it@globex.test",
                "phone": "555-0100",
            },
        ],
        "total": 2,
        "limit": 10,
        "offset": 0,
        "pages": 1,
    }
