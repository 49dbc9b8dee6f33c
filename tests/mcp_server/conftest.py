"""Test fixtures for MCP server tests."""
from collections.abc import AsyncGenerator

import pytest
import respx
from fastmcp import Client

from core.config import Settings
from core.context import AppContext, build_app_context
from mcp_server import server
from tests.conftest import API_URL


@pytest.fixture
async def app_context(
    mock_api: respx.MockRouter,  # noqa: ARG001 - respx must be active before requests
) -> AsyncGenerator[AppContext]:
    """Fresh stores for each test, authenticated as the caller's bearer token."""
    ctx = build_app_context(
        Settings(_env_file=None, VITE_API_URL=API_URL, ADMIN_API_TOKEN=""),
        request_token=lambda: "test_token",
    )
    server.set_app_context(ctx)
    yield ctx
    server.set_app_context(None)
    await ctx.aclose()


@pytest.fixture
async def mcp_client(app_context: AppContext) -> AsyncGenerator[Client]:  # noqa: ARG001
    """Create an MCP client connected to the server."""
    async with Client(transport=server.mcp) as client:
        yield client
