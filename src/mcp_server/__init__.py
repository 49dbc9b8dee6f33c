"""MCP server exposing the license keys admin views as tools."""

from .auth import AuthenticationError, get_request_token
from .server import mcp

__all__ = ["AuthenticationError", "get_request_token", "mcp"]
