"""Entry point for running the MCP server."""

import logging
import os

from core.config import get_settings

from .server import mcp

if __name__ == "__main__":
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    host = os.getenv("MCP_HOST", "0.0.0.0")
    port = int(os.getenv("MCP_PORT", "8001"))
    mcp.run(transport="http", host=host, port=port, stateless_http=True)
