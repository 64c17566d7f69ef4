"""MCP server configuration."""

from typing import Literal

from src.shared.config import BaseServerSettings


class McpServerSettings(BaseServerSettings):
    """Settings specific to the FalkorDB MCP server process."""

    server_name: str = "FalkorDB"
    environment: str = "development"

    # "stdio" for local clients, "sse" to serve over HTTP with uvicorn
    mcp_transport: Literal["stdio", "sse"] = "stdio"
    host: str = "0.0.0.0"
    port: int = 3000

    # Empty disables bearer-token checks on the HTTP transport
    mcp_api_key: str = ""
