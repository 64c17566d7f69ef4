"""FalkorDB MCP server — tool validation, dispatch and transport."""

from src.server.dispatcher import ToolDispatcher
from src.server.formatter import ToolResult
from src.server.schemas import ToolName

__all__ = [
    "ToolDispatcher",
    "ToolResult",
    "ToolName",
]
