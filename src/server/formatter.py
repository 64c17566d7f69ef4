"""
Result formatting — raw backend values to the tool response envelope.

Every tool answers with exactly one text content block.
"""

import json
from dataclasses import dataclass
from typing import Any, Iterable

from mcp.types import TextContent

NOT_FOUND_MARKER = "null (not found)"


@dataclass(frozen=True)
class ToolResult:
    """Uniform success envelope: a single text block."""

    content: tuple[TextContent, ...]

    @classmethod
    def from_text(cls, text: str) -> "ToolResult":
        return cls(content=(TextContent(type="text", text=text),))

    @property
    def text(self) -> str:
        return self.content[0].text


def format_query_result(result: Any) -> str:
    """Pretty-print a query result (``headers``/``data``/``metadata``) as JSON."""
    return json.dumps(result, indent=2, default=str, ensure_ascii=False)


def format_listing(names: Iterable[str]) -> str:
    """One name per line; an empty listing is an empty string."""
    return "\n".join(names)


def format_graph_deleted(graph_name: str) -> str:
    return f"Graph {graph_name} deleted"


def format_key_set(key: str, value: str) -> str:
    return f"Key {key} set to {value}"


def format_key_value(key: str, value: str | None) -> str:
    # Only None means missing; "" and "null" are real stored values.
    return f"Key {key} is {NOT_FOUND_MARKER if value is None else value}"


def format_key_deleted(key: str) -> str:
    return f"Key {key} deleted"
