"""
Audit events for tool invocations.

The dispatcher calls exactly one of ``record_success`` or
``record_failure`` per invocation.
"""

from typing import Any, Mapping

from src.shared.exceptions import ToolError
from src.shared.logging import LogNotifier, StructuredLogger


class AuditEmitter:
    """Writes one structured log record per dispatched tool call."""

    def __init__(self, log: StructuredLogger):
        self._log = log

    async def record_success(
        self,
        tool: str,
        message: str,
        context: Mapping[str, Any] | None = None,
        level: str = "debug",
        notifier: LogNotifier | None = None,
    ) -> None:
        emit = self._log.info if level == "info" else self._log.debug
        await emit(message, {"tool": tool, **(context or {})}, notifier)

    async def record_failure(
        self,
        tool: str,
        error: ToolError,
        context: Mapping[str, Any] | None = None,
        notifier: LogNotifier | None = None,
    ) -> None:
        context = {
            "tool": tool,
            **(context or {}),
            **error.context,
            "kind": error.kind.value,
            "recoverable": error.recoverable,
            "error": error.message,
        }
        await self._log.error(f"{_title(tool)} tool execution failed", context, notifier)


def _title(tool: str) -> str:
    # "query_graph_readonly" -> "Query graph readonly"
    return tool.replace("_", " ").capitalize()
