"""
Structured logging with correlation IDs.

Provides a consistent logging setup for the MCP server.  Records go to
stderr so the stdio transport stays clean, and can additionally be
forwarded to the connected MCP client as log notifications.
"""

import json
import logging
import uuid
from typing import Any, Mapping, Protocol


def setup_logging(agent_name: str, level: str = "INFO") -> logging.Logger:
    """
    Configure structured logging for a component.

    Args:
        agent_name: Name of the component (used as logger prefix).
        level: Log level string (e.g. 'INFO', 'DEBUG').

    Returns:
        Configured logger instance.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s  %(name)-30s  %(levelname)-7s  %(message)s",
    )
    logger = logging.getLogger(agent_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracing."""
    return uuid.uuid4().hex[:12]


class LogNotifier(Protocol):
    """Anything that can push a log record to the MCP client (e.g. FastMCP ``Context``)."""

    async def log(self, level: str, message: str, *, logger_name: str | None = None) -> None: ...


class StructuredLogger:
    """
    Async logger that renders a context mapping next to each message.

    Usage
    -----
    log = StructuredLogger(setup_logging("falkordb_mcp"))
    await log.info("Graph deleted", {"graphName": "demo"})

    Pass ``notifier`` to also send the record to the MCP client.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    async def debug(self, message: str, context: Mapping[str, Any] | None = None, notifier: LogNotifier | None = None) -> None:
        await self._emit(logging.DEBUG, message, context, notifier)

    async def info(self, message: str, context: Mapping[str, Any] | None = None, notifier: LogNotifier | None = None) -> None:
        await self._emit(logging.INFO, message, context, notifier)

    async def warning(self, message: str, context: Mapping[str, Any] | None = None, notifier: LogNotifier | None = None) -> None:
        await self._emit(logging.WARNING, message, context, notifier)

    async def error(self, message: str, context: Mapping[str, Any] | None = None, notifier: LogNotifier | None = None) -> None:
        await self._emit(logging.ERROR, message, context, notifier)

    async def _emit(
        self,
        level: int,
        message: str,
        context: Mapping[str, Any] | None,
        notifier: LogNotifier | None,
    ) -> None:
        text = format_record(message, context)
        self._logger.log(level, text)

        if notifier is None or not self._logger.isEnabledFor(level):
            return
        try:
            await notifier.log(_MCP_LEVELS[level], text, logger_name=self._logger.name)
        except Exception as exc:
            # The client may have gone away; the local record is already written.
            self._logger.warning("Failed to forward log record to MCP client: %s", exc)


_MCP_LEVELS: dict[int, str] = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
}


def format_record(message: str, context: Mapping[str, Any] | None = None) -> str:
    """Render ``message`` followed by its context as compact JSON."""
    if not context:
        return message
    return f"{message}  {json.dumps(dict(context), default=str, sort_keys=True)}"
