"""
Custom exception hierarchy for the FalkorDB MCP server.

All server errors inherit from ServerError so they can be caught
uniformly at the transport level.  Tool invocations only ever surface
``ToolError``: every other condition is folded into one by
``normalize_error`` before it leaves the dispatcher.
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class ServerError(Exception):
    """Base exception for all server errors."""

    def __init__(self, message: str, component: str = "unknown"):
        self.component = component
        super().__init__(f"[{component}] {message}")


class DatabaseConnectionError(ServerError):
    """A backend client was used before it was connected, or the connection failed."""

    def __init__(self, message: str):
        super().__init__(message, component="database")


class ConfigurationError(ServerError):
    """Settings could not be turned into a working server."""

    def __init__(self, message: str):
        super().__init__(message, component="config")


class ErrorKind(str, Enum):
    """Tag carried by every ToolError."""

    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    BACKEND_FAILURE = "backend_failure"
    INTERNAL = "internal"


# Whether the caller can fix the problem by changing the request.
_RECOVERABLE: dict[ErrorKind, bool] = {
    ErrorKind.INVALID_INPUT: True,
    ErrorKind.NOT_FOUND: True,
    ErrorKind.BACKEND_FAILURE: False,
    ErrorKind.INTERNAL: False,
}


class ToolError(ServerError):
    """The single error shape returned by a failing tool invocation.

    Attributes are fixed at construction; ``context`` is a read-only view.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        recoverable: bool | None = None,
        context: Mapping[str, Any] | None = None,
    ):
        self.kind = kind
        self.message = message
        self.recoverable = _RECOVERABLE[kind] if recoverable is None else recoverable
        self.context: Mapping[str, Any] = MappingProxyType(dict(context or {}))
        super().__init__(message, component=kind.value)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logs."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "context": dict(self.context),
        }

    @classmethod
    def invalid_input(cls, message: str, **context: Any) -> "ToolError":
        return cls(ErrorKind.INVALID_INPUT, message, context=context)


class Stage(str, Enum):
    """Dispatch stage an exception escaped from."""

    VALIDATION = "validation"
    BACKEND = "backend"
    FORMATTING = "formatting"


def normalize_error(
    exc: BaseException,
    stage: Stage,
    context: Mapping[str, Any] | None = None,
) -> ToolError:
    """Fold any exception into a ToolError.

    An existing ToolError is returned unchanged.  Exceptions raised by a
    backend call keep the backend's message: ``LookupError`` maps to
    NOT_FOUND and anything else to BACKEND_FAILURE.  Exceptions from any
    other stage are INTERNAL.
    """
    if isinstance(exc, ToolError):
        return exc

    details = dict(context or {})
    details["stage"] = stage.value
    details["error_type"] = type(exc).__name__
    message = str(exc) or type(exc).__name__

    if stage is Stage.BACKEND:
        kind = ErrorKind.NOT_FOUND if isinstance(exc, LookupError) else ErrorKind.BACKEND_FAILURE
        return ToolError(kind, message, context=details)

    return ToolError(ErrorKind.INTERNAL, f"Unexpected error during {stage.value}: {message}", context=details)
