"""
Tool Dispatcher — binds each MCP tool to exactly one backend call.

``ToolDispatcher.dispatch`` runs one invocation as a fixed sequence:

    validate -> (resolve mode) -> backend call -> format -> audit success

Any exception along the way is folded into a ``ToolError`` by
``normalize_error``, recorded once with ``AuditEmitter.record_failure``
and re-raised.  The backends are injected so tests can swap in fakes.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Protocol

from src.server.audit import AuditEmitter
from src.server.formatter import (
    ToolResult,
    format_graph_deleted,
    format_key_deleted,
    format_key_set,
    format_key_value,
    format_listing,
    format_query_result,
)
from src.server.modes import QueryMode, resolve_query_mode
from src.server.schemas import (
    QueryGraphReadOnlyRequest,
    QueryGraphRequest,
    ToolName,
    ToolRequest,
    identifying_fields,
    validate_request,
)
from src.shared.exceptions import Stage, normalize_error
from src.shared.logging import LogNotifier, generate_correlation_id


class GraphBackend(Protocol):
    async def execute_query(
        self, graph_name: str, query: str, params: dict[str, Any] | None = None, read_only: bool = False,
    ) -> Any: ...

    async def execute_read_only_query(
        self, graph_name: str, query: str, params: dict[str, Any] | None = None,
    ) -> Any: ...

    async def list_graphs(self) -> list[str]: ...

    async def delete_graph(self, graph_name: str) -> Any: ...


class KeyValueBackend(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> Any: ...

    async def delete(self, key: str) -> Any: ...

    async def list_keys(self) -> list[str]: ...


@dataclass(frozen=True)
class ToolBinding:
    """How one tool maps onto its backend call, its response text and its success log."""

    call: Callable[[Any], Awaitable[Any]]
    render: Callable[[Any, Any], str]
    message: str
    describe: Callable[[Any, Any], dict[str, Any]]
    level: str = "debug"


class ToolDispatcher:
    """Validates, routes and reports every tool invocation."""

    def __init__(
        self,
        graph: GraphBackend,
        store: KeyValueBackend,
        audit: AuditEmitter,
        default_read_only: bool = False,
    ):
        self._graph = graph
        self._store = store
        self._audit = audit
        self._default_read_only = default_read_only

        self._bindings: dict[ToolName, ToolBinding] = {
            ToolName.QUERY_GRAPH: ToolBinding(
                call=self._query_graph,
                render=lambda req, raw: format_query_result(raw),
                message="Query tool executed successfully",
                describe=lambda req, raw: {
                    "graphName": req.graph_name,
                    "readOnly": self.mode_for(req).is_read_only,
                },
            ),
            ToolName.QUERY_GRAPH_READONLY: ToolBinding(
                call=self._query_graph_readonly,
                render=lambda req, raw: format_query_result(raw),
                message="Read-only query tool executed successfully",
                describe=lambda req, raw: {"graphName": req.graph_name},
            ),
            ToolName.LIST_GRAPHS: ToolBinding(
                call=lambda req: self._graph.list_graphs(),
                render=lambda req, raw: format_listing(raw),
                message="List graphs tool executed",
                describe=lambda req, raw: {"count": len(raw)},
            ),
            ToolName.DELETE_GRAPH: ToolBinding(
                call=lambda req: self._graph.delete_graph(req.graph_name),
                render=lambda req, raw: format_graph_deleted(req.graph_name),
                message="Delete graph tool executed successfully",
                describe=lambda req, raw: {"graphName": req.graph_name},
                level="info",
            ),
            ToolName.LIST_KEYS: ToolBinding(
                call=lambda req: self._store.list_keys(),
                render=lambda req, raw: format_listing(raw),
                message="List keys tool executed",
                describe=lambda req, raw: {"count": len(raw)},
            ),
            ToolName.SET_KEY: ToolBinding(
                call=lambda req: self._store.set(req.key, req.value),
                render=lambda req, raw: format_key_set(req.key, req.value),
                message="Set key tool executed successfully",
                describe=lambda req, raw: {"key": req.key},
            ),
            ToolName.GET_KEY: ToolBinding(
                call=lambda req: self._store.get(req.key),
                render=lambda req, raw: format_key_value(req.key, raw),
                message="Get key tool executed successfully",
                describe=lambda req, raw: {"key": req.key, "hasValue": raw is not None},
            ),
            ToolName.DELETE_KEY: ToolBinding(
                call=lambda req: self._store.delete(req.key),
                render=lambda req, raw: format_key_deleted(req.key),
                message="Delete key tool executed successfully",
                describe=lambda req, raw: {"key": req.key},
            ),
        }

    def tool_names(self) -> list[str]:
        return [name.value for name in self._bindings]

    def mode_for(self, request: QueryGraphRequest) -> QueryMode:
        return resolve_query_mode(request.read_only, self._default_read_only)

    # ─── Graph bindings ───────────────────────────────────

    async def _query_graph(self, request: QueryGraphRequest) -> Any:
        mode = self.mode_for(request)
        return await self._graph.execute_query(
            request.graph_name, request.query, read_only=mode.is_read_only,
        )

    async def _query_graph_readonly(self, request: QueryGraphReadOnlyRequest) -> Any:
        return await self._graph.execute_read_only_query(request.graph_name, request.query)

    # ─── Entry point ──────────────────────────────────────

    async def dispatch(
        self,
        tool_name: ToolName | str,
        arguments: Mapping[str, Any] | None = None,
        notifier: LogNotifier | None = None,
    ) -> ToolResult:
        """Run one tool invocation.

        Args:
            tool_name: One of the ``ToolName`` values.
            arguments: Raw, untrusted field map from the caller.
            notifier: Optional MCP context that also receives the audit record.

        Returns:
            The single-text-block ToolResult.

        Raises:
            ToolError: The normalized failure, already logged once.
        """
        tool = getattr(tool_name, "value", str(tool_name))
        context = {
            "tool": tool,
            "correlation_id": generate_correlation_id(),
            **identifying_fields(arguments),
        }

        stage = Stage.VALIDATION
        try:
            request: ToolRequest = validate_request(tool_name, arguments)
            binding = self._bindings[request.tool]

            stage = Stage.BACKEND
            raw = await binding.call(request)

            stage = Stage.FORMATTING
            result = ToolResult.from_text(binding.render(request, raw))
            details = binding.describe(request, raw)
        except Exception as exc:
            error = normalize_error(exc, stage, context)
            await self._audit.record_failure(tool, error, context, notifier)
            if error is exc:
                raise
            raise error from exc

        await self._audit.record_success(
            tool,
            binding.message,
            {"correlation_id": context["correlation_id"], **details},
            level=binding.level,
            notifier=notifier,
        )
        return result
