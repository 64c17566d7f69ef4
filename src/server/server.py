"""
FalkorDB MCP Server

Exposes eight tools: four over FalkorDB graphs (OpenCypher queries,
listing, deletion) and four over Redis keys.  Each tool's description is
written for the calling LLM.  All tools go through ``ToolDispatcher``,
which owns validation, error normalization and audit logging.

Run as:  python -m src.server.server        (MCP_TRANSPORT=stdio|sse)
"""

from contextlib import AsyncExitStack, asynccontextmanager
from typing import Annotated, Any, Mapping

import uvicorn
from mcp.server.fastmcp import Context, FastMCP
from pydantic import ValidatorFunctionWrapHandler, WrapValidator
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route

from src.server.audit import AuditEmitter
from src.server.auth import ApiKeyMiddleware
from src.server.config import McpServerSettings
from src.server.dispatcher import GraphBackend, KeyValueBackend, ToolDispatcher
from src.server.schemas import ToolName
from src.shared.database import FalkorDBHandler, RedisHandler
from src.shared.exceptions import ConfigurationError
from src.shared.logging import StructuredLogger, setup_logging

logger = setup_logging("falkordb_mcp.server", level="INFO")


def _as_sent(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
    return value


# FastMCP validates tool arguments before calling the tool function.  These
# types hand the raw values through unchanged, so only the dispatcher
# validates (strictly) and every rejected call is audited.  ``Text`` keeps a
# bare ``str`` annotation so FastMCP does not JSON-decode string arguments.
Text = Annotated[str, WrapValidator(_as_sent)]
Flag = Annotated[bool, WrapValidator(_as_sent)]

REQUIRED_ARGUMENTS: dict[ToolName, tuple[str, ...]] = {
    ToolName.QUERY_GRAPH: ("graphName", "query"),
    ToolName.QUERY_GRAPH_READONLY: ("graphName", "query"),
    ToolName.DELETE_GRAPH: ("graphName",),
    ToolName.SET_KEY: ("key", "value"),
    ToolName.GET_KEY: ("key",),
    ToolName.DELETE_KEY: ("key",),
}


# ─── Wiring ───────────────────────────────────────────────


def check_settings(settings: McpServerSettings) -> None:
    """Refuse configurations that would expose an unauthenticated HTTP server in production."""
    if (
        settings.mcp_transport == "sse"
        and settings.environment == "production"
        and not settings.mcp_api_key
    ):
        raise ConfigurationError("MCP_API_KEY must be set when serving over HTTP in production")


def build_dispatcher(
    settings: McpServerSettings,
    graph: GraphBackend,
    store: KeyValueBackend,
) -> ToolDispatcher:
    audit = AuditEmitter(StructuredLogger(setup_logging("falkordb_mcp.tools", settings.log_level)))
    return ToolDispatcher(
        graph,
        store,
        audit,
        default_read_only=settings.falkordb_default_readonly,
    )


def handler_lifespan(graph: FalkorDBHandler, store: RedisHandler):
    """Connect both backends on startup and close them on shutdown.

    A handler that connected is closed again even if a later one fails
    to connect.
    """

    @asynccontextmanager
    async def lifespan(_app: Any):
        async with AsyncExitStack() as stack:
            for handler in (graph, store):
                await handler.connect()
                stack.push_async_callback(handler.close)
            yield

    return lifespan


def _advertise_required(mcp: FastMCP) -> None:
    # Tool parameters default to None so a missing argument reaches the
    # dispatcher; the published schema still lists what callers must send.
    for tool, fields in REQUIRED_ARGUMENTS.items():
        mcp._tool_manager.get_tool(tool.value).parameters["required"] = list(fields)


# ─── Tools ────────────────────────────────────────────────


def create_server(
    dispatcher: ToolDispatcher,
    settings: McpServerSettings | None = None,
    lifespan: Any = None,
) -> FastMCP:
    """Build a FastMCP server whose tools all delegate to ``dispatcher``."""
    settings = settings or McpServerSettings()
    mcp = FastMCP(settings.server_name, lifespan=lifespan)

    async def call(tool: ToolName, arguments: dict[str, Any], ctx: Context) -> str:
        # Unset arguments are dropped so the dispatcher sees them as absent.
        supplied = {name: value for name, value in arguments.items() if value is not None}
        result = await dispatcher.dispatch(tool, supplied, notifier=ctx)
        return result.text

    @mcp.tool(
        name=ToolName.QUERY_GRAPH.value,
        title="Query Graph",
        description=(
            "Run an OpenCypher query on a graph. Supports both read-write and read-only queries. "
            "Set readOnly to true to execute with GRAPH.RO_QUERY, which is useful for replica "
            "instances or to prevent accidental writes. When readOnly is omitted the server "
            "default (FALKORDB_DEFAULT_READONLY) applies."
        ),
    )
    async def query_graph(
        ctx: Context, graphName: Text = None, query: Text = None, readOnly: Flag = None,  # noqa: N803
    ) -> str:
        return await call(
            ToolName.QUERY_GRAPH,
            {"graphName": graphName, "query": query, "readOnly": readOnly},
            ctx,
        )

    @mcp.tool(
        name=ToolName.QUERY_GRAPH_READONLY.value,
        title="Query Graph (Read-Only)",
        description=(
            "Run a read-only OpenCypher query on a graph using GRAPH.RO_QUERY. Write operations "
            "will fail. Ideal for replica instances."
        ),
    )
    async def query_graph_readonly(ctx: Context, graphName: Text = None, query: Text = None) -> str:  # noqa: N803
        return await call(ToolName.QUERY_GRAPH_READONLY, {"graphName": graphName, "query": query}, ctx)

    @mcp.tool(
        name=ToolName.LIST_GRAPHS.value,
        title="List Graphs",
        description="List all graphs available to query, one name per line.",
    )
    async def list_graphs(ctx: Context) -> str:
        return await call(ToolName.LIST_GRAPHS, {}, ctx)

    @mcp.tool(
        name=ToolName.DELETE_GRAPH.value,
        title="Delete Graph",
        description="Delete a graph from the database.",
    )
    async def delete_graph(ctx: Context, graphName: Text = None) -> str:  # noqa: N803
        return await call(ToolName.DELETE_GRAPH, {"graphName": graphName}, ctx)

    @mcp.tool(
        name=ToolName.LIST_KEYS.value,
        title="List Keys",
        description="List all keys in Redis, one key per line.",
    )
    async def list_keys(ctx: Context) -> str:
        return await call(ToolName.LIST_KEYS, {}, ctx)

    @mcp.tool(
        name=ToolName.SET_KEY.value,
        title="Set Key",
        description="Set a key in Redis, overwriting any existing value. The value may be an empty string.",
    )
    async def set_key(ctx: Context, key: Text = None, value: Text = None) -> str:
        return await call(ToolName.SET_KEY, {"key": key, "value": value}, ctx)

    @mcp.tool(
        name=ToolName.GET_KEY.value,
        title="Get Key",
        description="Get a key from Redis. Missing keys are reported as 'null (not found)'.",
    )
    async def get_key(ctx: Context, key: Text = None) -> str:
        return await call(ToolName.GET_KEY, {"key": key}, ctx)

    @mcp.tool(
        name=ToolName.DELETE_KEY.value,
        title="Delete Key",
        description="Delete a key from Redis.",
    )
    async def delete_key(ctx: Context, key: Text = None) -> str:
        return await call(ToolName.DELETE_KEY, {"key": key}, ctx)

    _advertise_required(mcp)
    return mcp


# ─── HTTP transport ───────────────────────────────────────


def create_http_app(
    mcp: FastMCP,
    settings: McpServerSettings,
    lifespan: Any = None,
    backends: Mapping[str, Any] | None = None,
) -> Starlette:
    """Serve ``mcp`` over SSE behind the API key check, plus an open ``/health`` route.

    ``backends`` maps a name to a handler with an async ``verify()``; /health
    reports each one and answers 503 when any is unreachable.
    """
    backends = dict(backends or {})

    async def health(request: Request) -> JSONResponse:
        checks = {name: await handler.verify() for name, handler in backends.items()}
        healthy = all(checks.values())
        body: dict[str, Any] = {"status": "ok" if healthy else "degraded", "server": settings.server_name}
        if checks:
            body["backends"] = checks
        return JSONResponse(body, status_code=200 if healthy else 503)

    return Starlette(
        routes=[
            Route("/health", health),
            Mount("/", app=mcp.sse_app()),
        ],
        middleware=[Middleware(ApiKeyMiddleware, api_key=settings.mcp_api_key)],
        lifespan=lifespan,
    )


# ─── Entry point ──────────────────────────────────────────


def main() -> None:
    settings = McpServerSettings()
    check_settings(settings)

    graph = FalkorDBHandler.from_settings(settings)
    store = RedisHandler.from_settings(settings)
    dispatcher = build_dispatcher(settings, graph, store)
    lifespan = handler_lifespan(graph, store)

    if settings.mcp_transport == "sse":
        mcp = create_server(dispatcher, settings)
        app = create_http_app(mcp, settings, lifespan=lifespan, backends={"falkordb": graph, "redis": store})
        logger.info(f"Starting FalkorDB MCP server (SSE transport on {settings.host}:{settings.port})")
        uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    else:
        # stdio: stdout carries JSON-RPC, logs stay on stderr
        mcp = create_server(dispatcher, settings, lifespan=lifespan)
        logger.info("Starting FalkorDB MCP server (stdio transport)")
        mcp.run()


if __name__ == "__main__":
    main()
