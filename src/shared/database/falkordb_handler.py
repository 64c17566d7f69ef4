"""
FalkorDB Connection Handler

Wraps the async FalkorDB client.  Graph queries return plain dicts
(``headers``/``data``/``metadata``) so callers can JSON-serialise them
without knowing about FalkorDB's result objects.
"""

import logging
from typing import Any

from falkordb import Edge, Node, Path
from falkordb.asyncio import FalkorDB

from src.shared.config import BaseServerSettings
from src.shared.exceptions import DatabaseConnectionError

logger = logging.getLogger("falkordb_mcp.falkordb_handler")

# Query statistics copied into the ``metadata`` block of every result.
_STATISTICS = (
    "labels_added",
    "labels_removed",
    "nodes_created",
    "nodes_deleted",
    "properties_set",
    "properties_removed",
    "relationships_created",
    "relationships_deleted",
    "indices_created",
    "indices_deleted",
    "cached_execution",
    "run_time_ms",
)


def _to_plain(value: Any) -> Any:
    """Convert FalkorDB graph entities into JSON-friendly structures."""
    if isinstance(value, Node):
        return {
            "id": value.id,
            "labels": list(value.labels or []),
            "properties": {k: _to_plain(v) for k, v in (value.properties or {}).items()},
        }
    if isinstance(value, Edge):
        return {
            "id": value.id,
            "relation": value.relation,
            "src_node": value.src_node.id if isinstance(value.src_node, Node) else value.src_node,
            "dest_node": value.dest_node.id if isinstance(value.dest_node, Node) else value.dest_node,
            "properties": {k: _to_plain(v) for k, v in (value.properties or {}).items()},
        }
    if isinstance(value, Path):
        return {
            "nodes": [_to_plain(n) for n in value.nodes()],
            "edges": [_to_plain(e) for e in value.edges()],
        }
    if isinstance(value, list):
        return [_to_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_plain(v) for k, v in value.items()}
    return value


def _column_name(column: Any) -> str:
    # Headers arrive as [type, name] pairs.
    if isinstance(column, (list, tuple)):
        return str(column[-1])
    return str(column)


def result_to_dict(result: Any) -> dict[str, Any]:
    """Turn a FalkorDB ``QueryResult`` into ``{"headers", "data", "metadata"}``."""
    headers = [_column_name(h) for h in (getattr(result, "header", None) or [])]
    rows = getattr(result, "result_set", None) or []
    data = [
        {name: _to_plain(cell) for name, cell in zip(headers, row)}
        for row in rows
    ]
    metadata = []
    for stat in _STATISTICS:
        value = getattr(result, stat, None)
        if value is not None:
            metadata.append(f"{stat}: {value}")
    return {"headers": headers, "data": data, "metadata": metadata}


class FalkorDBHandler:
    """
    Manages a single async FalkorDB client.

    Usage
    -----
    handler = FalkorDBHandler.from_settings(settings)
    await handler.connect()
    rows = await handler.execute_query("social", "MATCH (n) RETURN n LIMIT 5")
    await handler.close()

    The handler can also be used as an async context-manager:

        async with FalkorDBHandler(host="localhost") as handler:
            await handler.list_graphs()
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        username: str | None = None,
        password: str | None = None,
    ):
        self._host = host
        self._port = port
        self._username = username or None
        self._password = password or None
        self._client: FalkorDB | None = None

    @classmethod
    def from_settings(cls, settings: BaseServerSettings) -> "FalkorDBHandler":
        return cls(
            host=settings.falkordb_host,
            port=settings.falkordb_port,
            username=settings.falkordb_username,
            password=settings.falkordb_password,
        )

    # ─── Lifecycle ──────────────────────────────────────────

    async def connect(self) -> "FalkorDBHandler":
        """Create the async client and verify connectivity.

        Returns:
            Self for method chaining.

        Raises:
            Exception: If FalkorDB cannot be reached.
        """
        if self._client is not None:
            return self

        self._client = FalkorDB(
            host=self._host,
            port=self._port,
            username=self._username,
            password=self._password,
        )
        try:
            await self._client.connection.ping()
            logger.info("Connected to FalkorDB at %s:%s", self._host, self._port)
        except Exception:
            logger.error("Failed to connect to FalkorDB at %s:%s", self._host, self._port)
            self._client = None
            raise
        return self

    async def close(self) -> None:
        """Close the underlying connection pool."""
        if self._client:
            await self._client.connection.aclose()
            self._client = None
            logger.info("FalkorDB connection closed")

    async def __aenter__(self) -> "FalkorDBHandler":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ─── Properties ─────────────────────────────────────────

    @property
    def client(self) -> FalkorDB:
        """Return the raw async client.

        Raises:
            DatabaseConnectionError: If handler is not connected (call connect() first).
        """
        if self._client is None:
            raise DatabaseConnectionError("FalkorDBHandler is not connected, call connect() first")
        return self._client

    # ─── Graph operations ───────────────────────────────────

    async def execute_query(
        self,
        graph_name: str,
        query: str,
        params: dict[str, Any] | None = None,
        read_only: bool = False,
    ) -> dict[str, Any]:
        """Run an OpenCypher query against ``graph_name``.

        ``read_only`` selects GRAPH.RO_QUERY, which the server rejects for
        any query that would write.

        Raises:
            DatabaseConnectionError: If handler is not connected.
            redis.exceptions.ResponseError: If FalkorDB rejects the query.
        """
        graph = self.client.select_graph(graph_name)
        if read_only:
            result = await graph.ro_query(query, params)
        else:
            result = await graph.query(query, params)
        return result_to_dict(result)

    async def execute_read_only_query(
        self,
        graph_name: str,
        query: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return await self.execute_query(graph_name, query, params, read_only=True)

    async def list_graphs(self) -> list[str]:
        """Return the names of all graphs in the database."""
        return list(await self.client.list_graphs())

    async def delete_graph(self, graph_name: str) -> None:
        """Delete a graph.  FalkorDB decides what happens for a missing graph."""
        await self.client.select_graph(graph_name).delete()

    async def verify(self) -> bool:
        """Quick health-check: returns True if the database is reachable."""
        try:
            await self.client.connection.ping()
            return True
        except Exception:
            return False
