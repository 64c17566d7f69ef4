"""
Unit tests for the FalkorDB and Redis handlers.

The client libraries are patched out; no running database is needed.
"""

from types import SimpleNamespace

import pytest
from falkordb import Node
from unittest.mock import AsyncMock, MagicMock, patch

from src.server.config import McpServerSettings
from src.shared.database import FalkorDBHandler, RedisHandler
from src.shared.database.falkordb_handler import result_to_dict
from src.shared.exceptions import DatabaseConnectionError


# ─── FalkorDB ────────────────────────────────────────────────


RAW_RESULT = SimpleNamespace(
    header=[[1, "name"], [1, "age"]],
    result_set=[["Alice", 30], ["Bob", 41]],
    nodes_created=0,
    run_time_ms=0.5,
)


@pytest.fixture
def falkordb_client():
    with patch("src.shared.database.falkordb_handler.FalkorDB") as cls:
        client = MagicMock()
        client.connection.ping = AsyncMock(return_value=True)
        client.connection.aclose = AsyncMock()
        client.list_graphs = AsyncMock(return_value=["demo", "social"])

        graph = MagicMock()
        graph.query = AsyncMock(return_value=RAW_RESULT)
        graph.ro_query = AsyncMock(return_value=RAW_RESULT)
        graph.delete = AsyncMock()
        client.select_graph.return_value = graph

        cls.return_value = client
        yield cls, client, graph


class TestResultToDict:

    def test_rows_keyed_by_column(self):
        assert result_to_dict(RAW_RESULT) == {
            "headers": ["name", "age"],
            "data": [{"name": "Alice", "age": 30}, {"name": "Bob", "age": 41}],
            "metadata": ["nodes_created: 0", "run_time_ms: 0.5"],
        }

    def test_nodes_become_dicts(self):
        node = Node(node_id=7, labels=["Person"], properties={"name": "Alice"})
        result = SimpleNamespace(header=[[1, "n"]], result_set=[[node]])

        assert result_to_dict(result)["data"] == [
            {"n": {"id": 7, "labels": ["Person"], "properties": {"name": "Alice"}}},
        ]

    def test_empty_result(self):
        assert result_to_dict(SimpleNamespace(header=None, result_set=None)) == {
            "headers": [],
            "data": [],
            "metadata": [],
        }


class TestFalkorDBHandler:

    async def test_connect_pings(self, falkordb_client):
        cls, client, _ = falkordb_client
        handler = FalkorDBHandler(host="db", port=6380, username="", password="pw")

        assert await handler.connect() is handler

        cls.assert_called_once_with(host="db", port=6380, username=None, password="pw")
        client.connection.ping.assert_awaited_once()

    async def test_connect_failure_resets(self, falkordb_client):
        _, client, _ = falkordb_client
        client.connection.ping.side_effect = ConnectionError("refused")
        handler = FalkorDBHandler()

        with pytest.raises(ConnectionError):
            await handler.connect()
        with pytest.raises(DatabaseConnectionError):
            handler.client

    async def test_use_before_connect(self):
        with pytest.raises(DatabaseConnectionError):
            await FalkorDBHandler().list_graphs()

    async def test_read_write_query(self, falkordb_client):
        _, client, graph = falkordb_client
        async with FalkorDBHandler() as handler:
            result = await handler.execute_query("social", "CREATE (n)", read_only=False)

        client.select_graph.assert_called_once_with("social")
        graph.query.assert_awaited_once_with("CREATE (n)", None)
        graph.ro_query.assert_not_awaited()
        assert result["headers"] == ["name", "age"]
        client.connection.aclose.assert_awaited_once()

    async def test_read_only_query(self, falkordb_client):
        _, _, graph = falkordb_client
        async with FalkorDBHandler() as handler:
            await handler.execute_read_only_query("social", "MATCH (n) RETURN n", {"x": 1})

        graph.ro_query.assert_awaited_once_with("MATCH (n) RETURN n", {"x": 1})
        graph.query.assert_not_awaited()

    async def test_list_and_delete(self, falkordb_client):
        _, client, graph = falkordb_client
        async with FalkorDBHandler() as handler:
            assert await handler.list_graphs() == ["demo", "social"]
            await handler.delete_graph("demo")

        client.select_graph.assert_called_with("demo")
        graph.delete.assert_awaited_once()

    async def test_verify(self, falkordb_client):
        _, client, _ = falkordb_client
        handler = await FalkorDBHandler().connect()
        assert await handler.verify() is True

        client.connection.ping.side_effect = ConnectionError("down")
        assert await handler.verify() is False

    def test_from_settings(self):
        settings = McpServerSettings(_env_file=None, falkordb_host="graph", falkordb_port=7000)
        handler = FalkorDBHandler.from_settings(settings)

        assert handler._host == "graph"
        assert handler._port == 7000


# ─── Redis ───────────────────────────────────────────────────


@pytest.fixture
def redis_client():
    with patch("src.shared.database.redis_handler.Redis") as cls:
        client = MagicMock()
        client.ping = AsyncMock(return_value=True)
        client.aclose = AsyncMock()
        client.get = AsyncMock(return_value=None)
        client.set = AsyncMock(return_value=True)
        client.delete = AsyncMock(return_value=1)

        async def scan(match="*"):
            for key in ("b", "c", "a"):
                yield key

        client.scan_iter = MagicMock(side_effect=scan)
        cls.from_url.return_value = client
        yield cls, client


class TestRedisHandler:

    async def test_connect(self, redis_client):
        cls, client = redis_client
        await RedisHandler("redis://cache:6379", password="pw").connect()

        cls.from_url.assert_called_once_with(
            "redis://cache:6379", username=None, password="pw", decode_responses=True,
        )
        client.ping.assert_awaited_once()

    async def test_use_before_connect(self):
        with pytest.raises(DatabaseConnectionError):
            await RedisHandler().get("k")

    async def test_get_missing_is_none(self, redis_client):
        async with RedisHandler() as store:
            assert await store.get("missing") is None

    async def test_set_and_delete(self, redis_client):
        _, client = redis_client
        async with RedisHandler() as store:
            await store.set("k1", "")
            assert await store.delete("k1") == 1

        client.set.assert_awaited_once_with("k1", "")
        client.delete.assert_awaited_once_with("k1")
        client.aclose.assert_awaited_once()

    async def test_list_keys_sorted(self, redis_client):
        _, client = redis_client
        async with RedisHandler() as store:
            assert await store.list_keys() == ["a", "b", "c"]

        client.scan_iter.assert_called_once_with(match="*")

    async def test_verify(self, redis_client):
        _, client = redis_client
        store = await RedisHandler().connect()
        assert await store.verify() is True

        client.ping.side_effect = ConnectionError("down")
        assert await store.verify() is False

    async def test_verify_before_connect(self):
        assert await RedisHandler().verify() is False

    def test_from_settings(self):
        settings = McpServerSettings(_env_file=None, redis_url="redis://other:6379")
        assert RedisHandler.from_settings(settings)._url == "redis://other:6379"
