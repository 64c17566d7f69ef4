"""
Shared fixtures for the server tests.

The backends are in-memory fakes that record every call, so tests can
assert that invalid input never reaches them.  ``RecordingAudit``
captures audit events instead of logging them.
"""

from typing import Any

import pytest

from src.server.dispatcher import ToolDispatcher


QUERY_RESULT = {
    "headers": ["name"],
    "data": [{"name": "Alice"}, {"name": "Bob"}],
    "metadata": ["run_time_ms: 0.42"],
}


class FakeGraph:
    """FalkorDB stand-in that counts calls."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.graphs: list[Any] = ["demo", "social"]
        self.result: Any = QUERY_RESULT
        self.fail_with: BaseException | None = None

    def _record(self, *call):
        self.calls.append(call)
        if self.fail_with is not None:
            raise self.fail_with

    async def execute_query(self, graph_name, query, params=None, read_only=False):
        self._record("execute_query", graph_name, query, read_only)
        return self.result

    async def execute_read_only_query(self, graph_name, query, params=None):
        self._record("execute_read_only_query", graph_name, query)
        return self.result

    async def list_graphs(self):
        self._record("list_graphs")
        return list(self.graphs)

    async def delete_graph(self, graph_name):
        self._record("delete_graph", graph_name)


class FakeStore:
    """Redis stand-in backed by a dict."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.data: dict[str, str] = {}
        self.fail_with: BaseException | None = None

    def _record(self, *call):
        self.calls.append(call)
        if self.fail_with is not None:
            raise self.fail_with

    async def get(self, key):
        self._record("get", key)
        return self.data.get(key)

    async def set(self, key, value):
        self._record("set", key, value)
        self.data[key] = value

    async def delete(self, key):
        self._record("delete", key)
        return 1 if self.data.pop(key, None) is not None else 0

    async def list_keys(self):
        self._record("list_keys")
        return sorted(self.data)


class RecordingAudit:
    """Audit emitter that keeps events in memory."""

    def __init__(self):
        self.events: list[dict[str, Any]] = []

    @property
    def successes(self):
        return [e for e in self.events if e["outcome"] == "success"]

    @property
    def failures(self):
        return [e for e in self.events if e["outcome"] == "failure"]

    async def record_success(self, tool, message, context=None, level="debug", notifier=None):
        self.events.append({
            "outcome": "success",
            "tool": tool,
            "message": message,
            "context": dict(context or {}),
            "level": level,
            "notifier": notifier,
        })

    async def record_failure(self, tool, error, context=None, notifier=None):
        self.events.append({
            "outcome": "failure",
            "tool": tool,
            "error": error,
            "context": dict(context or {}),
            "notifier": notifier,
        })


@pytest.fixture
def graph():
    return FakeGraph()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def make_dispatcher(graph, store, audit):
    def _make(default_read_only: bool = False) -> ToolDispatcher:
        return ToolDispatcher(graph, store, audit, default_read_only=default_read_only)

    return _make


@pytest.fixture
def dispatcher(make_dispatcher):
    return make_dispatcher()
