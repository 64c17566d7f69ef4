"""Execution mode for graph queries."""

from enum import Enum


class QueryMode(str, Enum):
    READ_WRITE = "read_write"
    READ_ONLY = "read_only"

    @property
    def is_read_only(self) -> bool:
        return self is QueryMode.READ_ONLY


def resolve_query_mode(read_only: bool | None, default_read_only: bool) -> QueryMode:
    """Pick the mode for one ``query_graph`` call.

    An explicit ``read_only`` always wins, in either direction; ``None``
    falls back to the configured default.
    """
    effective = default_read_only if read_only is None else read_only
    return QueryMode.READ_ONLY if effective else QueryMode.READ_WRITE
