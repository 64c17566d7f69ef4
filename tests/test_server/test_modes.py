"""Tests for query mode resolution."""

import pytest

from src.server.modes import QueryMode, resolve_query_mode


@pytest.mark.parametrize(
    ("read_only", "default", "expected"),
    [
        (True, False, QueryMode.READ_ONLY),
        (False, True, QueryMode.READ_WRITE),
        (True, True, QueryMode.READ_ONLY),
        (False, False, QueryMode.READ_WRITE),
        (None, True, QueryMode.READ_ONLY),
        (None, False, QueryMode.READ_WRITE),
    ],
)
def test_resolve_query_mode(read_only, default, expected):
    assert resolve_query_mode(read_only, default) is expected


def test_is_read_only():
    assert QueryMode.READ_ONLY.is_read_only is True
    assert QueryMode.READ_WRITE.is_read_only is False
