from unittest.mock import MagicMock

import psycopg
import pytest

from phyrag.core import vector_store
from phyrag.core.vector_store import DocumentChunk, VectorSearchError, VectorStore, to_vector_literal


@pytest.fixture
def cursor(monkeypatch):
    """Patch psycopg.connect and hand back the cursor used for the query."""
    cur = MagicMock()
    conn = MagicMock()
    conn.__enter__.return_value = conn
    conn.cursor.return_value.__enter__.return_value = cur
    connect = MagicMock(return_value=conn)
    monkeypatch.setattr(vector_store.psycopg, "connect", connect)
    cur.connect = connect
    return cur


def test_vector_literal():
    assert to_vector_literal([0.5, 0.25]) == "[0.5,0.25]"


def test_search_maps_rows(cursor):
    cursor.fetchall.return_value = [
        ("PHY reset timing", "YT8522 Datasheet.pdf", 12, 0.83),
        ("", None, None, 1.2),
    ]
    store = VectorStore("postgresql://localhost/phy")

    results = store.search([0.5, 0.25], 0.2, 6)

    assert results[0] == DocumentChunk(
        content="PHY reset timing", source="YT8522 Datasheet.pdf", page=12, similarity=0.83
    )
    assert results[1].source == "unknown"
    assert results[1].page == 1
    assert results[1].similarity == 1.0
    cursor.connect.assert_called_once_with("postgresql://localhost/phy")
    assert cursor.execute.call_args.args[1] == ("[0.5,0.25]", 0.2, 6)


def test_store_is_callable_as_search_function(cursor):
    cursor.fetchall.return_value = []
    store = VectorStore("postgresql://localhost/phy")

    assert store([0.1], 0.15, 18) == []
    assert cursor.execute.call_args.args[1][1:] == (0.15, 18)


def test_database_errors_are_wrapped(monkeypatch):
    def fail(*args, **kwargs):
        raise psycopg.OperationalError("connection refused")

    monkeypatch.setattr(vector_store.psycopg, "connect", fail)

    with pytest.raises(VectorSearchError, match="connection refused"):
        VectorStore("postgresql://localhost/phy").search([0.1], 0.2, 6)


def test_requires_database_url(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(ValueError):
        VectorStore()
    with pytest.raises(ValueError):
        VectorStore("")
