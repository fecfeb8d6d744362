"""Shared test fixtures for backend tests."""

import aiosqlite
import pytest
import pytest_asyncio

from unittest.mock import patch

from entity_scorer.db.memory_store import MemoryDocumentStore
from entity_scorer.services.word_store import WordStore

# Schema copied from entity_scorer/db/sqlite_db.py (inline to avoid importing config)
_TEST_SCHEMA = """
CREATE TABLE IF NOT EXISTS stories (
    id              TEXT PRIMARY KEY,
    turn            INTEGER DEFAULT 0,
    created_at      TEXT DEFAULT (datetime('now')),
    updated_at      TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS documents (
    story_id        TEXT NOT NULL REFERENCES stories(id) ON DELETE CASCADE,
    name            TEXT NOT NULL,
    body            TEXT NOT NULL,
    updated_at      TEXT DEFAULT (datetime('now')),
    PRIMARY KEY (story_id, name)
);
"""


@pytest_asyncio.fixture
async def memory_db():
    """Create an in-memory SQLite database with full schema."""
    conn = await aiosqlite.connect(":memory:")
    await conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = aiosqlite.Row
    await conn.executescript(_TEST_SCHEMA)
    await conn.commit()
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def mock_get_connection(memory_db):
    """Patch get_connection to return a shared in-memory DB.

    We wrap the real connection so close() is a no-op during tests
    (the fixture manages the lifecycle).
    """

    class _NonClosingConnection:
        """Proxy that prevents document_store from closing the shared conn."""

        def __init__(self, conn):
            self._conn = conn

        def __getattr__(self, name):
            return getattr(self._conn, name)

        async def close(self):
            pass  # no-op

    async def _factory():
        return _NonClosingConnection(memory_db)

    with patch("entity_scorer.db.document_store.get_connection", _factory):
        yield memory_db


@pytest.fixture
def store():
    """Document store seeded with the default word databases."""
    docs = MemoryDocumentStore()
    WordStore(docs).initialize()
    docs.mark_clean()
    return docs


@pytest.fixture
def words(store):
    return WordStore(store)
