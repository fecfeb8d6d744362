"""Synchronous key/value document store used while a turn runs.

The engine only talks to the ``DocumentStore`` protocol. A turn runs against a
``MemoryDocumentStore`` snapshot; the hook service loads it from SQLite before
the turn and writes the dirty documents back afterwards.
"""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

from entity_scorer.models.document import Document
from entity_scorer.utils.structured_text import format_document, parse_document

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    def get(self, name: str) -> str | None: ...

    def add(self, name: str, body: str) -> bool: ...

    def update(self, name: str, body: str) -> bool: ...

    def remove(self, name: str) -> bool: ...

    def exists(self, name: str) -> bool: ...

    def names(self) -> list[str]: ...


class MemoryDocumentStore:
    """Dict-backed store that remembers which documents changed."""

    def __init__(self, documents: dict[str, str] | None = None) -> None:
        self._docs: dict[str, str] = dict(documents or {})
        self.dirty: set[str] = set()
        self.removed: set[str] = set()

    def get(self, name: str) -> str | None:
        return self._docs.get(name)

    def add(self, name: str, body: str) -> bool:
        if name in self._docs:
            return False
        self._docs[name] = body
        self.dirty.add(name)
        self.removed.discard(name)
        return True

    def update(self, name: str, body: str) -> bool:
        if name not in self._docs:
            return False
        if self._docs[name] != body:
            self._docs[name] = body
            self.dirty.add(name)
        return True

    def put(self, name: str, body: str) -> None:
        if not self.update(name, body):
            self.add(name, body)

    def remove(self, name: str) -> bool:
        if name not in self._docs:
            return False
        del self._docs[name]
        self.dirty.discard(name)
        self.removed.add(name)
        return True

    def exists(self, name: str) -> bool:
        return name in self._docs

    def names(self) -> list[str]:
        return list(self._docs)

    def changed_documents(self) -> dict[str, str]:
        return {name: self._docs[name] for name in self.dirty if name in self._docs}

    def mark_clean(self) -> None:
        self.dirty.clear()
        self.removed.clear()


def read_document(store: DocumentStore, name: str) -> Document:
    """Load and parse a document; missing or malformed text is empty data."""
    try:
        return parse_document(store.get(name))
    except Exception:
        logger.debug("文档解析失败，按空文档处理: %s", name, exc_info=True)
        return Document()


def write_document(store: DocumentStore, name: str, doc: Document) -> bool:
    body = format_document(doc)
    if store.update(name, body):
        return True
    return store.add(name, body)


def remove_documents(store: DocumentStore, names: Iterable[str]) -> int:
    return sum(1 for name in names if store.remove(name))
