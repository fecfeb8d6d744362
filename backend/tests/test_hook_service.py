"""Tests for running hooks against persisted story documents."""

from unittest.mock import patch

import pytest

from entity_scorer.db import document_store
from entity_scorer.extraction.entity_scorer import ZERO_WIDTH_SPACE
from entity_scorer.services.hook_service import run_hook
from entity_scorer.utils.default_documents import (
    ASSOCIATIONS_DOC,
    DATABASE_DOCS,
    REGISTRY_DOC,
)


@pytest.mark.asyncio
async def test_output_hook_persists_turn(mock_get_connection):
    """An output turn advances the counter and writes back changed documents."""
    result = await run_hook("story-1", "output", '"Hello," said Marcus.')
    assert result.text == '"Hello," said Marcus.'
    assert [e.name for e in result.result.entities] == ["Marcus"]
    assert result.result.turn == 1

    docs = await document_store.load_documents("story-1")
    assert all(name in docs for name in DATABASE_DOCS)
    assert "Marcus" in docs[REGISTRY_DOC]
    assert await document_store.get_turn("story-1") == 1


@pytest.mark.asyncio
async def test_state_carries_across_turns(mock_get_connection):
    await run_hook("story-1", "output", '"Hello," said Marcus.')
    result = await run_hook("story-1", "output", '"Again," said Marcus.')
    assert result.result.turn == 2
    assert "frequency" in result.result.entities[0].signals


@pytest.mark.asyncio
async def test_input_hook_does_not_advance_turn(mock_get_connection):
    await run_hook("story-1", "output", '"Hello," said Marcus.')
    result = await run_hook("story-1", "input", "/entities")
    assert result.text == ZERO_WIDTH_SPACE
    assert "Marcus" in result.message
    assert await document_store.get_turn("story-1") == 1


@pytest.mark.asyncio
async def test_removed_documents_deleted(mock_get_connection):
    await run_hook("story-1", "output", '"Hello," said Marcus.')
    assert ASSOCIATIONS_DOC in await document_store.load_documents("story-1")

    result = await run_hook("story-1", "input", "/entities clear")
    assert result.message == "Entity registry cleared."
    docs = await document_store.load_documents("story-1")
    assert ASSOCIATIONS_DOC not in docs
    assert "Marcus" not in docs[REGISTRY_DOC]


@pytest.mark.asyncio
async def test_stories_are_isolated(mock_get_connection):
    await run_hook("story-1", "output", '"Hello," said Marcus.')
    await run_hook("story-2", "output", "They rode into the Elven Forest at dawn.")
    first = await document_store.get_document("story-1", REGISTRY_DOC)
    second = await document_store.get_document("story-2", REGISTRY_DOC)
    assert "Marcus" in first and "Elven Forest" not in first
    assert "Elven Forest" in second and "Marcus" not in second


@pytest.mark.asyncio
async def test_engine_failure_returns_original_text(mock_get_connection):
    with patch("entity_scorer.services.hook_service.process_hook", side_effect=RuntimeError("boom")):
        result = await run_hook("story-1", "output", '"Hello," said Marcus.')
    assert result.text == '"Hello," said Marcus.'
    assert result.result is None
