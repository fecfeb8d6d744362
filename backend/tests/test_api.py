"""Tests for the HTTP routes."""

import httpx
import pytest
from fastapi import HTTPException

from entity_scorer.api.main import app
from entity_scorer.api.routes.entities import get_document, list_entities, list_relationships
from entity_scorer.extraction.entity_scorer import ZERO_WIDTH_SPACE
from entity_scorer.services.hook_service import run_hook
from entity_scorer.utils.default_documents import REGISTRY_DOC


def _client():
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_health():
    async with _client() as client:
        resp = await client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_post_output_hook(mock_get_connection):
    async with _client() as client:
        resp = await client.post(
            "/api/stories/s1/hooks/output", json={"text": '"Hello," said Marcus.'},
        )
    assert resp.status_code == 200
    body = resp.json()
    assert body["text"] == '"Hello," said Marcus.'
    assert body["message"] is None
    assert body["result"]["entities"][0]["name"] == "Marcus"


@pytest.mark.asyncio
async def test_post_input_command(mock_get_connection):
    async with _client() as client:
        resp = await client.post("/api/stories/s1/hooks/input", json={"text": "/help entity"})
    body = resp.json()
    assert body["text"] == ZERO_WIDTH_SPACE
    assert body["message"].startswith("Entity Scoring Module Commands:")


@pytest.mark.asyncio
async def test_unknown_story_is_404(mock_get_connection):
    with pytest.raises(HTTPException) as exc:
        await list_entities("missing", type=None)
    assert exc.value.status_code == 404

    async with _client() as client:
        resp = await client.get("/api/stories/missing/relationships")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_inspection_routes(mock_get_connection):
    await run_hook("s1", "output", 'Sir Marcus nodded. "Come," said Lady Elena. He trusted Elena.')

    listed = await list_entities("s1", type=None)
    assert listed["turn"] == 1
    assert {"Marcus", "Elena"} <= {e["name"] for e in listed["entities"]}
    assert (await list_entities("s1", type="place"))["entities"] == []

    rels = await list_relationships("s1")
    assert rels["relationships"][0]["subject"] == "Marcus"

    doc = await get_document("s1", REGISTRY_DOC)
    assert doc["body"].startswith("{# Entity Registry")
    with pytest.raises(HTTPException) as exc:
        await get_document("s1", "[ENTITIES] Missing")
    assert exc.value.status_code == 404
