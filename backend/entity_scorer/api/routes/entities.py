"""Read-only inspection of a story's entity state."""

from fastapi import APIRouter, HTTPException, Query

from entity_scorer.db import document_store
from entity_scorer.db.memory_store import MemoryDocumentStore
from entity_scorer.services.entity_registry import EntityRegistry
from entity_scorer.services.relationship_extractor import RelationshipExtractor

router = APIRouter(prefix="/api/stories/{story_id}", tags=["entities"])


async def _load_store(story_id: str) -> MemoryDocumentStore:
    if not await document_store.story_exists(story_id):
        raise HTTPException(status_code=404, detail="故事不存在")
    return MemoryDocumentStore(await document_store.load_documents(story_id))


@router.get("/entities")
async def list_entities(
    story_id: str,
    type: str | None = Query(None, description="Filter by entity type: PERSON/PLACE/OBJECT/FACTION/UNKNOWN"),
):
    """Registered entities, optionally filtered by type."""
    store = await _load_store(story_id)
    entities = EntityRegistry(store).all()
    if type:
        entities = [e for e in entities if e.type == type.upper()]
    return {
        "turn": await document_store.get_turn(story_id),
        "entities": [e.model_dump() for e in entities],
    }


@router.get("/relationships")
async def list_relationships(story_id: str):
    store = await _load_store(story_id)
    relationships = RelationshipExtractor(store).all()
    return {"relationships": [r.model_dump() for r in relationships]}


@router.get("/documents/{name}")
async def get_document(story_id: str, name: str):
    """Raw structured text of one stored document."""
    if not await document_store.story_exists(story_id):
        raise HTTPException(status_code=404, detail="故事不存在")
    body = await document_store.get_document(story_id, name)
    if body is None:
        raise HTTPException(status_code=404, detail="文档不存在")
    return {"name": name, "body": body}
