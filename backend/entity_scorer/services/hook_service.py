"""Run one hook invocation against a story's persisted documents."""

from __future__ import annotations

import logging

from entity_scorer.db import document_store
from entity_scorer.db.memory_store import MemoryDocumentStore
from entity_scorer.extraction.entity_scorer import process_hook
from entity_scorer.infra.config import ScoringConfig
from entity_scorer.models.entity import HookResult

logger = logging.getLogger(__name__)


async def run_hook(
    story_id: str,
    hook: str,
    text: str,
    config: ScoringConfig | None = None,
) -> HookResult:
    """Load the story's documents, run the turn, write back what changed.

    The turn itself runs synchronously against an in-memory snapshot; only
    dirty and removed documents touch the database afterwards.
    """
    try:
        await document_store.ensure_story(story_id)
        store = MemoryDocumentStore(await document_store.load_documents(story_id))
        if hook == "output":
            turn = await document_store.advance_turn(story_id)
        else:
            turn = await document_store.get_turn(story_id)

        result = process_hook(hook, text, store, turn, config)

        saved = await document_store.save_documents(story_id, store.changed_documents())
        deleted = await document_store.delete_documents(story_id, sorted(store.removed))
        store.mark_clean()
        logger.debug("钩子 %s 完成: story=%s turn=%d 写入=%d 删除=%d",
                     hook, story_id, turn, saved, deleted)
        return result
    except Exception:
        logger.warning("钩子执行失败，返回原文: story=%s hook=%s", story_id, hook, exc_info=True)
        return HookResult(text=text)
