"""Persisted registry of accepted entities, one section per type."""

from __future__ import annotations

import logging

from entity_scorer.db.memory_store import DocumentStore, read_document, write_document
from entity_scorer.models.document import Document
from entity_scorer.models.entity import ENTITY_TYPES, Entity
from entity_scorer.services.word_store import Aliases
from entity_scorer.utils.default_documents import REGISTRY_DOC
from entity_scorer.utils.structured_text import format_fields, parse_fields

logger = logging.getLogger(__name__)


class EntityRegistry:
    def __init__(self, store: DocumentStore, turn: int = 0, aliases: Aliases | None = None) -> None:
        self.store = store
        self.turn = turn
        self.aliases = aliases
        self._doc: Document | None = None

    def _load(self) -> Document:
        if self._doc is None:
            self._doc = read_document(self.store, REGISTRY_DOC)
            if self._doc.name == "Unknown":
                self._doc.name = "Entity Registry"
        return self._doc

    def _save(self) -> None:
        doc = self._load()
        meta = doc.metadata()
        meta["last_update"] = self.turn
        meta["total_entities"] = len(self.all())
        # Keep metadata last
        doc.sections["metadata"] = doc.sections.pop("metadata")
        write_document(self.store, REGISTRY_DOC, doc)

    def all(self) -> list[Entity]:
        doc = self._load()
        result = []
        for entity_type in ENTITY_TYPES:
            section = doc.sections.get(entity_type.lower())
            if not isinstance(section, dict):
                continue
            for name, raw in section.items():
                fields = parse_fields(raw)
                result.append(Entity(
                    name=name,
                    type=entity_type,
                    confidence=float(fields.get("confidence", 0.5)),
                    occurrences=int(fields.get("occurrences", 1)),
                ))
        return result

    def get(self, name: str) -> Entity | None:
        lowered = name.lower()
        for entity in self.all():
            if entity.name.lower() == lowered:
                return entity
        return None

    def names(self) -> set[str]:
        return {entity.name for entity in self.all()}

    def find_type(self, name: str) -> str | None:
        entity = self.get(name)
        return entity.type if entity else None

    def canonical(self, name: str) -> str:
        if self.aliases is None:
            return name
        return self.aliases.canonical(name)

    def upsert(self, entities: list[Entity]) -> list[Entity]:
        """Merge entities in: confidence keeps the max, occurrences accumulate."""
        if not entities:
            return []
        doc = self._load()
        written = []
        for entity in entities:
            name = self.canonical(entity.name)
            existing = self.get(name)
            if existing is None:
                merged = entity.model_copy(update={"name": name})
            else:
                entity_type = existing.type
                if existing.type == "UNKNOWN" and entity.type != "UNKNOWN":
                    entity_type = entity.type
                doc.section(existing.type.lower()).pop(existing.name, None)
                merged = Entity(
                    name=existing.name,
                    type=entity_type,
                    confidence=max(existing.confidence, entity.confidence),
                    occurrences=existing.occurrences + entity.occurrences,
                )
            doc.section(merged.type.lower())[merged.name] = format_fields({
                "confidence": merged.confidence,
                "occurrences": merged.occurrences,
            })
            logger.debug("登记实体: %s (%s) %.2f", merged.name, merged.type, merged.confidence)
            written.append(merged)
        for entity_type in ENTITY_TYPES:
            if doc.sections.get(entity_type.lower()) == {}:
                del doc.sections[entity_type.lower()]
        self._save()
        return written

    def clear(self) -> int:
        count = len(self.all())
        doc = self._load()
        for entity_type in ENTITY_TYPES:
            doc.sections.pop(entity_type.lower(), None)
        self._save()
        return count
