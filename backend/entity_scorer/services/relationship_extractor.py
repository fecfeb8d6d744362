"""Subject-verb-object relationships between known entities."""

from __future__ import annotations

import logging
import re
from typing import Iterable

from entity_scorer.db.memory_store import DocumentStore, read_document, write_document
from entity_scorer.models.document import Document
from entity_scorer.models.entity import PronounLink, Relationship
from entity_scorer.utils.default_documents import RELATIONSHIPS_DOC

logger = logging.getLogger(__name__)

RELATIONSHIP_SECTION = "relationships"
REPEAT_BONUS = 0.05
MAX_CONFIDENCE = 0.99

# category -> (base confidence, relation verbs)
RELATION_VERBS: dict[str, tuple[float, tuple[str, ...]]] = {
    "spatial": (0.7, (
        "entered", "left", "visited", "reached", "arrived at", "lives in", "lived in",
        "traveled to", "returned to", "fled",
    )),
    "possession": (0.75, (
        "owns", "owned", "holds", "held", "wields", "wielded", "carries", "carried",
        "drew", "possessed", "stole",
    )),
    "action": (0.7, (
        "attacked", "struck", "defeated", "saved", "helped", "followed", "fought",
        "killed", "chased", "rescued", "healed",
    )),
    "social": (0.8, (
        "trusts", "trusted", "loves", "loved", "hates", "hated", "met", "married",
        "betrayed", "befriended", "served", "joined", "leads", "led", "thanked",
    )),
}

_NAME = r"[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*"
_SUBJECT_PRONOUNS = r"[Hh]e|[Ss]he|[Tt]hey|[Ii]t"


def _verb_alternation(verbs: Iterable[str]) -> str:
    return "|".join(
        re.escape(v).replace(r"\ ", r"\s+") for v in sorted(verbs, key=len, reverse=True)
    )


_TEMPLATES: tuple[tuple[str, float, re.Pattern], ...] = tuple(
    (
        category,
        base,
        re.compile(
            rf"\b({_NAME}|{_SUBJECT_PRONOUNS})\s+({_verb_alternation(verbs)})\s+(?:the\s+)?({_NAME})"
        ),
    )
    for category, (base, verbs) in RELATION_VERBS.items()
)


class RelationshipExtractor:
    def __init__(self, store: DocumentStore, turn: int = 0) -> None:
        self.store = store
        self.turn = turn
        self._doc: Document | None = None

    def _load(self) -> Document:
        if self._doc is None:
            self._doc = read_document(self.store, RELATIONSHIPS_DOC)
            if self._doc.name == "Unknown":
                self._doc.name = "Entity Relationships"
        return self._doc

    def all(self) -> list[Relationship]:
        rows = self._load().sections.get(RELATIONSHIP_SECTION)
        if not isinstance(rows, list):
            return []
        result = []
        for row in rows:
            if not isinstance(row, dict) or not row.get("subject") or not row.get("object"):
                continue
            result.append(Relationship(
                subject=str(row["subject"]),
                relation=str(row.get("relation", "")),
                object=str(row["object"]),
                category=str(row.get("category", "")),
                count=int(row.get("count") or 1),
                confidence=float(row.get("confidence") or 0.5),
            ))
        return result

    @staticmethod
    def _match_known(candidate: str, known: dict[str, str], from_end: bool) -> str | None:
        """Longest known name at the start (or end) of a captured name run."""
        words = candidate.split()
        for size in range(len(words), 0, -1):
            part = " ".join(words[-size:] if from_end else words[:size])
            if part.lower() in known:
                return known[part.lower()]
        return None

    def extract(self, text: str, known_names: Iterable[str],
                pronoun_links: list[PronounLink] | None = None) -> list[Relationship]:
        """Find relationships in ``text`` and add them to the persisted counters."""
        known = {name.lower(): name for name in known_names}
        if not known:
            return []
        antecedents = {link.position: link.antecedent for link in pronoun_links or []}
        found: list[Relationship] = []
        for category, base, pattern in _TEMPLATES:
            for m in pattern.finditer(text):
                raw_subject = m.group(1)
                if raw_subject.lower() in ("he", "she", "they", "it"):
                    subject = antecedents.get(m.start(1))
                else:
                    subject = self._match_known(raw_subject, known, from_end=True)
                obj = self._match_known(m.group(3), known, from_end=False)
                if not subject or not obj or subject.lower() == obj.lower():
                    continue
                relation = " ".join(m.group(2).lower().split())
                found.append(Relationship(
                    subject=subject, relation=relation, object=obj,
                    category=category, confidence=base,
                ))
        if found:
            return self._record(found)
        return []

    def _record(self, found: list[Relationship]) -> list[Relationship]:
        existing = {(r.subject, r.relation, r.object): r for r in self.all()}
        updated = []
        for rel in found:
            key = (rel.subject, rel.relation, rel.object)
            current = existing.get(key)
            if current is None:
                current = rel
                existing[key] = current
            else:
                current.count += 1
                current.confidence = min(MAX_CONFIDENCE, current.confidence + REPEAT_BONUS)
            updated.append(current)
            logger.debug("关系: %s -[%s]-> %s", rel.subject, rel.relation, rel.object)

        doc = self._load()
        doc.sections[RELATIONSHIP_SECTION] = [
            {
                "subject": r.subject,
                "relation": r.relation,
                "object": r.object,
                "category": r.category,
                "count": r.count,
                "confidence": round(r.confidence, 2),
            }
            for r in existing.values()
        ]
        meta = doc.metadata()
        meta["last_update"] = self.turn
        meta["total_relationships"] = len(existing)
        doc.sections["metadata"] = doc.sections.pop("metadata")
        write_document(self.store, RELATIONSHIPS_DOC, doc)
        return updated
