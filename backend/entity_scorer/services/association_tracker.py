"""Words that co-occur with an entity, and the boost they give later mentions.

Associations are stored per entity type as ``Name: word(count), word(count)``.
Strong words (count >= 3, count/contexts >= 0.3) are written first and are
the only ones used for boosting; a bounded tally of weaker words follows so
they can keep accumulating across turns.
"""

from __future__ import annotations

import logging
import math
import re

from entity_scorer.db.memory_store import DocumentStore, read_document, write_document
from entity_scorer.extraction.span_detector import COMMON_SENTENCE_STARTERS
from entity_scorer.infra.config import ScoringConfig
from entity_scorer.models.document import Document
from entity_scorer.models.entity import AssociationStat, Entity
from entity_scorer.services.word_store import WordStore
from entity_scorer.utils.default_documents import ASSOCIATIONS_DOC
from entity_scorer.utils.text_utils import alpha_words, similarity

logger = logging.getLogger(__name__)

MAX_STRONG = 10
MAX_STORED = 20
MAX_MERGE_REPEATS = 5
MAX_BOOST = 0.2
MERGES_SECTION = "merges"

_STAT_RE = re.compile(r"^([A-Za-z]+)\((\d+)\)$")


def _section_key(entity_type: str) -> str:
    return f"{entity_type.lower()}_associations"


def choose_canonical(a: Entity, b: Entity) -> tuple[Entity, Entity]:
    """Return ``(canonical, other)``: more occurrences wins, then the longer name,
    then alphabetical order."""
    ranked = sorted((a, b), key=lambda e: (-e.occurrences, -len(e.name), e.name))
    return ranked[0], ranked[1]


class AssociationTracker:
    def __init__(self, store: DocumentStore, word_store: WordStore, turn: int = 0,
                 config: ScoringConfig | None = None) -> None:
        self.store = store
        self.word_store = word_store
        self.turn = turn
        self.config = config or ScoringConfig()
        self._doc: Document | None = None

    def _load(self) -> Document:
        if self._doc is None:
            self._doc = read_document(self.store, ASSOCIATIONS_DOC)
            if self._doc.name == "Unknown":
                self._doc.name = "Entity Associations"
        return self._doc

    def _save(self) -> None:
        doc = self._load()
        meta = doc.metadata()
        meta["last_update"] = self.turn
        meta["total_associations"] = sum(
            len(section) for key, section in doc.sections.items()
            if key.endswith("_associations") and isinstance(section, dict)
        )
        doc.sections["metadata"] = doc.sections.pop("metadata")
        write_document(self.store, ASSOCIATIONS_DOC, doc)

    # ── Stored tallies ──

    def stats(self, name: str, entity_type: str) -> dict[str, AssociationStat]:
        section = self._load().sections.get(_section_key(entity_type))
        if not isinstance(section, dict) or not isinstance(section.get(name), str):
            return {}
        result: dict[str, AssociationStat] = {}
        for part in section[name].split(","):
            m = _STAT_RE.match(part.strip())
            if m:
                count = int(m.group(2))
                # Contexts advance together with count
                result[m.group(1)] = AssociationStat(word=m.group(1), count=count, contexts=count)
        return result

    def _is_strong(self, stat: AssociationStat) -> bool:
        return stat.is_strong(
            self.config.min_association_occurrences, self.config.min_association_strength,
        )

    def _write(self, name: str, entity_type: str, stats: dict[str, AssociationStat]) -> None:
        ordered = sorted(stats.values(), key=lambda s: (-s.count, s.word))
        strong = [s for s in ordered if self._is_strong(s)][:MAX_STRONG]
        weak = [s for s in ordered if not self._is_strong(s)]
        kept = (strong + weak)[:MAX_STORED]
        section = self._load().section(_section_key(entity_type))
        if kept:
            section[name] = ", ".join(f"{s.word}({s.count})" for s in kept)
        else:
            section.pop(name, None)
        self._save()

    def _add_words(self, name: str, entity_type: str, words: list[str]) -> None:
        if not words:
            return
        stats = self.stats(name, entity_type)
        for word in words:
            stat = stats.setdefault(word, AssociationStat(word=word))
            stat.count += 1
            stat.contexts += 1
        self._write(name, entity_type, stats)

    # ── Public operations ──

    def context_words(self, text: str, name: str, index: int) -> list[str]:
        radius = self.config.association_window
        window = text[max(0, index - radius):min(len(text), index + len(name) + radius)]
        common = self.word_store.lists.get_set("common_words") | self.word_store.lists.get_set("minor_words")
        name_lower = name.lower()
        words = []
        for word in alpha_words(window, min_length=3):
            lowered = word.lower()
            if lowered in name_lower or lowered in common or lowered in COMMON_SENTENCE_STARTERS:
                continue
            if self.word_store.is_blacklisted(word):
                continue
            words.append(lowered)
        return words

    def track(self, text: str, name: str, entity_type: str, index: int) -> list[str]:
        """Count the words around one accepted mention."""
        words = self.context_words(text, name, index)
        self._add_words(name, entity_type, words)
        return words

    def get_associations(self, name: str, entity_type: str) -> list[AssociationStat]:
        strong = [s for s in self.stats(name, entity_type).values() if self._is_strong(s)]
        return sorted(strong, key=lambda s: (-s.count, s.word))[:MAX_STRONG]

    def boost(self, text: str, name: str, entity_type: str) -> float:
        associations = self.get_associations(name, entity_type)
        if not associations:
            return 0.0
        matched = sum(
            1 for stat in associations
            if re.search(rf"\b{re.escape(stat.word)}\b", text, re.IGNORECASE)
        )
        return min(MAX_BOOST, matched / len(associations) * MAX_BOOST)

    def find_similar(self, name: str, known: list[Entity]) -> list[tuple[Entity, float]]:
        similar = []
        for entity in known:
            if entity.name == name:
                continue
            score = similarity(name, entity.name)
            if score >= self.config.similarity_threshold:
                similar.append((entity, score))
        return sorted(similar, key=lambda pair: pair[1], reverse=True)

    def merged_pairs(self) -> list[str]:
        section = self._load().sections.get(MERGES_SECTION)
        return [str(item) for item in section] if isinstance(section, list) else []

    def merge(self, canonical: Entity, other: Entity, score: float) -> bool:
        """Fold ``other``'s tallies into ``canonical``, scaled by similarity.

        Each pair is merged once; the pair is recorded in the merges section.
        """
        marker = f"{other.name} -> {canonical.name}"
        if marker in self.merged_pairs():
            return False
        incoming = self.stats(other.name, other.type)
        stats = self.stats(canonical.name, canonical.type)
        changed = False
        for word, stat in incoming.items():
            repeats = min(MAX_MERGE_REPEATS, math.floor(stat.count * score))
            if repeats <= 0:
                continue
            target = stats.setdefault(word, AssociationStat(word=word))
            target.count += repeats
            target.contexts += repeats
            changed = True
        self._load().list_section(MERGES_SECTION).append(marker)
        if changed:
            self._write(canonical.name, canonical.type, stats)
        else:
            self._save()
        logger.info("合并相似实体关联词: %s (%.2f)", marker, score)
        return True
