"""Character 3-gram type classifier trained on registered entity names."""

from __future__ import annotations

import logging
from collections import Counter

from entity_scorer.db.memory_store import DocumentStore, read_document, write_document
from entity_scorer.models.document import Document
from entity_scorer.models.entity import Entity
from entity_scorer.utils.default_documents import NGRAM_DOC

logger = logging.getLogger(__name__)

TRAINABLE_TYPES = ("PERSON", "PLACE", "OBJECT", "FACTION")
N = 3
_PAD = "_"
MAX_GRAMS_PER_TYPE = 400


def ngrams(word: str, n: int = N) -> list[str]:
    """Padded, lower-cased character n-grams; spaces become padding."""
    normalized = "_".join(word.lower().split())
    padded = _PAD + normalized + _PAD
    if len(padded) < n:
        return [padded]
    return [padded[i:i + n] for i in range(len(padded) - n + 1)]


class NgramClassifier:
    def __init__(self, store: DocumentStore, turn: int = 0, min_confidence: float = 0.6) -> None:
        self.store = store
        self.turn = turn
        self.min_confidence = min_confidence
        self._doc: Document | None = None
        self._dirty = False

    def _load(self) -> Document:
        if self._doc is None:
            self._doc = read_document(self.store, NGRAM_DOC)
            if self._doc.name == "Unknown":
                self._doc.name = "NGram Model"
        return self._doc

    def table(self, entity_type: str) -> Counter[str]:
        section = self._load().sections.get(entity_type.lower())
        if not isinstance(section, dict):
            return Counter()
        return Counter({gram: value for gram, value in section.items() if isinstance(value, int)})

    def is_empty(self) -> bool:
        return not any(self.table(t) for t in TRAINABLE_TYPES)

    def train(self, name: str, entity_type: str) -> None:
        if entity_type not in TRAINABLE_TYPES or not name:
            return
        doc = self._load()
        counts = self.table(entity_type)
        counts.update(ngrams(name))
        if len(counts) > MAX_GRAMS_PER_TYPE:
            counts = Counter(dict(counts.most_common(MAX_GRAMS_PER_TYPE)))
        doc.sections[entity_type.lower()] = dict(counts)
        meta = doc.metadata()
        meta["trained_names"] = int(meta.get("trained_names") or 0) + 1
        self._dirty = True

    def bootstrap(self, entities: list[Entity]) -> int:
        """Train on the registry when the model is still empty."""
        if not self.is_empty():
            return 0
        trained = 0
        for entity in entities:
            if entity.type in TRAINABLE_TYPES:
                self.train(entity.name, entity.type)
                trained += 1
        if trained:
            logger.info("N-gram 模型冷启动训练: %d 个实体", trained)
        return trained

    def scores(self, word: str) -> dict[str, float]:
        """Fraction of the word's n-grams seen for each type."""
        grams = set(ngrams(word))
        if not grams:
            return {}
        return {
            entity_type: len(grams & self.table(entity_type).keys()) / len(grams)
            for entity_type in TRAINABLE_TYPES
        }

    def classify(self, word: str) -> tuple[str, float] | None:
        raw = self.scores(word)
        total = sum(raw.values())
        if total <= 0:
            return None
        best_type, best = max(raw.items(), key=lambda kv: kv[1])
        confidence = best * (best / total)
        if confidence <= self.min_confidence:
            return None
        return best_type, confidence

    def save(self) -> bool:
        if not self._dirty:
            return False
        doc = self._load()
        doc.metadata()["last_update"] = self.turn
        doc.sections["metadata"] = doc.sections.pop("metadata")
        write_document(self.store, NGRAM_DOC, doc)
        self._dirty = False
        return True
