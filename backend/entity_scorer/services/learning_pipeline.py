"""Grow the word lists from confident detections and the blacklist from rejections."""

from __future__ import annotations

import logging
import re
from typing import Iterable

from entity_scorer.extraction.pattern_builder import NAME, OPEN_QUOTE, QUOTED
from entity_scorer.extraction.span_detector import (
    COMMON_SENTENCE_STARTERS,
    is_sentence_capitalization,
)
from entity_scorer.infra.config import ScoringConfig
from entity_scorer.models.entity import BlacklistEntry, Detection, Rejection
from entity_scorer.services.word_store import (
    CATEGORY_LISTS,
    LEARNED_NON_ENTITIES,
    LEARNED_NON_ROLES,
    LEARNED_SECTIONS,
    PENDING_SECTION,
    STATIC_SECTION,
    WordStore,
)
from entity_scorer.utils.text_utils import window

logger = logging.getLogger(__name__)

PERSIST_OCCURRENCES = 3
PERSIST_CONFIDENCE = 0.7
CONTEXT_RADIUS = 30

TITLE_WORDS = ("Lord", "Lady", "Sir", "King", "Queen", "Prince", "Princess",
               "Duke", "Duchess", "Baron", "Count")
TYPE_CATEGORIES = {"PLACE": "place_type", "OBJECT": "object_type", "FACTION": "faction_type"}

_CAPITALIZED_RUN_RE = re.compile(r"\b" + NAME + r"\b")


class LearningPipeline:
    def __init__(self, words: WordStore, turn: int = 0, config: ScoringConfig | None = None) -> None:
        self.words = words
        self.turn = turn
        self.config = config or ScoringConfig()

    # ── Candidate learning ──

    def _learnable(self, word: str, list_name: str) -> bool:
        lowered = word.lower()
        if len(lowered) < 3 or lowered in COMMON_SENTENCE_STARTERS:
            return False
        if self.words.is_common(lowered) or self.words.is_blacklisted(lowered):
            return False
        return not self.words.lists.contains(list_name, lowered)

    def _opportunities(self, text: str, detection: Detection) -> Iterable[tuple[str, str, re.Match]]:
        name = re.escape(detection.name)
        lists = self.words.lists
        if detection.type == "PERSON":
            for m in re.finditer(QUOTED + r",?\s+([a-z]+)\s+" + name + r"\b", text):
                yield "dialogue_verb", m.group(1), m
            for m in re.finditer(r"\b" + name + r"\s+([a-z]+),?\s*" + OPEN_QUOTE, text):
                yield "dialogue_verb", m.group(1), m
            for m in re.finditer(r"\b" + name + r"\s+([a-z]+ed)\b(?!,?\s*[\"“”])", text):
                if not lists.contains("dialogue_verbs", m.group(1)):
                    yield "action_verb", m.group(1), m
            title_re = r"\b(" + "|".join(TITLE_WORDS) + r")\s+" + name + r"\b"
            for m in re.finditer(title_re, text, re.IGNORECASE):
                yield "noble_title", m.group(1).capitalize(), m

        category = TYPE_CATEGORIES.get(detection.type)
        parts = detection.name.split()
        if category and len(parts) >= 2:
            head = parts[parts.index("of") - 1] if "of" in parts[1:-1] else parts[-1]
            if head[:1].isupper():
                m = re.search(name, text)
                if m:
                    yield category, head, m

        if detection.type == "PLACE":
            for m in re.finditer(r"\b([a-z]+ed)\s+(?:at|in|to)\s+(?:the\s+)?" + name + r"\b", text):
                yield "arrival_verb", m.group(1), m

    def learn_from_detection(self, text: str, detection: Detection) -> list[tuple[str, str]]:
        """Track new list words suggested by an accepted detection."""
        if detection.confidence < self.config.min_learning_confidence:
            return []
        tracked = []
        for category, word, match in self._opportunities(text, detection):
            if not self._learnable(word, CATEGORY_LISTS[category]):
                continue
            context = window(text, match.start(), match.end(), CONTEXT_RADIUS)
            self.words.candidates.track(category, word, context, detection.confidence)
            tracked.append((category, word))
            logger.debug("候选词: %s (%s) <- %s", word, category, detection.name)
        return tracked

    # ── Blacklist learning ──

    def update_blacklist(self, word: str, category: str, confidence: float) -> BlacklistEntry | None:
        """Record one more non-entity sighting.

        The entry moves into a learned table once seen three times or once
        its confidence reaches 0.7; until then it waits in the pending table.
        """
        found = self.words.blacklists.find(word)
        if found is not None and found[0] == STATIC_SECTION:
            return found[1]
        existing = found[1] if found else None
        entry = BlacklistEntry(
            word=word.lower(),
            category=category,
            confidence=max(existing.confidence, confidence) if existing else confidence,
            occurrences=(existing.occurrences if existing else 0) + 1,
            last_seen=self.turn,
        )
        if entry.occurrences >= PERSIST_OCCURRENCES or entry.confidence >= PERSIST_CONFIDENCE:
            section = LEARNED_NON_ROLES if "role" in category else LEARNED_NON_ENTITIES
            if found is None or found[0] == PENDING_SECTION:
                logger.info("学习到非实体词: %s (%s)", entry.word, category)
        else:
            section = PENDING_SECTION
        self.words.blacklists.put(section, entry)
        return entry

    def record_rejections(self, rejections: Iterable[Rejection]) -> None:
        for rejection in rejections:
            if rejection.reason == "too_common":
                self.update_blacklist(rejection.name, "common_word", 0.8)
            elif rejection.reason == "sentence_capitalization":
                self.update_blacklist(rejection.name, "sentence_starter", 0.6)
            elif rejection.reason == "blacklisted":
                found = self.words.blacklists.find(rejection.name)
                if found is not None and found[0] in LEARNED_SECTIONS:
                    existing = found[1]
                    self.update_blacklist(
                        rejection.name, existing.category, min(0.99, existing.confidence + 0.02),
                    )

    def observe_non_entities(self, text: str, accepted: Iterable[str], known: Iterable[str]) -> int:
        """Capitalized runs that never matched a pattern drift toward the blacklist."""
        names = {name.lower() for name in (*accepted, *known)}
        seen: set[str] = set()
        observed = 0
        for m in _CAPITALIZED_RUN_RE.finditer(text):
            word = m.group(0)
            lowered = word.lower()
            if lowered in seen:
                continue
            seen.add(lowered)
            if any(lowered in name or name in lowered for name in names):
                continue
            found = self.words.blacklists.find(word)
            if found is not None and found[0] == STATIC_SECTION:
                continue
            observed += 1
            if is_sentence_capitalization(word, text, m.start()):
                self.update_blacklist(word, "frequent_sentence_starter", 0.4)
                continue
            if found is None:
                self.update_blacklist(word, "potential_non_entity", 0.3)
                continue
            existing = found[1]
            if existing.occurrences > 10 and existing.confidence < 0.6:
                self.update_blacklist(
                    word, existing.category or "frequent_non_entity", min(0.9, existing.confidence + 0.05),
                )
            else:
                self.update_blacklist(word, existing.category, existing.confidence)
        return observed
