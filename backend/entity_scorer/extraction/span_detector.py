"""Candidate span detection: multi-word runs first, then the built patterns.

Both detectors share one ``SpanClaims`` per call. The multi-word detector runs
first and claims its spans outright; the standard matcher only keeps matches
that do not overlap an existing claim.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Collection, Iterator, Mapping

from entity_scorer.extraction.pattern_builder import PatternGroup

logger = logging.getLogger(__name__)

COMMON_SENTENCE_STARTERS = frozenset({
    "the", "a", "an", "this", "that", "these", "those",
    "he", "she", "it", "they", "we", "you", "i",
    "but", "and", "or", "so", "yet", "for", "nor",
    "when", "where", "what", "who", "why", "how",
    "if", "then", "as", "because", "since", "while",
    "after", "before", "during", "upon", "with", "without",
    "however", "therefore", "meanwhile", "suddenly",
    "perhaps", "maybe", "certainly", "indeed", "finally",
    "later", "now", "soon", "again", "once", "still", "next", "instead",
    "eventually", "afterward", "afterwards", "today", "tonight", "yesterday",
    "tomorrow", "there", "here", "slowly", "quietly", "outside", "inside",
})

CONNECTORS = frozenset({
    "of", "the", "in", "and", "on", "at", "de", "du", "la", "le", "von", "van", "del", "da",
})

TYPE_LISTS = (("place_types", "PLACE"), ("object_types", "OBJECT"), ("faction_types", "FACTION"))

_BOUNDARY_RE = re.compile(r"[.!?][\"'”’]?\s*[\"“]?$")
_PARAGRAPH_RE = re.compile(r"\n\s*\n\s*[\"“]?$")
_TEXT_START_RE = re.compile(r"^\s*[\"“'(]?$")
_TOKEN_RE = re.compile(r"[A-Za-z]+")
_CAPITALIZED_TOKEN_RE = re.compile(r"^[A-Z][a-z]+$")
_ARRIVAL_TAIL_RE = r"\b(?:{verbs})\s+(?:at|in|to)\s+(?:the\s+)?$"
_LEADING_WORD_RE = re.compile(r"([A-Za-z]+)\s+(?=[A-Z])")


# ── Sentence helpers ───────────────────────────────


def is_at_sentence_start(text: str, position: int) -> bool:
    """True when only sentence-ending punctuation, a paragraph break or the
    start of the text precedes ``position`` within 20 characters."""
    if position <= 0:
        return True
    start = max(0, position - 20)
    before = text[start:position]
    if _BOUNDARY_RE.search(before) or _PARAGRAPH_RE.search(before):
        return True
    return start == 0 and _TEXT_START_RE.match(before) is not None


def is_sentence_capitalization(word: str, text: str, position: int) -> bool:
    """Capitalized only because it opens a sentence."""
    if not is_at_sentence_start(text, position):
        return False
    lowered = word.lower()
    if lowered in COMMON_SENTENCE_STARTERS:
        return True
    matches = re.findall(rf"\b{re.escape(lowered)}\b", text, re.IGNORECASE)
    return sum(1 for m in matches if m == m.lower()) >= 2


def is_sentence_opener(word: str, text: str, position: int, common_words: Collection[str] = ()) -> bool:
    """A leading word capitalized by its sentence rather than being part of a name."""
    if not is_at_sentence_start(text, position):
        return False
    return word.lower() in common_words or is_sentence_capitalization(word, text, position)


def strip_sentence_opener(name: str, text: str, start: int,
                          common_words: Collection[str] = ()) -> tuple[str, int]:
    """Drop an opener glued onto a multi-word capture: "Suddenly Marcus" -> "Marcus"."""
    while True:
        m = _LEADING_WORD_RE.match(name)
        if m is None or not is_sentence_opener(m.group(1), text, start, common_words):
            return name, start
        name = name[m.end():]
        start += m.end()


# ── Span claims ────────────────────────────────────


class SpanClaims:
    """Character ranges already taken by an accepted detection in this call."""

    def __init__(self) -> None:
        self._spans: list[tuple[int, int]] = []

    def overlaps(self, start: int, end: int) -> bool:
        return any(s < end and start < e for s, e in self._spans)

    def claim(self, start: int, end: int) -> None:
        self._spans.append((start, end))

    def __len__(self) -> int:
        return len(self._spans)


# ── Multi-word detector ────────────────────────────


@dataclass
class SpanMatch:
    """A raw candidate span before screening and scoring."""

    name: str
    start: int
    end: int
    pattern: str
    base_confidence: float
    type_weights: Mapping[str, float]
    context: str
    entity_type: str = "UNKNOWN"


@dataclass
class _Token:
    text: str
    start: int
    end: int

    @property
    def capitalized(self) -> bool:
        return _CAPITALIZED_TOKEN_RE.match(self.text) is not None

    @property
    def connector(self) -> bool:
        return self.text in CONNECTORS


class MultiWordDetector:
    """Finds capitalized-word runs such as ``Town of Beginnings`` or ``Elena Voss``."""

    def __init__(self, word_lists: Mapping[str, tuple[str, ...] | list[str]]) -> None:
        self.type_words = {
            entity_type: {w.lower() for w in word_lists.get(list_name, ())}
            for list_name, entity_type in TYPE_LISTS
        }
        self.titles = {w.lower() for w in word_lists.get("noble_titles", ())}
        self.common = {w.lower() for w in word_lists.get("common_words", ())}
        self.person_verbs = {
            w.lower()
            for name in ("dialogue_verbs", "action_verbs")
            for w in word_lists.get(name, ())
        }
        arrival = [re.escape(w).replace(r"\ ", r"\s+") for w in word_lists.get("arrival_verbs", ())]
        self._arrival_re = (
            re.compile(_ARRIVAL_TAIL_RE.format(verbs="|".join(arrival)), re.IGNORECASE)
            if arrival else None
        )

    def _runs(self, text: str) -> Iterator[list[_Token]]:
        run: list[_Token] = []
        prev_end = None
        for m in _TOKEN_RE.finditer(text):
            token = _Token(m.group(0), m.start(), m.end())
            gap = text[prev_end:token.start] if prev_end is not None else ""
            joined = prev_end is not None and gap.strip() == "" and "\n\n" not in gap
            if run and not joined:
                yield run
                run = []
            if token.capitalized or (run and token.connector):
                run.append(token)
            elif run:
                yield run
                run = []
            prev_end = token.end
        if run:
            yield run

    def _trim(self, run: list[_Token], text: str) -> list[_Token]:
        while run:
            first = run[0]
            lowered = first.text.lower()
            if not (lowered in CONNECTORS or lowered in COMMON_SENTENCE_STARTERS or (
                    len(run) > 1 and is_sentence_opener(first.text, text, first.start, self.common))):
                break
            run = run[1:]
        while run and run[-1].connector:
            run = run[:-1]
        return run

    def _type_of(self, word: str) -> str | None:
        lowered = word.lower()
        for entity_type, words in self.type_words.items():
            if lowered in words:
                return entity_type
        return None

    def _segments(self, run: list[_Token]) -> Iterator[list[_Token]]:
        """Without an ``of`` construction, ``and`` separates two names."""
        if any(t.text == "of" for t in run):
            yield run
            return
        segment: list[_Token] = []
        for token in run:
            if token.text == "and":
                yield segment
                segment = []
            else:
                segment.append(token)
        yield segment

    def detect(self, text: str) -> list[SpanMatch]:
        matches = []
        for segment in (s for raw in self._runs(text) for s in self._segments(raw)):
            run = self._trim(segment, text)
            title = None
            if len(run) >= 2 and run[0].text.lower() in self.titles:
                title, run = run[0], run[1:]
            capitalized = [t for t in run if t.capitalized]
            if not capitalized or (title is None and len(capitalized) < 2):
                continue

            words = [t.text for t in run]
            connectors = sum(1 for t in run if t.connector)
            of_index = next(
                (i for i, t in enumerate(run) if t.text == "of" and 0 < i < len(run) - 1), None,
            )
            head_type = self._type_of(run[of_index - 1].text) if of_index is not None else None
            tail_type = self._type_of(run[-1].text) if len(capitalized) >= 2 else None

            if of_index is not None:
                pattern, confidence = "multi_word_of", 0.85
            elif tail_type is not None:
                pattern, confidence = "multi_word_typed", 0.8
            elif title is not None or connectors < len(run) / 2:
                pattern, confidence = "multi_word_generic", 0.75
            else:
                continue

            start, end = run[0].start, run[-1].end
            entity_type = head_type or tail_type
            if entity_type is None:
                entity_type = self._infer_from_context(text, start, end, title is not None)
            context_start = title.start if title is not None else start
            matches.append(SpanMatch(
                name=" ".join(words),
                start=start,
                end=end,
                pattern=pattern,
                base_confidence=confidence,
                type_weights={entity_type: 1.0},
                context=text[context_start:end],
                entity_type=entity_type,
            ))
        return matches

    def _infer_from_context(self, text: str, start: int, end: int, titled: bool) -> str:
        if titled:
            return "PERSON"
        following = _TOKEN_RE.search(text, end)
        if following is not None and following.group(0).lower() in self.person_verbs:
            if text[end:following.start()].strip(" ,\t") == "":
                return "PERSON"
        if self._arrival_re is not None and self._arrival_re.search(text[max(0, start - 40):start]):
            return "PLACE"
        return "UNKNOWN"


# ── Standard pattern matcher ───────────────────────


class StandardPatternMatcher:
    """Runs every compiled pattern group over the text."""

    def scan(self, text: str, patterns: Mapping[str, PatternGroup],
             common_words: Collection[str] = ()) -> Iterator[SpanMatch]:
        """Yield each match's name span, minus any sentence opener the capture took in."""
        for key, group in patterns.items():
            for pattern in group.patterns:
                try:
                    found = list(pattern.finditer(text))
                except Exception:
                    logger.warning("模式扫描失败: %s", key, exc_info=True)
                    continue
                for m in found:
                    name = m.group(1) if m.lastindex else m.group(0)
                    start, end = (m.start(1), m.end(1)) if m.lastindex else (m.start(), m.end())
                    name, start = strip_sentence_opener(name, text, start, common_words)
                    yield SpanMatch(
                        name=name,
                        start=start,
                        end=end,
                        pattern=key,
                        base_confidence=group.base_confidence,
                        type_weights=group.type_weights,
                        context=m.group(0),
                        entity_type=group.primary_type,
                    )


# ── Screening and base confidence ──────────────────


def screen_candidate(
    name: str,
    text: str,
    start: int,
    end: int,
    claims: SpanClaims,
    is_blacklisted: Callable[[str], bool],
    common_words: set[str],
) -> str | None:
    """Return the rejection reason for a raw match, or None if it survives."""
    if claims.overlaps(start, end):
        return "overlap"
    if len(name) < 2:
        return "too_short"
    if is_sentence_capitalization(name, text, start):
        return "sentence_capitalization"
    if is_blacklisted(name):
        return "blacklisted"
    if name.lower() in common_words:
        return "too_common"
    return None


def base_confidence(
    pattern_confidence: float,
    name: str,
    text: str,
    start: int,
    common_words: set[str],
) -> float:
    confidence = pattern_confidence
    if is_at_sentence_start(text, start):
        lowered = name.lower()
        if lowered in common_words or lowered in COMMON_SENTENCE_STARTERS:
            confidence *= 0.3
        else:
            confidence *= 0.9
    if len(name.split()) > 3:
        confidence *= 0.8
    return confidence
