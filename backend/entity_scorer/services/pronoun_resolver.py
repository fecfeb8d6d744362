"""Resolve third-person pronouns to recently mentioned entities."""

from __future__ import annotations

import math
import re
from collections import deque
from dataclasses import dataclass
from typing import Iterable

from entity_scorer.models.entity import PronounLink, SnapshotEntry

RECENCY_SIZE = 10
PERSON_BONUS = 0.3

MALE_TITLES = frozenset({"lord", "sir", "king", "prince", "duke", "baron", "count", "mister", "mr"})
FEMALE_TITLES = frozenset({"lady", "queen", "princess", "duchess", "baroness", "countess", "madam", "mrs", "ms"})

# pronoun -> (gender, group)
PRONOUNS: dict[str, tuple[str | None, str]] = {
    "he": ("male", "personal"), "him": ("male", "personal"), "his": ("male", "personal"),
    "she": ("female", "personal"), "her": ("female", "personal"), "hers": ("female", "personal"),
    "it": (None, "neuter"), "its": (None, "neuter"),
    "they": (None, "plural"), "them": (None, "plural"), "their": (None, "plural"),
}
_PRONOUN_RE = re.compile(r"\b(" + "|".join(PRONOUNS) + r")\b", re.IGNORECASE)
_TITLE_BEFORE_RE = re.compile(r"\b([A-Z][a-z]+)\.?\s+$")


@dataclass
class Mention:
    name: str
    type: str
    start: int
    end: int
    gender: str | None = None


def gender_of(text: str, start: int) -> str | None:
    """Gender implied by a title directly before ``start``."""
    m = _TITLE_BEFORE_RE.search(text[max(0, start - 15):start])
    if not m:
        return None
    title = m.group(1).lower()
    if title in MALE_TITLES:
        return "male"
    if title in FEMALE_TITLES:
        return "female"
    return None


def compatible(pronoun: str, entity_type: str, gender: str | None) -> bool:
    pronoun_gender, group = PRONOUNS[pronoun.lower()]
    if group == "personal":
        if entity_type not in ("PERSON", "UNKNOWN"):
            return False
        return gender is None or gender == pronoun_gender
    if group == "neuter":
        return entity_type != "PERSON"
    return entity_type in ("PERSON", "FACTION", "UNKNOWN")


class PronounResolver:
    def __init__(self, recent: Iterable[SnapshotEntry] = (), size: int = RECENCY_SIZE) -> None:
        self.size = size
        self._recency: deque[Mention] = deque(maxlen=size)
        for entry in recent:
            if len(self._recency) >= size:
                break
            self._recency.append(Mention(entry.name, entry.type, -1, -1))

    @property
    def recency(self) -> list[str]:
        return [m.name for m in self._recency]

    def _touch(self, recency: deque[Mention], mention: Mention) -> None:
        for existing in list(recency):
            if existing.name.lower() == mention.name.lower():
                recency.remove(existing)
                if mention.gender is None:
                    mention.gender = existing.gender
        recency.appendleft(mention)

    def resolve(self, pronoun: str, position: int, mentions: list[Mention]) -> PronounLink | None:
        """Best antecedent for ``pronoun`` at ``position``, or None."""
        if pronoun.lower() not in PRONOUNS:
            return None
        recency: deque[Mention] = deque(self._recency, maxlen=self.size)
        nearest: dict[str, int] = {}
        for mention in sorted(mentions, key=lambda m: m.start):
            if mention.end > position:
                break
            self._touch(recency, Mention(mention.name, mention.type, mention.start, mention.end, mention.gender))
            nearest[mention.name.lower()] = mention.end

        personal = PRONOUNS[pronoun.lower()][1] == "personal"
        best: PronounLink | None = None
        for rank, candidate in enumerate(recency):
            if not compatible(pronoun, candidate.type, candidate.gender):
                continue
            score = math.exp(-0.5 * rank)
            end = nearest.get(candidate.name.lower())
            if end is not None:
                score += 1 / (1 + (position - end) / 100)
            if personal and candidate.type == "PERSON":
                score += PERSON_BONUS
            if best is None or score > best.score:
                best = PronounLink(
                    pronoun=pronoun, position=position, antecedent=candidate.name,
                    type=candidate.type, score=round(score, 4),
                )
        return best

    def resolve_all(self, text: str, mentions: list[Mention]) -> list[PronounLink]:
        links = []
        for m in _PRONOUN_RE.finditer(text):
            link = self.resolve(m.group(1), m.start(), mentions)
            if link is not None:
                links.append(link)
        self.refresh(mentions)
        return links

    def refresh(self, mentions: list[Mention]) -> None:
        for mention in sorted(mentions, key=lambda m: m.start):
            self._touch(self._recency, mention)
