"""Local context heuristic: does the text around a mention fit its type?"""

from __future__ import annotations

import re
from typing import Mapping

BASE_SCORE = 0.5
CUE_BONUS = 0.2
WINDOW = 40

_PRONOUN_AFTER_RE = re.compile(r"^\W*(?:\w+\W+){0,6}?(?:he|she|his|her|him|they|their)\b", re.IGNORECASE)
_LOCATIVE_BEFORE_RE = re.compile(
    r"\b(?:in|at|to|from|into|through|near|toward|towards|across|within|outside|inside)\s+(?:the\s+)?$",
    re.IGNORECASE,
)
_DETERMINER_BEFORE_RE = re.compile(
    r"\b(?:the|a|an|his|her|their|my|your|its|our)\s+$", re.IGNORECASE,
)
_OF_THE_BEFORE_RE = re.compile(r"\bof\s+the\s+$", re.IGNORECASE)
HANDLING_VERBS = ("held", "wielded", "drew", "carried", "raised", "grasped", "sheathed", "swung")
MEMBERSHIP_WORDS = ("member", "members", "joined", "allied", "ranks", "leader", "guild", "order")


def _near(words: tuple[str, ...] | list[str] | set[str], text: str) -> bool:
    for word in words:
        if re.search(rf"\b{re.escape(word)}\b", text, re.IGNORECASE):
            return True
    return False


def coherence_score(
    text: str,
    start: int,
    end: int,
    entity_type: str,
    word_lists: Mapping[str, tuple[str, ...] | list[str]],
    role_words: set[str] | None = None,
) -> float:
    """Base 0.5, +0.2 for each cue that fits ``entity_type``, capped at 1.0."""
    before = text[max(0, start - WINDOW):start]
    after = text[end:end + WINDOW]
    around = before + " " + after
    cues = 0

    if entity_type == "PERSON":
        if _PRONOUN_AFTER_RE.search(after):
            cues += 1
        if _near(word_lists.get("dialogue_verbs", ()), around):
            cues += 1
        if _near(word_lists.get("action_verbs", ()), around):
            cues += 1
        if role_words and _near(role_words, around):
            cues += 1
    elif entity_type == "PLACE":
        if _LOCATIVE_BEFORE_RE.search(before):
            cues += 1
        movement = [*word_lists.get("arrival_verbs", ()), *word_lists.get("departure_verbs", ())]
        if _near(movement, around):
            cues += 1
    elif entity_type == "OBJECT":
        if _DETERMINER_BEFORE_RE.search(before):
            cues += 1
        if _near(HANDLING_VERBS, around):
            cues += 1
    elif entity_type == "FACTION":
        if _near(MEMBERSHIP_WORDS, around):
            cues += 1
        if _OF_THE_BEFORE_RE.search(before) or re.match(r"^\s+of\s+the\b", after, re.IGNORECASE):
            cues += 1

    return min(1.0, BASE_SCORE + CUE_BONUS * cues)
