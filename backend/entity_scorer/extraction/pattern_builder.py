"""Compile detection patterns from the current word lists.

``build_patterns`` is a pure function of the list contents: the compiled
groups are cached by those contents and never mutated after compilation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

# A capitalized name, optionally several words long: "Marcus", "Elena Voss"
NAME = r"[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*"
OPEN_QUOTE = "[\"“”]"
QUOTED = "[\"“][^\"“”]+[\"”]"

PATTERN_LISTS = (
    "dialogue_verbs",
    "action_verbs",
    "noble_titles",
    "place_types",
    "arrival_verbs",
    "object_types",
    "faction_types",
)


@dataclass(frozen=True)
class PatternGroup:
    key: str
    patterns: tuple[re.Pattern, ...]
    type_weights: Mapping[str, float]
    base_confidence: float
    complexity: str = "with_context"

    @property
    def primary_type(self) -> str:
        return max(self.type_weights.items(), key=lambda kv: kv[1])[0]


@dataclass(frozen=True)
class _Template:
    key: str
    lists: tuple[str, ...]
    sources: tuple[str, ...] = ()
    type_weights: tuple[tuple[str, float], ...] = ()
    base_confidence: float = 0.5
    complexity: str = "with_context"


def alternation(words: tuple[str, ...] | list[str]) -> str:
    """Escaped, longest-first alternation. Empty when there are no words."""
    unique = sorted({w.strip() for w in words if w and w.strip()}, key=lambda w: (-len(w), w))
    return "|".join(re.escape(w).replace(r"\ ", r"\s+") for w in unique)


_TEMPLATES: tuple[_Template, ...] = (
    _Template(
        key="person_dialogue",
        lists=("dialogue_verbs",),
        sources=(
            # "Hello," said Marcus
            QUOTED + r",?\s+(?:{dialogue_verbs})\s+(" + NAME + r")",
            # Marcus replied, "Hello"
            r"\b(" + NAME + r")\s+(?:{dialogue_verbs}),?\s*" + OPEN_QUOTE,
        ),
        type_weights=(("PERSON", 0.95), ("FACTION", 0.05)),
        base_confidence=0.85,
        complexity="dialogue_attribution",
    ),
    _Template(
        key="person_action",
        lists=("action_verbs",),
        sources=(r"\b(" + NAME + r")\s+(?:{action_verbs})\b",),
        type_weights=(("PERSON", 0.9), ("FACTION", 0.1)),
        base_confidence=0.8,
        complexity="simple_action",
    ),
    _Template(
        key="person_titled",
        lists=("noble_titles",),
        sources=(r"\b(?:{noble_titles})\s+(" + NAME + r")",),
        type_weights=(("PERSON", 0.95), ("FACTION", 0.05)),
        base_confidence=0.9,
        complexity="titled_introduction",
    ),
    _Template(
        key="place_with_type",
        lists=("place_types",),
        sources=(
            # Elven Forest
            r"\b(" + NAME + r"\s+(?:{place_types}))\b",
            # City of Tokyo
            r"\b(?:{place_types})\s+of\s+(" + NAME + r")",
        ),
        type_weights=(("PLACE", 0.9), ("FACTION", 0.1)),
        base_confidence=0.85,
    ),
    _Template(
        key="place_arrival",
        lists=("arrival_verbs",),
        sources=(r"\b(?:{arrival_verbs})\s+(?:at|in|to)\s+(?:the\s+)?(" + NAME + r")",),
        type_weights=(("PLACE", 0.85), ("FACTION", 0.15)),
        base_confidence=0.75,
    ),
    _Template(
        key="object_with_type",
        lists=("object_types",),
        sources=(
            r"\b(" + NAME + r"\s+(?:{object_types}))\b",
            r"\b(?:{object_types})\s+of\s+(" + NAME + r")",
        ),
        type_weights=(("OBJECT", 0.9), ("PERSON", 0.1)),
        base_confidence=0.8,
    ),
    _Template(
        key="faction_guild",
        lists=("faction_types",),
        sources=(
            r"\b(" + NAME + r"\s+(?:{faction_types}))\b",
            r"\b(?:{faction_types})\s+of\s+(?:the\s+)?(" + NAME + r")\b",
        ),
        type_weights=(("FACTION", 0.9), ("PLACE", 0.1)),
        base_confidence=0.85,
    ),
)


@lru_cache(maxsize=32)
def _compile(lists: tuple[tuple[str, tuple[str, ...]], ...]) -> tuple[PatternGroup, ...]:
    contents = dict(lists)
    groups = []
    for template in _TEMPLATES:
        alternations = {name: alternation(contents.get(name, ())) for name in template.lists}
        # A group whose backing list is empty would match everything
        if not all(alternations.values()):
            continue
        patterns = tuple(re.compile(_fill(source, alternations)) for source in template.sources)
        groups.append(PatternGroup(
            key=template.key,
            patterns=patterns,
            type_weights=MappingProxyType(dict(template.type_weights)),
            base_confidence=template.base_confidence,
            complexity=template.complexity,
        ))
    return tuple(groups)


def _fill(source: str, alternations: dict[str, str]) -> str:
    for name, alt in alternations.items():
        source = source.replace("{" + name + "}", alt)
    return source


def build_patterns(word_lists: Mapping[str, tuple[str, ...] | list[str]]) -> dict[str, PatternGroup]:
    """Compile the active pattern groups for the given list contents."""
    key = tuple((name, tuple(word_lists.get(name, ()))) for name in PATTERN_LISTS)
    return {group.key: group for group in _compile(key)}
