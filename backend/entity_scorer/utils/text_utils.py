"""Small text helpers shared by the detectors and trackers."""

from __future__ import annotations

import hashlib
import re

from rapidfuzz import fuzz

_WORD_RE = re.compile(r"[A-Za-z]+")
_CAPITALIZED_RE = re.compile(r"\b[A-Z][a-z]+\b")


def similarity(a: str, b: str) -> float:
    """Case-insensitive normalized edit similarity in [0, 1]."""
    if not a or not b:
        return 0.0
    if a.lower() == b.lower():
        return 1.0
    return fuzz.ratio(a.lower(), b.lower()) / 100.0


def alpha_words(text: str, min_length: int = 1) -> list[str]:
    return [w for w in _WORD_RE.findall(text) if len(w) >= min_length]


def capitalized_words(text: str) -> list[tuple[str, int]]:
    """Every capitalized word with its start offset."""
    return [(m.group(0), m.start()) for m in _CAPITALIZED_RE.finditer(text)]


def window(text: str, start: int, end: int, radius: int) -> str:
    return text[max(0, start - radius):min(len(text), end + radius)]


def context_digest(context: str) -> str:
    """Short stable digest of a whitespace/case-normalized context."""
    normalized = " ".join(context.lower().split())
    return hashlib.md5(normalized.encode("utf-8")).hexdigest()[:8]


def contains_word(text: str, word: str) -> bool:
    return re.search(rf"\b{re.escape(word)}\b", text, re.IGNORECASE) is not None
