"""Pydantic models for detected entities and the learned data around them."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, field_validator

EntityType = Literal["PERSON", "PLACE", "OBJECT", "FACTION", "UNKNOWN"]

ENTITY_TYPES: tuple[str, ...] = ("PERSON", "PLACE", "OBJECT", "FACTION", "UNKNOWN")


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


class Entity(BaseModel):
    name: str
    type: EntityType = "UNKNOWN"
    confidence: float = 0.5
    occurrences: int = 1

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return _clamp(v)


class Detection(BaseModel):
    """A span candidate found in a single turn's text."""

    name: str
    type: EntityType = "UNKNOWN"
    start: int
    end: int
    pattern: str  # pattern group key, or multi_word_* for the run detector
    base_confidence: float
    context: str = ""  # full matched text
    confidence: float = 0.0  # ensemble score once computed
    occurrences: int = 1
    signals: dict[str, float] = {}

    @field_validator("base_confidence", "confidence")
    @classmethod
    def _clamp_scores(cls, v: float) -> float:
        return _clamp(v)


class Rejection(BaseModel):
    name: str
    reason: str  # sentence_capitalization / blacklisted / too_common / low_confidence / ...
    confidence: float | None = None


class BlacklistEntry(BaseModel):
    word: str
    category: str = "unknown"
    confidence: float = 1.0
    occurrences: int = 1
    last_seen: int = 0
    static: bool = False


class Candidate(BaseModel):
    category: str
    word: str
    confidence: float = 0.5
    occurrences: int = 0
    contexts: int = 0
    digests: list[str] = []  # short hashes of the distinct contexts seen


class AssociationStat(BaseModel):
    word: str
    count: int = 0
    contexts: int = 0

    def is_strong(self, min_occurrences: int = 3, min_strength: float = 0.3) -> bool:
        if self.contexts <= 0:
            return False
        return self.count >= min_occurrences and self.count / self.contexts >= min_strength


class Relationship(BaseModel):
    subject: str
    relation: str
    object: str
    category: str  # spatial / possession / action / social
    count: int = 1
    confidence: float = 0.5


class SnapshotEntry(BaseModel):
    name: str
    type: EntityType = "UNKNOWN"
    confidence: float = 0.0


class TurnSnapshot(BaseModel):
    turn: int
    entities: list[SnapshotEntry] = []


class PronounLink(BaseModel):
    pronoun: str
    position: int
    antecedent: str
    type: EntityType
    score: float


class TurnResult(BaseModel):
    """Everything one output turn produced."""

    turn: int = 0
    entities: list[Detection] = []
    rejections: list[Rejection] = []
    pronoun_links: list[PronounLink] = []
    relationships: list[Relationship] = []
    merges: list[tuple[str, str]] = []


class HookResult(BaseModel):
    text: str
    message: str | None = None
    result: TurnResult | None = None
