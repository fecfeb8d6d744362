"""Ring buffer of per-turn entity snapshots."""

from __future__ import annotations

import logging
from typing import Iterable

from entity_scorer.db.memory_store import DocumentStore, read_document, write_document
from entity_scorer.infra.config import ScoringConfig
from entity_scorer.models.document import Document
from entity_scorer.models.entity import ENTITY_TYPES, SnapshotEntry, TurnSnapshot
from entity_scorer.utils.default_documents import HISTORY_DOC

logger = logging.getLogger(__name__)

HISTORY_SECTION = "history"


class CrossTurnTracker:
    def __init__(self, store: DocumentStore, turn: int = 0, config: ScoringConfig | None = None) -> None:
        self.store = store
        self.turn = turn
        self.config = config or ScoringConfig()
        self._doc: Document | None = None

    def _load(self) -> Document:
        if self._doc is None:
            self._doc = read_document(self.store, HISTORY_DOC)
            if self._doc.name == "Unknown":
                self._doc.name = "Turn History"
        return self._doc

    def _rows(self) -> list[dict]:
        rows = self._load().sections.get(HISTORY_SECTION)
        if not isinstance(rows, list):
            return []
        return [row for row in rows if isinstance(row, dict) and isinstance(row.get("turn"), int)]

    def snapshots(self) -> list[TurnSnapshot]:
        by_turn: dict[int, list[SnapshotEntry]] = {}
        for row in self._rows():
            entity_type = str(row.get("type", "UNKNOWN")).upper()
            by_turn.setdefault(row["turn"], []).append(SnapshotEntry(
                name=str(row.get("name", "")),
                type=entity_type if entity_type in ENTITY_TYPES else "UNKNOWN",
                confidence=float(row.get("confidence") or 0.0),
            ))
        return [TurnSnapshot(turn=turn, entities=by_turn[turn]) for turn in sorted(by_turn)]

    def record(self, turn: int, entities: Iterable[SnapshotEntry]) -> TurnSnapshot:
        """Append one turn's accepted entities, keeping the newest window of turns."""
        snapshot = TurnSnapshot(turn=turn, entities=list(entities))
        rows = [row for row in self._rows() if row["turn"] != turn]
        rows.extend(
            {"turn": turn, "name": e.name, "type": e.type, "confidence": round(e.confidence, 2)}
            for e in snapshot.entities
        )
        turns = sorted({row["turn"] for row in rows})
        keep = set(turns[-self.config.history_window:])
        rows = [row for row in rows if row["turn"] in keep]
        rows.sort(key=lambda row: row["turn"])

        doc = self._load()
        doc.sections[HISTORY_SECTION] = rows
        meta = doc.metadata()
        meta["last_update"] = turn
        meta["turns_tracked"] = len(keep)
        doc.sections["metadata"] = doc.sections.pop("metadata")
        write_document(self.store, HISTORY_DOC, doc)
        return snapshot

    def appearances(self, name: str, window: int | None = None) -> int:
        """Number of the last ``window`` turns (before this one) mentioning ``name``."""
        window = window or self.config.frequency_window
        lowered = name.lower()
        earliest = self.turn - window
        return len({
            row["turn"] for row in self._rows()
            if str(row.get("name", "")).lower() == lowered and earliest <= row["turn"] < self.turn
        })

    def last_seen(self, name: str) -> int | None:
        lowered = name.lower()
        turns = [row["turn"] for row in self._rows() if str(row.get("name", "")).lower() == lowered]
        return max(turns) if turns else None

    def recent_entities(self, limit: int = 10) -> list[SnapshotEntry]:
        """Most recent distinct entities, newest first."""
        seen: set[str] = set()
        result = []
        for snapshot in reversed(self.snapshots()):
            for entry in reversed(snapshot.entities):
                if entry.name.lower() in seen:
                    continue
                seen.add(entry.name.lower())
                result.append(entry)
                if len(result) >= limit:
                    return result
        return result
