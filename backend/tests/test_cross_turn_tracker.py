"""Tests for per-turn entity snapshots."""

from entity_scorer.db.memory_store import MemoryDocumentStore
from entity_scorer.infra.config import ScoringConfig
from entity_scorer.models.entity import SnapshotEntry
from entity_scorer.services.cross_turn_tracker import CrossTurnTracker


def _entry(name, entity_type="PERSON"):
    return SnapshotEntry(name=name, type=entity_type, confidence=0.8)


def _record_three_turns(store, config=None):
    CrossTurnTracker(store, 1, config).record(1, [_entry("Marcus")])
    CrossTurnTracker(store, 2, config).record(2, [_entry("Marcus"), _entry("Elena")])
    CrossTurnTracker(store, 3, config).record(3, [_entry("Elena")])


def test_appearances_count_earlier_turns():
    store = MemoryDocumentStore()
    _record_three_turns(store)
    tracker = CrossTurnTracker(store, turn=4)
    assert tracker.appearances("marcus") == 2
    assert tracker.appearances("Elena") == 2
    assert tracker.appearances("Elena", window=1) == 1
    assert tracker.appearances("Nobody") == 0


def test_current_turn_not_counted():
    store = MemoryDocumentStore()
    _record_three_turns(store)
    assert CrossTurnTracker(store, turn=2).appearances("Marcus") == 1


def test_last_seen_and_recent():
    store = MemoryDocumentStore()
    _record_three_turns(store)
    tracker = CrossTurnTracker(store, turn=4)
    assert tracker.last_seen("Marcus") == 2
    assert tracker.last_seen("Nobody") is None
    assert [e.name for e in tracker.recent_entities()] == ["Elena", "Marcus"]
    assert [e.name for e in tracker.recent_entities(limit=1)] == ["Elena"]


def test_history_window_prunes_old_turns():
    store = MemoryDocumentStore()
    _record_three_turns(store, ScoringConfig(history_window=2))
    snapshots = CrossTurnTracker(store).snapshots()
    assert [s.turn for s in snapshots] == [2, 3]
    assert [e.name for e in snapshots[0].entities] == ["Marcus", "Elena"]


def test_rerecording_turn_replaces_it():
    store = MemoryDocumentStore()
    CrossTurnTracker(store, 1).record(1, [_entry("Marcus")])
    CrossTurnTracker(store, 1).record(1, [_entry("Elena Forest", "PLACE")])
    snapshots = CrossTurnTracker(store).snapshots()
    assert len(snapshots) == 1
    assert snapshots[0].entities[0].name == "Elena Forest"
    assert snapshots[0].entities[0].type == "PLACE"
