"""Tests for the character n-gram type classifier."""

from entity_scorer.db.memory_store import MemoryDocumentStore
from entity_scorer.extraction import ngram_classifier
from entity_scorer.extraction.ngram_classifier import NgramClassifier, ngrams
from entity_scorer.models.entity import Entity
from entity_scorer.utils.default_documents import NGRAM_DOC


def test_ngrams_padded():
    assert ngrams("Ana") == ["_an", "ana", "na_"]
    assert ngrams("Al Bo") == ["_al", "al_", "l_b", "_bo", "bo_"]


def test_empty_model_does_not_classify():
    classifier = NgramClassifier(MemoryDocumentStore())
    assert classifier.is_empty()
    assert classifier.classify("Marcus") is None


def test_classify_trained_type():
    classifier = NgramClassifier(MemoryDocumentStore())
    for name in ("Marcus", "Marcella", "Marco"):
        classifier.train(name, "PERSON")
    classifier.train("Riverdale", "PLACE")
    entity_type, confidence = classifier.classify("Marcus")
    assert entity_type == "PERSON"
    assert 0.6 < confidence <= 1.0
    assert classifier.classify("Zyx") is None


def test_ambiguous_name_returns_none():
    """Evenly shared n-grams never clear the confidence bar."""
    classifier = NgramClassifier(MemoryDocumentStore())
    classifier.train("Ashford", "PERSON")
    classifier.train("Ashford", "PLACE")
    assert classifier.classify("Ashford") is None


def test_unknown_type_not_trained():
    classifier = NgramClassifier(MemoryDocumentStore())
    classifier.train("Something", "UNKNOWN")
    assert classifier.is_empty()


def test_bootstrap_and_save():
    store = MemoryDocumentStore()
    classifier = NgramClassifier(store, turn=3)
    trained = classifier.bootstrap([
        Entity(name="Marcus", type="PERSON"),
        Entity(name="Elven Forest", type="PLACE"),
        Entity(name="Mystery", type="UNKNOWN"),
    ])
    assert trained == 2
    assert classifier.bootstrap([Entity(name="Elena", type="PERSON")]) == 0
    assert classifier.save() is True
    assert classifier.save() is False

    reloaded = NgramClassifier(store)
    assert reloaded.table("PERSON")["mar"] == 1
    assert "Last Update: 3" in store.get(NGRAM_DOC)


def test_table_keeps_most_frequent_grams(monkeypatch):
    monkeypatch.setattr(ngram_classifier, "MAX_GRAMS_PER_TYPE", 5)
    classifier = NgramClassifier(MemoryDocumentStore())
    classifier.train("Marcus", "PERSON")
    classifier.train("Marcus", "PERSON")
    classifier.train("Zyx", "PERSON")
    table = classifier.table("PERSON")
    assert len(table) == 5
    assert set(table.values()) == {2}
    assert "zyx" not in table
