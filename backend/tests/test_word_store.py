"""Tests for the persisted word lists, blacklists, roles, aliases and candidates."""

from entity_scorer.db.memory_store import MemoryDocumentStore
from entity_scorer.models.entity import BlacklistEntry
from entity_scorer.services.word_store import (
    LEARNED_NON_ENTITIES,
    STATIC_SECTION,
    WordStore,
)
from entity_scorer.utils.default_documents import (
    BLACKLISTS_DOC,
    CANDIDATES_DOC,
    DATABASE_DOCS,
    LISTS_DOC,
)


# ── Initialization ──────────────────────────────────


def test_initialize_seeds_every_database_document():
    """A fresh store gets all five database documents."""
    docs = MemoryDocumentStore()
    seeded = WordStore(docs).initialize()
    assert set(seeded) == set(DATABASE_DOCS)
    assert all(docs.exists(name) for name in DATABASE_DOCS)


def test_initialize_is_idempotent(store):
    assert WordStore(store).initialize() == []
    assert store.changed_documents() == {}


def test_initialize_replaces_unreadable_document():
    docs = MemoryDocumentStore({LISTS_DOC: "not a document"})
    seeded = WordStore(docs).initialize()
    assert LISTS_DOC in seeded
    assert "said" in WordStore(docs).lists.get("dialogue_verbs")


def test_missing_document_seeded_lazily():
    """Lookups on a store without documents fall back to the defaults."""
    words = WordStore(MemoryDocumentStore())
    assert words.lists.contains("action_verbs", "walked")


# ── Word lists ──────────────────────────────────────


def test_list_add_is_idempotent(words, store):
    """Adding a word twice leaves one copy."""
    assert words.lists.add("dialogue_verbs", "murmured") == ["murmured"]
    assert words.lists.add("dialogue_verbs", ["Murmured", "murmured"]) == []
    items = WordStore(store).lists.get("dialogue_verbs")
    assert items.count("murmured") == 1


def test_list_add_creates_new_list(words):
    words.lists.add("Weather Words", ["rain", "snow"])
    assert "weather_words" in words.lists.names()
    assert words.lists.get("weather_words") == ["rain", "snow"]


def test_list_remove(words):
    removed = words.lists.remove("action_verbs", ["walked", "flew"])
    assert removed == ["walked"]
    assert not words.lists.contains("action_verbs", "walked")


def test_list_totals_updated(words, store):
    words.lists.add("place_types", "Harbor")
    meta = WordStore(store).lists._load().metadata()
    assert meta["total_words"] == 109


# ── Blacklists ──────────────────────────────────────


def test_static_blacklist_always_wins(words):
    """A static word cannot be overwritten by a learned entry."""
    assert words.is_blacklisted("The")
    assert words.blacklists.put(
        LEARNED_NON_ENTITIES, BlacklistEntry(word="the", category="manual", confidence=0.1),
    ) is False
    section, entry = words.blacklists.find("the")
    assert section == STATIC_SECTION
    assert entry.static
    assert words.blacklists.is_blacklisted("the", min_confidence=1.0)


def test_learned_blacklist_needs_confidence(words):
    words.blacklists.put(
        LEARNED_NON_ENTITIES, BlacklistEntry(word="shadow", confidence=0.5),
    )
    assert not words.is_blacklisted("Shadow")
    assert words.is_blacklisted("Shadow", min_confidence=0.5)


def test_blacklist_add_goes_to_learned_table(words, store):
    words.blacklists.add("Gloom", category="manual", confidence=0.9)
    assert WordStore(store).blacklists.find("gloom")[0] == LEARNED_NON_ENTITIES
    assert "gloom" in store.get(BLACKLISTS_DOC)


def test_suffix_fallback(words):
    """Abstract nouns are treated as non-entities."""
    assert words.is_blacklisted("Darkness")
    assert words.is_blacklisted("Movement")
    assert not words.is_blacklisted("City")


# ── Roles and aliases ───────────────────────────────


def test_roles_synonyms(words):
    assert words.roles.get_synonyms("wizard")[0] == "mage"
    assert words.roles.is_valid_role("sorcerer")
    assert not words.roles.is_valid_role("person")
    assert not words.roles.is_valid_role("xy")


def test_role_add_merges_synonyms(words):
    words.roles.add("combat_roles", "berserker", ["raging", "frenzied"])
    words.roles.add("combat_roles", "berserker", ["raging", "wild"])
    assert words.roles.get_synonyms("wild") == ["berserker", "raging", "frenzied", "wild"]


def test_aliases(words):
    assert words.aliases.canonical("Black Swordsman") == "Kirito"
    assert words.aliases.canonical("black swordsman") == "Kirito"
    assert words.aliases.canonical("Marcus") == "Marcus"
    words.aliases.add("character_aliases", "Marcus", ["The Red Hand"])
    assert words.aliases.get("the red hand") == ["Marcus", "The Red Hand"]


# ── Candidates ──────────────────────────────────────


def test_candidate_promoted_after_thresholds(words, store):
    """murmured crosses confidence, occurrence and context thresholds."""
    contexts = [
        '"Quiet," murmured Elena',
        '"Later," murmured Marcus',
        '"Run," murmured the guard Tomas',
        '"Now," murmured Asha softly',
    ]
    for context in contexts[:3]:
        candidate = words.candidates.track("dialogue_verb", "murmured", context, 0.8)
        assert candidate is not None
    assert words.candidates.get("dialogue_verb", "murmured").occurrences == 3
    assert not words.lists.contains("dialogue_verbs", "murmured")

    assert words.candidates.track("dialogue_verb", "murmured", contexts[3], 0.8) is None
    fresh = WordStore(store)
    assert fresh.lists.contains("dialogue_verbs", "murmured")
    assert fresh.candidates.get("dialogue_verb", "murmured") is None


def test_candidate_repeated_context_counts_once(words):
    for _ in range(5):
        candidate = words.candidates.track("dialogue_verb", "hissed", "the same  Context", 0.9)
    assert candidate.occurrences == 5
    assert candidate.contexts == 1
    assert not words.lists.contains("dialogue_verbs", "hissed")


def test_candidate_low_confidence_not_promoted(words):
    for i in range(6):
        words.candidates.track("action_verb", "paced", f"context number {i}", 0.5)
    assert not words.lists.contains("action_verbs", "paced")
    assert words.candidates.get("action_verb", "paced").contexts == 6


def test_candidate_already_listed_is_ignored(words, store):
    assert words.candidates.track("dialogue_verb", "said", "anything", 0.9) is None
    assert "Dialogue Verb Candidates" not in store.get(CANDIDATES_DOC)


def test_list_add_drops_matching_candidate(words, store):
    words.candidates.track("dialogue_verb", "murmured", '"Quiet," murmured Elena', 0.7)
    words.candidates.track("place_type", "harbor", "the Grey Harbor", 0.8)
    assert words.lists.add("dialogue_verbs", "Murmured") == ["Murmured"]
    assert words.candidates.get("dialogue_verb", "murmured") is None
    assert words.candidates.get("place_type", "Harbor") is not None

    fresh = WordStore(store)
    assert fresh.candidates.get("dialogue_verb", "murmured") is None
    assert fresh.lists.add("place_types", "Harbor") == ["Harbor"]
    assert WordStore(store).candidates.get("place_type", "Harbor") is None


def test_type_candidates_are_capitalized(words):
    words.candidates.track("place_type", "harbor", "the Grey Harbor", 0.8)
    assert words.candidates.get("place_type", "Harbor").word == "Harbor"


def test_force_promote(words):
    assert words.candidates.promote("noble_title", "earl")
    assert "Earl" in words.lists.get("noble_titles")
    assert not words.candidates.promote("unknown_category", "x")
