"""Tests for operator slash-commands."""

from entity_scorer.extraction.entity_scorer import TurnContext, process_hook
from entity_scorer.services.command_service import CommandService
from entity_scorer.services.entity_registry import EntityRegistry
from entity_scorer.services.relationship_extractor import RelationshipExtractor
from entity_scorer.services.word_store import WordStore
from entity_scorer.utils.default_documents import ASSOCIATIONS_DOC


def _handle(store, command):
    return CommandService(TurnContext.build(store, turn=1)).handle(command)


def test_non_commands_ignored(store):
    assert _handle(store, "Hello there") is None
    assert _handle(store, "/dance wildly") is None
    assert _handle(store, "") is None


def test_help(store):
    for command in ("/help entity", "/entity help"):
        message = _handle(store, command)
        assert message.startswith("Entity Scoring Module Commands:")
        assert "/alias add" in message


def test_list_overview_and_show(store):
    overview = _handle(store, "/list")
    assert "Dialogue Verbs (12 items)" in overview
    shown = _handle(store, "/list show dialogue_verbs")
    assert shown.startswith("Dialogue Verbs:")
    assert "- said" in shown
    assert _handle(store, "/list show weather") == 'List "weather" is empty or doesn\'t exist'


def test_list_add_and_remove(store):
    assert _handle(store, "/list add dialogue_verbs murmured, hissed, said") == (
        "Added 2 item(s) to dialogue_verbs"
    )
    assert WordStore(store).lists.contains("dialogue_verbs", "hissed")
    assert _handle(store, "/list remove dialogue_verbs hissed") == "Removed 1 item(s) from dialogue_verbs"
    assert not WordStore(store).lists.contains("dialogue_verbs", "hissed")


def test_list_add_clears_candidate(store):
    WordStore(store).candidates.track("dialogue_verb", "murmured", "one context", 0.7)
    result = process_hook("input", "/list add dialogue_verbs murmured", store, turn=1)
    assert result.message == "Added 1 item(s) to dialogue_verbs"
    fresh = WordStore(store)
    assert fresh.lists.contains("dialogue_verbs", "murmured")
    assert fresh.candidates.get("dialogue_verb", "murmured") is None


def test_patterns_report_active_groups(store):
    _handle(store, "/list remove object_types " + ", ".join(WordStore(store).lists.get("object_types")))
    message = _handle(store, "/patterns")
    assert "person_dialogue: Detects speakers in dialogue" in message
    assert "Words: 0 from object_types, inactive (empty list)" in message


def test_candidates_list_and_promote(store):
    WordStore(store).candidates.track("dialogue_verb", "murmured", "one context", 0.7)
    message = _handle(store, "/candidates")
    assert "murmured: conf=0.70, seen=1x, contexts=1" in message
    assert "Occurrences >= 4" in message
    assert _handle(store, "/candidates promote dialogue_verb murmured") == (
        'Promoted "murmured" to dialogue_verb list'
    )
    assert WordStore(store).lists.contains("dialogue_verbs", "murmured")


def test_entities_list_and_clear(store):
    assert _handle(store, "/entities") == "No entities registered yet."
    process_hook("output", '"Hello," said Marcus.', store, 1)
    listing = _handle(store, "/entities")
    assert "Person:" in listing
    assert "  Marcus: confidence=" in listing
    assert store.exists(ASSOCIATIONS_DOC)

    assert _handle(store, "/entities clear") == "Entity registry cleared."
    assert EntityRegistry(store).all() == []
    assert not store.exists(ASSOCIATIONS_DOC)


def test_associations(store):
    assert _handle(store, "/associations") == "No entity associations tracked yet."
    assert _handle(store, "/associations Marcus") == 'Entity "Marcus" not found in registry.'
    for turn in (1, 2, 3):
        process_hook("output", '"Hello," said Marcus.', store, turn)
    overview = _handle(store, "/associations")
    assert "Marcus (PERSON): hello(3), said(3)" in overview
    detail = _handle(store, "/associations Marcus")
    assert detail.startswith("Associations for Marcus (PERSON):")
    assert "said: 3 occurrences" in detail


def test_blacklist_add_and_check(store):
    assert _handle(store, "/blacklist add Shadow") == 'Added "Shadow" to blacklist'
    assert WordStore(store).is_blacklisted("shadow")
    checked = _handle(store, "/blacklist check Shadow")
    assert checked.startswith('"Shadow" is BLACKLISTED')
    assert "Category: generic_noun" in checked
    assert _handle(store, "/blacklist check Marcus") == '"Marcus" is NOT blacklisted'
    static = _handle(store, "/blacklist check the")
    assert "Section: static_blacklist" in static
    assert "Occurrences: permanent" in static


def test_blacklist_listing(store):
    assert "No learned entries yet." in _handle(store, "/blacklist")
    _handle(store, "/blacklist add Gloom misc")
    listing = _handle(store, "/blacklist")
    assert "=== Static (Built-in) ===" in listing
    assert "=== Learned Non Entities ===" in listing
    assert "gloom: misc (conf=0.90, seen=1x)" in listing


def test_roles(store):
    assert _handle(store, 'role add combat_roles berserker "raging, frenzied"') is None
    assert _handle(store, '/role add combat_roles berserker "raging, frenzied"') == "Added role: berserker"
    checked = _handle(store, "/role check frenzied")
    assert checked.startswith('"frenzied" is a VALID role')
    assert "Synonyms: berserker, raging, frenzied" in checked
    assert _handle(store, "/role check person") == '"person" is NOT a valid role'


def test_aliases(store):
    assert _handle(store, '/alias add character_aliases Marcus "The Red Hand, Red"') == (
        "Added aliases for Marcus"
    )
    assert _handle(store, "/alias check The Red Hand") == "Marcus: The Red Hand, Red"
    assert _handle(store, "/alias check Nobody") == 'No aliases known for "Nobody"'


def test_relationships(store):
    assert _handle(store, "/relationships") == "No relationships tracked yet."
    RelationshipExtractor(store).extract("Marcus trusted Elena.", {"Marcus", "Elena"})
    message = _handle(store, "/relationships")
    assert "Marcus -[trusted]-> Elena (social, seen=1x, conf=0.80)" in message
