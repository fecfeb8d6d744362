"""Tests for compiling detection patterns from word lists."""

from entity_scorer.extraction.pattern_builder import alternation, build_patterns


def _lists(**overrides):
    base = {
        "dialogue_verbs": ("said", "replied"),
        "action_verbs": ("walked", "nodded"),
        "noble_titles": ("Lord", "Lady"),
        "place_types": ("Forest", "City"),
        "arrival_verbs": ("arrived", "came to"),
        "object_types": ("Sword",),
        "faction_types": ("Guild",),
    }
    base.update(overrides)
    return base


def test_alternation_longest_first_and_escaped():
    assert alternation(["at", "came to", "a.b", "at"]) == r"came\s+to|a\.b|at"
    assert alternation([]) == ""
    assert alternation(["  ", ""]) == ""


def test_all_groups_built():
    patterns = build_patterns(_lists())
    assert set(patterns) == {
        "person_dialogue", "person_action", "person_titled", "place_with_type",
        "place_arrival", "object_with_type", "faction_guild",
    }
    assert patterns["person_dialogue"].primary_type == "PERSON"
    assert patterns["place_with_type"].base_confidence == 0.85


def test_empty_list_drops_group():
    """A group backed by an empty list is never compiled."""
    patterns = build_patterns(_lists(action_verbs=()))
    assert "person_action" not in patterns
    assert "person_dialogue" in patterns


def test_build_is_cached_by_content():
    assert build_patterns(_lists())["person_titled"] is build_patterns(_lists())["person_titled"]


def test_dialogue_pattern_captures_speaker():
    group = build_patterns(_lists())["person_dialogue"]
    m = group.patterns[0].search('"Hello," said Marcus.')
    assert m.group(1) == "Marcus"
    m = group.patterns[1].search('Elena replied, "Not yet."')
    assert m.group(1) == "Elena"


def test_place_patterns():
    group = build_patterns(_lists())["place_with_type"]
    assert group.patterns[0].search("deep in the Elven Forest").group(1) == "Elven Forest"
    assert group.patterns[1].search("the City of Tokyo").group(1) == "Tokyo"


def test_multi_word_list_entry():
    group = build_patterns(_lists(arrival_verbs=("went back",)))["place_arrival"]
    m = group.patterns[0].search("They went  back to the Harbor at dusk.")
    assert m.group(1) == "Harbor"
