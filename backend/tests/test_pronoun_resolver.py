"""Tests for pronoun antecedent resolution."""

from entity_scorer.models.entity import SnapshotEntry
from entity_scorer.services.pronoun_resolver import (
    Mention,
    PronounResolver,
    compatible,
    gender_of,
)


def _mention(text, name, entity_type="PERSON"):
    start = text.index(name)
    return Mention(name, entity_type, start, start + len(name), gender_of(text, start))


def test_gender_from_title():
    text = "Lady Elena and Sir Marcus arrived."
    assert gender_of(text, text.index("Elena")) == "female"
    assert gender_of(text, text.index("Marcus")) == "male"
    assert gender_of("Elena waited.", 0) is None


def test_compatibility():
    assert compatible("he", "PERSON", None)
    assert not compatible("he", "PERSON", "female")
    assert not compatible("she", "PLACE", None)
    assert compatible("it", "OBJECT", None)
    assert not compatible("it", "PERSON", None)
    assert compatible("they", "FACTION", None)


def test_personal_pronoun_links_to_person():
    text = "Marcus drew his sword."
    links = PronounResolver().resolve_all(text, [_mention(text, "Marcus")])
    assert len(links) == 1
    assert links[0].pronoun == "his"
    assert links[0].antecedent == "Marcus"
    assert links[0].position == text.index("his")


def test_gender_mismatch_skips_nearer_candidate():
    text = "Marcus met Lady Elena. He smiled."
    mentions = [_mention(text, "Marcus"), _mention(text, "Elena")]
    links = PronounResolver().resolve_all(text, mentions)
    assert [(l.pronoun, l.antecedent) for l in links] == [("He", "Marcus")]


def test_neuter_pronoun_prefers_object():
    text = "Marcus found the Ember Blade. It glowed."
    mentions = [_mention(text, "Marcus"), _mention(text, "Ember Blade", "OBJECT")]
    links = PronounResolver().resolve_all(text, mentions)
    assert [(l.pronoun, l.antecedent) for l in links] == [("It", "Ember Blade")]


def test_recent_entities_from_earlier_turns():
    """Entities from previous turns stay resolvable."""
    resolver = PronounResolver([SnapshotEntry(name="Elena", type="PERSON", confidence=0.8)])
    links = resolver.resolve_all("She laughed.", [])
    assert [(l.pronoun, l.antecedent) for l in links] == [("She", "Elena")]


def test_no_candidate_no_link():
    assert PronounResolver().resolve_all("He laughed.", []) == []


def test_recency_capped():
    resolver = PronounResolver(size=2)
    text = "Ana, Bel and Cyr waited."
    resolver.refresh([_mention(text, "Ana"), _mention(text, "Bel"), _mention(text, "Cyr")])
    assert resolver.recency == ["Cyr", "Bel"]
