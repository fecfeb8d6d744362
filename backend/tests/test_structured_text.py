"""Tests for the structured-text document codec."""

from entity_scorer.models.document import Document, Ratio
from entity_scorer.utils.structured_text import (
    format_document,
    format_fields,
    parse_document,
    parse_fields,
    parse_value,
    to_snake_case,
    to_title_case,
)

_REGISTRY = """{# Entity Registry
// comment lines are ignored
## Person
Marcus: confidence=0.85, occurrences=3

## Dialogue Verbs
- said
- replied

## Relationships
| Subject | Relation | Object |
|---------|----------|--------|
| Marcus  | trusts   | Elena  |

## Metadata
Last Update: 12
Progress: 3/10
Rate: 50%
}"""


def test_parse_document_sections():
    """Key/value, list and table sections are all recognized."""
    doc = parse_document(_REGISTRY)
    assert doc.name == "Entity Registry"
    assert doc.sections["person"] == {"Marcus": "confidence=0.85, occurrences=3"}
    assert doc.sections["dialogue_verbs"] == ["said", "replied"]
    assert doc.sections["relationships"] == [
        {"subject": "Marcus", "relation": "trusts", "object": "Elena"},
    ]


def test_metadata_keys_snake_cased_and_typed():
    meta = parse_document(_REGISTRY).sections["metadata"]
    assert meta["last_update"] == 12
    assert meta["progress"] == Ratio(3, 10)
    assert meta["rate"] == 0.5


def test_malformed_input_is_empty_document():
    """Missing or unparseable text never raises."""
    assert parse_document(None).sections == {}
    assert parse_document("").sections == {}
    assert parse_document("just some prose without structure").sections == {}


def test_unwrapped_sections_still_parse():
    doc = parse_document("## Common Words\n- the\n- a")
    assert doc.sections == {"common_words": ["the", "a"]}


def test_format_then_parse_keeps_sections():
    doc = Document(name="Blacklist Database", sections={
        "learned_non_entities": {"shadow": "category=manual, confidence=0.90"},
        "merges": ["Kirto -> Kirito"],
        "metadata": {"last_update": 4, "total_entries": 1},
    })
    text = format_document(doc)
    assert text.startswith("{# Blacklist Database")
    assert "## Learned Non Entities" in text
    assert "Last Update: 4" in text

    parsed = parse_document(text)
    assert parsed.name == "Blacklist Database"
    assert parsed.sections == doc.sections


def test_parse_value_types():
    assert parse_value("true") is True
    assert parse_value("False") is False
    assert parse_value("-3") == -3
    assert parse_value("0.75") == 0.75
    assert parse_value("Elven Forest") == "Elven Forest"


def test_fields_codec():
    assert parse_fields("confidence=0.8, occurrences=5, category=manual") == {
        "confidence": 0.8, "occurrences": 5, "category": "manual",
    }
    assert parse_fields(None) == {}
    assert format_fields({"confidence": 0.8, "occurrences": 5, "seen": None}) == (
        "confidence=0.80, occurrences=5"
    )


def test_case_helpers():
    assert to_snake_case("Dialogue Verbs") == "dialogue_verbs"
    assert to_snake_case("place-types") == "place_types"
    assert to_title_case("noble_titles") == "Noble Titles"
