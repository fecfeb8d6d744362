"""Persisted word lists, blacklists, roles, aliases and learning candidates.

Each collection lives in one ``[DATABASE]`` document. Lookups never raise: a
missing or malformed document is seeded from the defaults on first use and
otherwise behaves as an empty collection.
"""

from __future__ import annotations

import logging
from typing import Any

from entity_scorer.db.memory_store import DocumentStore, read_document, write_document
from entity_scorer.models.document import Document
from entity_scorer.models.entity import BlacklistEntry, Candidate
from entity_scorer.utils.default_documents import (
    ALIASES_DOC,
    BLACKLISTS_DOC,
    CANDIDATES_DOC,
    DEFAULT_DOCUMENTS,
    LISTS_DOC,
    ROLES_DOC,
)
from entity_scorer.utils.structured_text import (
    METADATA_SECTION,
    format_fields,
    parse_document,
    parse_fields,
    to_snake_case,
)
from entity_scorer.utils.text_utils import context_digest

logger = logging.getLogger(__name__)

STATIC_SECTION = "static_blacklist"
LEARNED_NON_ENTITIES = "learned_non_entities"
LEARNED_NON_ROLES = "learned_non_roles"
PENDING_SECTION = "pending_non_entities"
LEARNED_SECTIONS = (LEARNED_NON_ENTITIES, LEARNED_NON_ROLES)

NON_ENTITY_SUFFIXES = ("ness", "ment", "tion", "ity", "ance", "ence")
GENERIC_ROLE_WORDS = frozenset({
    "person", "people", "thing", "things", "someone", "something", "anyone", "everyone",
})

# Candidate category -> word list it is promoted into
CATEGORY_LISTS: dict[str, str] = {
    "dialogue_verb": "dialogue_verbs",
    "action_verb": "action_verbs",
    "place_type": "place_types",
    "object_type": "object_types",
    "faction_type": "faction_types",
    "noble_title": "noble_titles",
    "arrival_verb": "arrival_verbs",
    "departure_verb": "departure_verbs",
}
LIST_CATEGORIES: dict[str, str] = {list_name: category for category, list_name in CATEGORY_LISTS.items()}
# Categories whose words are capitalized in their lists
_CAPITALIZED_CATEGORIES = frozenset({"place_type", "object_type", "faction_type", "noble_title"})

DEFAULT_PROMOTION_THRESHOLD = 0.75
DEFAULT_MIN_OCCURRENCES = 4
DEFAULT_MIN_CONTEXTS = 3
_MAX_DIGESTS = 8


def _split_names(value: Any) -> list[str]:
    if not isinstance(value, str):
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


class _DocumentCollection:
    """One parsed ``[DATABASE]`` document, cached for the lifetime of the object."""

    doc_name = ""

    def __init__(self, store: DocumentStore, turn: int = 0) -> None:
        self.store = store
        self.turn = turn
        self._doc: Document | None = None

    def _load(self) -> Document:
        if self._doc is None:
            if not self.store.exists(self.doc_name) and self.doc_name in DEFAULT_DOCUMENTS:
                logger.debug("文档缺失，写入默认内容: %s", self.doc_name)
                self.store.add(self.doc_name, DEFAULT_DOCUMENTS[self.doc_name])
            self._doc = read_document(self.store, self.doc_name)
        return self._doc

    def _save(self, doc: Document) -> bool:
        doc.metadata()["last_update"] = self.turn
        self._update_totals(doc)
        return write_document(self.store, self.doc_name, doc)

    def _update_totals(self, doc: Document) -> None:
        pass

    def _data_sections(self, doc: Document) -> list[tuple[str, dict[str, Any]]]:
        return [
            (key, value) for key, value in doc.sections.items()
            if key != METADATA_SECTION and isinstance(value, dict)
        ]

    def reload(self) -> None:
        self._doc = None


# ── Word lists ─────────────────────────────────────


class WordLists(_DocumentCollection):
    doc_name = LISTS_DOC
    # Set by the Candidates collection sharing this list document
    candidates: Candidates | None = None

    def get(self, list_name: str) -> list[str]:
        value = self._load().sections.get(to_snake_case(list_name))
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if not isinstance(item, dict)]

    def get_set(self, list_name: str) -> set[str]:
        """Lower-cased membership set."""
        return {item.lower() for item in self.get(list_name)}

    def contains(self, list_name: str, word: str) -> bool:
        return word.lower() in self.get_set(list_name)

    def names(self) -> list[str]:
        return [
            key for key, value in self._load().sections.items()
            if key != METADATA_SECTION and isinstance(value, list)
        ]

    def snapshot(self) -> dict[str, tuple[str, ...]]:
        return {name: tuple(self.get(name)) for name in self.names()}

    def add(self, list_name: str, items: str | list[str]) -> list[str]:
        """Append words not already present. Returns the words actually added."""
        if isinstance(items, str):
            items = [items]
        doc = self._load()
        section = doc.list_section(to_snake_case(list_name))
        existing = {str(item).lower() for item in section}
        added = []
        for item in items:
            item = item.strip()
            if item and item.lower() not in existing:
                section.append(item)
                existing.add(item.lower())
                added.append(item)
        if added:
            self._save(doc)
            category = LIST_CATEGORIES.get(to_snake_case(list_name))
            if category is not None and self.candidates is not None:
                self.candidates.discard(category, added)
        return added

    def remove(self, list_name: str, items: str | list[str]) -> list[str]:
        if isinstance(items, str):
            items = [items]
        key = to_snake_case(list_name)
        doc = self._load()
        if not isinstance(doc.sections.get(key), list):
            return []
        targets = {item.strip().lower() for item in items}
        section = doc.list_section(key)
        removed = [str(item) for item in section if str(item).lower() in targets]
        if removed:
            doc.sections[key] = [item for item in section if str(item).lower() not in targets]
            self._save(doc)
        return removed

    def _update_totals(self, doc: Document) -> None:
        doc.metadata()["total_words"] = sum(
            len(value) for key, value in doc.sections.items()
            if key != METADATA_SECTION and isinstance(value, list)
        )


# ── Blacklists ─────────────────────────────────────


class Blacklists(_DocumentCollection):
    doc_name = BLACKLISTS_DOC

    def _entry(self, section: str, word: str, raw: Any) -> BlacklistEntry:
        fields = parse_fields(raw)
        if section == STATIC_SECTION:
            return BlacklistEntry(
                word=word, category=str(fields.get("category", "static")), static=True,
            )
        return BlacklistEntry(
            word=word,
            category=str(fields.get("category", "unknown")),
            confidence=float(fields.get("confidence", 0.5)),
            occurrences=int(fields.get("occurrences", 1)),
            last_seen=int(fields.get("last_seen", 0)),
        )

    def find(self, word: str) -> tuple[str, BlacklistEntry] | None:
        """Locate a word in the static, learned or pending tables."""
        key = word.lower()
        doc = self._load()
        for section in (STATIC_SECTION, *LEARNED_SECTIONS, PENDING_SECTION):
            table = doc.sections.get(section)
            if isinstance(table, dict) and key in table:
                return section, self._entry(section, key, table[key])
        return None

    def get(self, word: str) -> BlacklistEntry | None:
        found = self.find(word)
        return found[1] if found else None

    def entries(self, section: str | None = None) -> list[BlacklistEntry]:
        doc = self._load()
        sections = [section] if section else [STATIC_SECTION, *LEARNED_SECTIONS]
        result = []
        for name in sections:
            table = doc.sections.get(name)
            if isinstance(table, dict):
                result.extend(self._entry(name, word, raw) for word, raw in table.items())
        return result

    def put(self, section: str, entry: BlacklistEntry) -> bool:
        """Write an entry into a learned or pending table, moving it out of the others."""
        if section == STATIC_SECTION:
            return False
        key = entry.word.lower()
        doc = self._load()
        if isinstance(doc.sections.get(STATIC_SECTION), dict) and key in doc.sections[STATIC_SECTION]:
            return False
        for other in (*LEARNED_SECTIONS, PENDING_SECTION):
            if other != section and isinstance(doc.sections.get(other), dict):
                doc.sections[other].pop(key, None)
        doc.section(section)[key] = format_fields({
            "category": entry.category,
            "confidence": round(entry.confidence, 2),
            "occurrences": entry.occurrences,
            "last_seen": entry.last_seen,
        })
        return self._save(doc)

    def add(self, word: str, category: str = "manual", confidence: float = 1.0) -> bool:
        """Directly blacklist a word in the learned table."""
        section = LEARNED_NON_ROLES if "role" in category else LEARNED_NON_ENTITIES
        existing = self.get(word)
        occurrences = existing.occurrences + 1 if existing and not existing.static else 1
        return self.put(section, BlacklistEntry(
            word=word, category=category, confidence=confidence,
            occurrences=occurrences, last_seen=self.turn,
        ))

    def is_static(self, word: str) -> bool:
        table = self._load().sections.get(STATIC_SECTION)
        return isinstance(table, dict) and word.lower() in table

    def is_blacklisted(self, word: str, min_confidence: float = 0.7) -> bool:
        if not word:
            return False
        if self.is_static(word):
            return True
        lowered = word.lower()
        doc = self._load()
        for section in LEARNED_SECTIONS:
            table = doc.sections.get(section)
            if isinstance(table, dict) and lowered in table:
                if self._entry(section, lowered, table[lowered]).confidence >= min_confidence:
                    return True
        for suffix in NON_ENTITY_SUFFIXES:
            if lowered.endswith(suffix) and len(lowered) > len(suffix) + 3:
                return True
        return False

    def _update_totals(self, doc: Document) -> None:
        doc.metadata()["total_entries"] = sum(
            len(value) for key, value in self._data_sections(doc) if key != PENDING_SECTION
        )


# ── Roles ──────────────────────────────────────────


class Roles(_DocumentCollection):
    doc_name = ROLES_DOC

    def __init__(self, store: DocumentStore, turn: int = 0,
                 word_lists: WordLists | None = None,
                 blacklists: Blacklists | None = None) -> None:
        super().__init__(store, turn)
        self.word_lists = word_lists
        self.blacklists = blacklists

    def groups(self) -> list[list[str]]:
        """Every role as ``[role, *synonyms]``."""
        return [
            [role, *_split_names(synonyms)]
            for _, section in self._data_sections(self._load())
            for role, synonyms in section.items()
        ]

    def all_words(self) -> set[str]:
        return {word.lower() for group in self.groups() for word in group}

    def get_synonyms(self, role: str) -> list[str]:
        lowered = role.lower()
        for group in self.groups():
            if lowered in (word.lower() for word in group):
                return group
        return [role]

    def is_defined(self, word: str) -> bool:
        return word.lower() in self.all_words()

    def is_valid_role(self, word: str) -> bool:
        if len(word) < 3 or word.isdigit():
            return False
        if self.blacklists is not None and self.blacklists.is_blacklisted(word):
            return False
        lowered = word.lower()
        if lowered in GENERIC_ROLE_WORDS:
            return False
        if self.word_lists is not None and lowered in self.word_lists.get_set("non_role_words"):
            return False
        return self.is_defined(word)

    def add(self, category: str, role: str, synonyms: list[str] | None = None) -> bool:
        doc = self._load()
        section = doc.section(to_snake_case(category))
        key = role.lower().strip()
        if not key:
            return False
        merged = list(dict.fromkeys(
            [*_split_names(section.get(key)), *(s.lower().strip() for s in synonyms or [] if s.strip())]
        ))
        section[key] = ", ".join(merged)
        return self._save(doc)

    def _update_totals(self, doc: Document) -> None:
        doc.metadata()["total_roles"] = sum(len(value) for _, value in self._data_sections(doc))


# ── Aliases ────────────────────────────────────────


class Aliases(_DocumentCollection):
    doc_name = ALIASES_DOC

    def groups(self) -> list[list[str]]:
        return [
            [primary, *_split_names(aliases)]
            for _, section in self._data_sections(self._load())
            for primary, aliases in section.items()
        ]

    def get(self, name: str) -> list[str]:
        """``[primary, *aliases]`` of the group containing ``name``, else ``[name]``."""
        lowered = name.lower()
        for group in self.groups():
            if any(item.lower() == lowered for item in group):
                return group
        return [name]

    def canonical(self, name: str) -> str:
        return self.get(name)[0]

    def add(self, category: str, primary: str, aliases: list[str]) -> bool:
        primary = primary.strip()
        if not primary:
            return False
        doc = self._load()
        section = doc.section(to_snake_case(category))
        merged = list(dict.fromkeys(
            [*_split_names(section.get(primary)), *(a.strip() for a in aliases if a.strip())]
        ))
        section[primary] = ", ".join(merged)
        return self._save(doc)

    def _update_totals(self, doc: Document) -> None:
        doc.metadata()["total_aliases"] = sum(len(value) for _, value in self._data_sections(doc))


# ── Candidates ─────────────────────────────────────


class Candidates(_DocumentCollection):
    doc_name = CANDIDATES_DOC

    def __init__(self, store: DocumentStore, turn: int = 0,
                 word_lists: WordLists | None = None) -> None:
        super().__init__(store, turn)
        self.word_lists = word_lists or WordLists(store, turn)
        self.word_lists.candidates = self

    @staticmethod
    def _section_key(category: str) -> str:
        return to_snake_case(f"{category} candidates")

    @staticmethod
    def normalize(category: str, word: str) -> str:
        word = word.strip()
        if category in _CAPITALIZED_CATEGORIES:
            return word[:1].upper() + word[1:].lower()
        return word.lower()

    def thresholds(self) -> tuple[float, int, int]:
        meta = self._load().metadata()
        try:
            threshold = float(meta.get("promotion_threshold") or DEFAULT_PROMOTION_THRESHOLD)
            min_occurrences = int(meta.get("min_occurrences") or DEFAULT_MIN_OCCURRENCES)
            min_contexts = int(meta.get("min_contexts") or DEFAULT_MIN_CONTEXTS)
        except (TypeError, ValueError):
            return DEFAULT_PROMOTION_THRESHOLD, DEFAULT_MIN_OCCURRENCES, DEFAULT_MIN_CONTEXTS
        return threshold, min_occurrences, min_contexts

    def _candidate(self, category: str, word: str, raw: Any) -> Candidate:
        fields = parse_fields(raw)
        seen = fields.get("seen")
        return Candidate(
            category=category,
            word=word,
            confidence=float(fields.get("confidence", 0.5)),
            occurrences=int(fields.get("occurrences", 0)),
            contexts=int(fields.get("contexts", 0)),
            digests=str(seen).split() if seen is not None else [],
        )

    def get(self, category: str, word: str) -> Candidate | None:
        section = self._load().sections.get(self._section_key(category))
        key = self.normalize(category, word)
        if not isinstance(section, dict) or key not in section:
            return None
        return self._candidate(category, key, section[key])

    def get_all(self, category: str | None = None) -> list[Candidate]:
        result = []
        for key, section in self._data_sections(self._load()):
            if not key.endswith("_candidates"):
                continue
            cat = key[: -len("_candidates")]
            if category and cat != category:
                continue
            result.extend(self._candidate(cat, word, raw) for word, raw in section.items())
        return sorted(result, key=lambda c: c.confidence, reverse=True)

    def track(self, category: str, word: str, context: str = "",
              confidence: float = 0.5) -> Candidate | None:
        """Record one sighting. Returns the candidate, or None once it is in its list."""
        list_name = CATEGORY_LISTS.get(category)
        if list_name is None or not word.strip():
            return None
        key = self.normalize(category, word)
        if self.word_lists.contains(list_name, key):
            return None

        candidate = self.get(category, key) or Candidate(
            category=category, word=key, confidence=confidence,
        )
        candidate.occurrences += 1
        candidate.confidence = max(candidate.confidence, min(1.0, confidence))
        if context:
            digest = context_digest(context)
            if digest not in candidate.digests:
                candidate.contexts += 1
                candidate.digests = (candidate.digests + [digest])[-_MAX_DIGESTS:]

        threshold, min_occurrences, min_contexts = self.thresholds()
        doc = self._load()
        section = doc.section(self._section_key(category))
        if (candidate.confidence >= threshold
                and candidate.occurrences >= min_occurrences
                and candidate.contexts >= min_contexts):
            section.pop(key, None)
            self._save(doc)
            self.word_lists.add(list_name, key)
            logger.info("候选词晋升: %s -> %s", key, list_name)
            return None

        section[key] = format_fields({
            "confidence": round(candidate.confidence, 2),
            "occurrences": candidate.occurrences,
            "contexts": candidate.contexts,
            "seen": " ".join(candidate.digests) or None,
        })
        self._save(doc)
        return candidate

    def discard(self, category: str, words: list[str]) -> list[str]:
        """Drop candidates whose words now sit in the category's list."""
        doc = self._load()
        section = doc.sections.get(self._section_key(category))
        if not isinstance(section, dict):
            return []
        dropped = [
            key for key in dict.fromkeys(self.normalize(category, w) for w in words)
            if section.pop(key, None) is not None
        ]
        if dropped:
            self._save(doc)
            logger.debug("移除已入列的候选词: %s (%s)", ", ".join(dropped), category)
        return dropped

    def promote(self, category: str, word: str) -> bool:
        """Force a candidate into its list regardless of thresholds."""
        list_name = CATEGORY_LISTS.get(category)
        if list_name is None:
            return False
        key = self.normalize(category, word)
        doc = self._load()
        section = doc.sections.get(self._section_key(category))
        if isinstance(section, dict) and key in section:
            del section[key]
            self._save(doc)
        self.word_lists.add(list_name, key)
        return self.word_lists.contains(list_name, key)


# ── Facade ─────────────────────────────────────────


class WordStore:
    """All ``[DATABASE]`` collections over one document store."""

    def __init__(self, store: DocumentStore, turn: int = 0) -> None:
        self.store = store
        self.turn = turn
        self.lists = WordLists(store, turn)
        self.blacklists = Blacklists(store, turn)
        self.roles = Roles(store, turn, word_lists=self.lists, blacklists=self.blacklists)
        self.aliases = Aliases(store, turn)
        self.candidates = Candidates(store, turn, word_lists=self.lists)

    def initialize(self) -> list[str]:
        """Seed every missing or unreadable database document. Returns the seeded names."""
        seeded = []
        for name, body in DEFAULT_DOCUMENTS.items():
            current = self.store.get(name)
            if current is not None and parse_document(current).sections:
                continue
            if current is None:
                self.store.add(name, body)
            else:
                self.store.update(name, body)
            seeded.append(name)
        if seeded:
            logger.info("初始化词库文档: %s", ", ".join(seeded))
            for collection in (self.lists, self.blacklists, self.roles, self.aliases, self.candidates):
                collection.reload()
        return seeded

    def is_blacklisted(self, word: str, min_confidence: float = 0.7) -> bool:
        return self.blacklists.is_blacklisted(word, min_confidence)

    def is_common(self, word: str) -> bool:
        lowered = word.lower()
        return lowered in self.lists.get_set("common_words") or lowered in self.lists.get_set("minor_words")
