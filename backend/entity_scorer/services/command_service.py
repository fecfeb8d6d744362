"""Operator slash-commands driven by the input hook.

Every command goes through the same store objects the pipeline uses. A
handled command returns the message to show; anything else returns None and
the input text passes through untouched.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Callable

from entity_scorer.db.memory_store import remove_documents
from entity_scorer.extraction.pattern_builder import PATTERN_LISTS
from entity_scorer.services.association_tracker import AssociationTracker
from entity_scorer.services.entity_registry import EntityRegistry
from entity_scorer.services.learning_pipeline import LearningPipeline
from entity_scorer.services.relationship_extractor import RelationshipExtractor
from entity_scorer.services.word_store import (
    CATEGORY_LISTS,
    LEARNED_SECTIONS,
    STATIC_SECTION,
)
from entity_scorer.utils.default_documents import ASSOCIATIONS_DOC
from entity_scorer.utils.structured_text import to_snake_case, to_title_case

if TYPE_CHECKING:
    from entity_scorer.extraction.entity_scorer import TurnContext

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Entity Scoring Module Commands:\n\n"
    "Word Lists:\n"
    "  /list - Show all word lists\n"
    "  /list show <name> - Show specific list contents\n"
    "  /list add <name> word1, word2 - Add words to list\n"
    "  /list remove <name> word1, word2 - Remove words\n\n"
    "Patterns:\n"
    "  /patterns - Show pattern info and word counts\n\n"
    "Candidates:\n"
    "  /candidates - Show words being tracked for promotion\n"
    "  /candidates promote <category> <word> - Force promotion\n\n"
    "Entity Management:\n"
    "  /entities - List all detected entities\n"
    "  /entities clear - Clear entity registry\n"
    "  /relationships - List tracked relationships\n\n"
    "Associations:\n"
    "  /associations - Show entity word associations\n"
    "  /associations <entity> - Show associations for specific entity\n\n"
    "Other:\n"
    "  /blacklist - List all blacklisted words\n"
    "  /blacklist add <word> [category] - Add to blacklist\n"
    "  /blacklist check <word> - Check if blacklisted\n"
    "  /role add <category> <role> \"synonyms\" - Add role\n"
    "  /role check <word> - Check if valid role\n"
    "  /alias add <category> <primary> \"alias1, alias2\" - Add aliases\n"
    "  /alias check <name> - Show known aliases"
)

PATTERN_INFO = {
    "person_dialogue": ("dialogue_verbs", "Detects speakers in dialogue"),
    "person_action": ("action_verbs", "Detects actors performing actions"),
    "person_titled": ("noble_titles", "Detects titled individuals"),
    "place_with_type": ("place_types", "Detects named locations"),
    "place_arrival": ("arrival_verbs", "Detects arrival destinations"),
    "object_with_type": ("object_types", "Detects named objects"),
    "faction_guild": ("faction_types", "Detects organizations"),
}


def _split_items(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _title(key: str) -> str:
    return to_title_case(key)


class CommandService:
    def __init__(self, ctx: TurnContext) -> None:
        self.ctx = ctx
        self.words = ctx.words
        self.registry = EntityRegistry(ctx.store, ctx.turn, aliases=ctx.words.aliases)
        self.associations = AssociationTracker(ctx.store, ctx.words, ctx.turn, ctx.config)
        self.learning = LearningPipeline(ctx.words, ctx.turn, ctx.config)
        self._routes: list[tuple[re.Pattern, Callable[[str], str | None]]] = [
            (re.compile(r"^/(?:help\s+entity|entity\s+help)$", re.IGNORECASE), lambda _: HELP_TEXT),
            (re.compile(r"^/associations?\s*(.*)$", re.IGNORECASE), self._associations),
            (re.compile(r"^/list\s*(.*)$", re.IGNORECASE), self._lists),
            (re.compile(r"^/patterns?\s*(.*)$", re.IGNORECASE), self._patterns),
            (re.compile(r"^/blacklist\s*(.*)$", re.IGNORECASE), self._blacklist),
            (re.compile(r"^/roles?\s+(.*)$", re.IGNORECASE), self._roles),
            (re.compile(r"^/alias(?:es)?\s+(.*)$", re.IGNORECASE), self._aliases),
            (re.compile(r"^/entit(?:y|ies)\s*(.*)$", re.IGNORECASE), self._entities),
            (re.compile(r"^/candidates?\s*(.*)$", re.IGNORECASE), self._candidates),
            (re.compile(r"^/relationships?\s*$", re.IGNORECASE), self._relationships),
        ]

    def handle(self, text: str) -> str | None:
        if not text or not text.strip().startswith("/"):
            return None
        command = text.strip()
        for pattern, handler in self._routes:
            m = pattern.match(command)
            if m:
                message = handler(m.group(1).strip() if m.groups() else "")
                if message is not None:
                    logger.info("执行命令: %s", command.split()[0])
                return message
        return None

    # ── Word lists ──

    def _lists(self, sub: str) -> str | None:
        lists = self.words.lists
        if not sub or sub == "show":
            lines = ["Available Word Lists:", ""]
            for name in lists.names():
                lines.append(f"{_title(name)} ({len(lists.get(name))} items)")
            lines += [
                "",
                "Use /list show <name> to see items",
                "Use /list add <name> word1, word2, ...",
                "Use /list remove <name> word1, word2, ...",
            ]
            return "\n".join(lines)
        m = re.match(r"^show\s+(\w+)$", sub)
        if m:
            name = to_snake_case(m.group(1))
            items = lists.get(name)
            if not items:
                return f'List "{name}" is empty or doesn\'t exist'
            return f"{_title(name)}:\n" + "\n".join(f"- {item}" for item in items)
        m = re.match(r"^add\s+(\w+)\s+(.+)$", sub)
        if m:
            name = to_snake_case(m.group(1))
            added = lists.add(name, _split_items(m.group(2)))
            return f"Added {len(added)} item(s) to {name}"
        m = re.match(r"^remove\s+(\w+)\s+(.+)$", sub)
        if m:
            name = to_snake_case(m.group(1))
            removed = lists.remove(name, _split_items(m.group(2)))
            return f"Removed {len(removed)} item(s) from {name}"
        return None

    def _patterns(self, sub: str) -> str | None:
        if sub and sub != "list":
            return None
        active = self.ctx.patterns
        lines = ["Entity Detection Patterns:", "", "Patterns are built dynamically from word lists.", ""]
        for key, (list_name, description) in PATTERN_INFO.items():
            status = "active" if key in active else "inactive (empty list)"
            lines.append(f"{key}: {description}")
            lines.append(f"  Words: {len(self.words.lists.get(list_name))} from {list_name}, {status}")
            lines.append("")
        lines.append("Use: /list add <list_name> word1, word2, ...")
        return "\n".join(lines)

    # ── Candidates ──

    def _candidates(self, sub: str) -> str | None:
        candidates = self.words.candidates
        if not sub or sub == "list":
            lines = ["Word Candidates (awaiting promotion):", ""]
            for category in CATEGORY_LISTS:
                tracked = candidates.get_all(category)
                if not tracked:
                    continue
                lines.append(f"{_title(category)}s:")
                for cand in tracked[:5]:
                    lines.append(
                        f"  {cand.word}: conf={cand.confidence:.2f}, "
                        f"seen={cand.occurrences}x, contexts={cand.contexts}"
                    )
                if len(tracked) > 5:
                    lines.append(f"  ... and {len(tracked) - 5} more")
                lines.append("")
            threshold, min_occurrences, min_contexts = candidates.thresholds()
            lines += [
                "Promotion Requirements:",
                f"  Confidence >= {threshold}",
                f"  Occurrences >= {min_occurrences}",
                f"  Contexts >= {min_contexts}",
            ]
            return "\n".join(lines)
        m = re.match(r"^promote\s+(\w+)\s+(\w+)", sub)
        if m:
            category, word = m.group(1), m.group(2)
            if candidates.promote(category, word):
                return f'Promoted "{word}" to {category} list'
            return f'Failed to promote "{word}"'
        return None

    # ── Entities and associations ──

    def _entities(self, sub: str) -> str | None:
        if not sub or sub == "list":
            entities = self.registry.all()
            if not entities:
                return "No entities registered yet."
            lines = ["Registered Entities:", ""]
            current = None
            for entity in entities:
                if entity.type != current:
                    if current is not None:
                        lines.append("")
                    current = entity.type
                    lines.append(f"{_title(entity.type.lower())}:")
                lines.append(
                    f"  {entity.name}: confidence={entity.confidence:.2f}, occurrences={entity.occurrences}"
                )
            return "\n".join(lines)
        if sub == "clear":
            self.registry.clear()
            remove_documents(self.ctx.store, [ASSOCIATIONS_DOC])
            return "Entity registry cleared."
        return None

    def _associations(self, sub: str) -> str | None:
        if not sub:
            entities = self.registry.all()
            lines = ["Entity Word Associations:", ""]
            found = False
            for entity in entities:
                stats = self.associations.stats(entity.name, entity.type)
                if not stats:
                    continue
                found = True
                words = ", ".join(f"{s.word}({s.count})" for s in stats.values())
                lines.append(f"  {entity.name} ({entity.type}): {words}")
            if not found:
                return "No entity associations tracked yet."
            return "\n".join(lines)

        entity = self.registry.get(sub)
        if entity is None:
            return f'Entity "{sub}" not found in registry.'
        associations = self.associations.get_associations(entity.name, entity.type)
        if not associations:
            return f'No associations tracked for "{entity.name}" yet.'
        lines = [f"Associations for {entity.name} ({entity.type}):", ""]
        lines += [f"  {a.word}: {a.count} occurrences" for a in associations]
        similar = self.associations.find_similar(entity.name, self.registry.all())
        if similar:
            lines += ["", "Similar entities:"]
            lines += [f"  {e.name} ({e.type}) - {score * 100:.1f}% similar" for e, score in similar]
        return "\n".join(lines)

    def _relationships(self, _: str) -> str:
        relationships = RelationshipExtractor(self.ctx.store, self.ctx.turn).all()
        if not relationships:
            return "No relationships tracked yet."
        lines = ["Tracked Relationships:", ""]
        for rel in sorted(relationships, key=lambda r: (-r.count, r.subject)):
            lines.append(
                f"  {rel.subject} -[{rel.relation}]-> {rel.object} "
                f"({rel.category}, seen={rel.count}x, conf={rel.confidence:.2f})"
            )
        return "\n".join(lines)

    # ── Blacklist, roles, aliases ──

    def _blacklist(self, sub: str) -> str | None:
        blacklists = self.words.blacklists
        m = re.match(r"^add\s+(\w+)(?:\s+(\w+))?", sub)
        if m:
            word, category = m.group(1), m.group(2) or "generic_noun"
            self.learning.update_blacklist(word, category, 0.9)
            return f'Added "{word}" to blacklist'
        m = re.match(r"^check\s+(\w+)", sub)
        if m:
            word = m.group(1)
            listed = self.words.is_blacklisted(word)
            lines = [f'"{word}" is {"BLACKLISTED" if listed else "NOT blacklisted"}']
            found = blacklists.find(word)
            if found is not None:
                section, entry = found
                lines += [
                    f"Section: {section}",
                    f"Category: {entry.category}",
                    f"Confidence: {entry.confidence}",
                    f"Occurrences: {entry.occurrences if not entry.static else 'permanent'}",
                ]
            return "\n".join(lines)
        if sub and sub != "list":
            return None

        lines = ["Blacklisted Words:", ""]
        static = blacklists.entries(STATIC_SECTION)
        if static:
            lines.append("=== Static (Built-in) ===")
            lines += [f"{e.word}: {e.category}" for e in static[:20]]
            if len(static) > 20:
                lines.append(f"... and {len(static) - 20} more")
            lines.append("")
        learned_any = False
        for section in LEARNED_SECTIONS:
            entries = sorted(blacklists.entries(section), key=lambda e: e.confidence, reverse=True)
            if not entries:
                continue
            learned_any = True
            lines.append(f"=== {_title(section)} ===")
            lines += [
                f"{e.word}: {e.category} (conf={e.confidence:.2f}, seen={e.occurrences}x)"
                for e in entries[:10]
            ]
            if len(entries) > 10:
                lines.append(f"... and {len(entries) - 10} more")
            lines.append("")
        if not learned_any:
            lines.append("No learned entries yet.")
        return "\n".join(lines)

    def _roles(self, sub: str) -> str | None:
        roles = self.words.roles
        m = re.match(r"^add\s+(\w+)\s+(\w+)\s+[\"“]([^\"”]+)[\"”]", sub)
        if m:
            category, role, synonyms = m.groups()
            roles.add(category, role, _split_items(synonyms))
            return f"Added role: {role}"
        m = re.match(r"^check\s+(\w+)", sub)
        if m:
            word = m.group(1)
            valid = roles.is_valid_role(word)
            lines = [f'"{word}" is {"a VALID role" if valid else "NOT a valid role"}']
            synonyms = roles.get_synonyms(word)
            if len(synonyms) > 1:
                lines.append(f"Synonyms: {', '.join(synonyms)}")
            return "\n".join(lines)
        return None

    def _aliases(self, sub: str) -> str | None:
        aliases = self.words.aliases
        m = re.match(r"^add\s+(\w+)\s+(.+?)\s+[\"“]([^\"”]+)[\"”]", sub)
        if m:
            category, primary, names = m.groups()
            aliases.add(category, primary, _split_items(names))
            return f"Added aliases for {primary}"
        m = re.match(r"^check\s+(.+)$", sub)
        if m:
            name = m.group(1).strip()
            group = aliases.get(name)
            if len(group) == 1:
                return f'No aliases known for "{name}"'
            return f"{group[0]}: {', '.join(group[1:])}"
        return None
