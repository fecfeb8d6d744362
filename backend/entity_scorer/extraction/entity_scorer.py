"""Per-turn entity detection pipeline.

Each output turn: detect spans, screen them, score the survivors with the
ensemble, then feed the accepted entities into the registry, associations,
n-gram model, learning loop and cross-reference trackers. Every sub-step
after detection is guarded so a failure only loses that step's updates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from entity_scorer.db.memory_store import DocumentStore
from entity_scorer.extraction.context_coherence import coherence_score
from entity_scorer.extraction.ensemble_scorer import EnsembleScorer
from entity_scorer.extraction.ngram_classifier import NgramClassifier
from entity_scorer.extraction.pattern_builder import PatternGroup, build_patterns
from entity_scorer.extraction.span_detector import (
    MultiWordDetector,
    SpanClaims,
    SpanMatch,
    StandardPatternMatcher,
    base_confidence,
    screen_candidate,
)
from entity_scorer.infra.config import ScoringConfig
from entity_scorer.models.entity import (
    Detection,
    Entity,
    HookResult,
    Rejection,
    SnapshotEntry,
    TurnResult,
)
from entity_scorer.services.association_tracker import AssociationTracker, choose_canonical
from entity_scorer.services.command_service import CommandService
from entity_scorer.services.cross_turn_tracker import CrossTurnTracker
from entity_scorer.services.entity_registry import EntityRegistry
from entity_scorer.services.learning_pipeline import LearningPipeline
from entity_scorer.services.pronoun_resolver import Mention, PronounResolver, gender_of
from entity_scorer.services.relationship_extractor import RelationshipExtractor
from entity_scorer.services.word_store import WordStore

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 10
ZERO_WIDTH_SPACE = "\u200b"


@dataclass
class TurnContext:
    """Everything one turn needs, built fresh for that turn."""

    store: DocumentStore
    words: WordStore
    word_lists: dict[str, tuple[str, ...]]
    patterns: dict[str, PatternGroup]
    turn: int = 0
    config: ScoringConfig = field(default_factory=ScoringConfig)

    @classmethod
    def build(cls, store: DocumentStore, turn: int = 0, config: ScoringConfig | None = None) -> TurnContext:
        words = WordStore(store, turn)
        words.initialize()
        word_lists = words.lists.snapshot()
        return cls(
            store=store,
            words=words,
            word_lists=word_lists,
            patterns=build_patterns(word_lists),
            turn=turn,
            config=config or ScoringConfig(),
        )


class EntityScorer:
    def __init__(self, ctx: TurnContext) -> None:
        self.ctx = ctx
        cfg = ctx.config
        self.registry = EntityRegistry(ctx.store, ctx.turn, aliases=ctx.words.aliases)
        self.associations = AssociationTracker(ctx.store, ctx.words, ctx.turn, cfg)
        self.ngrams = NgramClassifier(ctx.store, ctx.turn, cfg.ngram_min_confidence)
        self.history = CrossTurnTracker(ctx.store, ctx.turn, cfg)
        self.learning = LearningPipeline(ctx.words, ctx.turn, cfg)
        self.relationships = RelationshipExtractor(ctx.store, ctx.turn)
        self.ensemble = EnsembleScorer(cfg)
        self.detector = MultiWordDetector(ctx.word_lists)
        self.matcher = StandardPatternMatcher()

    # ── Scoring ──

    def _resolve_type(self, name: str, span: SpanMatch,
                      known: dict[str, Entity]) -> tuple[str, tuple[str, float] | None]:
        ngram = None
        try:
            ngram = self.ngrams.classify(name)
        except Exception:
            logger.warning("N-gram 分类失败: %s", name, exc_info=True)
        entity_type = span.entity_type
        if entity_type == "UNKNOWN":
            registered = known.get(name.lower())
            if registered is not None and registered.type != "UNKNOWN":
                entity_type = registered.type
            elif ngram is not None:
                entity_type = ngram[0]
        return entity_type, ngram

    def _score(self, text: str, name: str, span: SpanMatch, entity_type: str,
               ngram: tuple[str, float] | None, pattern_confidence: float) -> tuple[float, dict[str, float]]:
        association_boost = None
        try:
            if self.associations.get_associations(name, entity_type):
                association_boost = self.associations.boost(text, name, entity_type)
        except Exception:
            logger.warning("关联词加成计算失败: %s", name, exc_info=True)
        context = coherence_score(
            text, span.start, span.end, entity_type, self.ctx.word_lists,
            self.ctx.words.roles.all_words(),
        )
        return self.ensemble.score(
            pattern_confidence,
            entity_type,
            context,
            ngram=ngram,
            association_boost=association_boost,
            appearances=self.history.appearances(name, self.ctx.config.frequency_window),
        )

    # ── Pipeline ──

    def process(self, text: str) -> TurnResult:
        result = TurnResult(turn=self.ctx.turn)
        if not text or len(text.strip()) < MIN_TEXT_LENGTH:
            return result

        known_entities = self.registry.all()
        known = {e.name.lower(): e for e in known_entities}
        try:
            self.ngrams.bootstrap(known_entities)
        except Exception:
            logger.warning("N-gram 模型冷启动失败", exc_info=True)

        claims = SpanClaims()
        common = self.ctx.words.lists.get_set("common_words")
        accepted: dict[str, Detection] = {}
        mentions: list[Mention] = []

        try:
            multi = self.detector.detect(text)
        except Exception:
            logger.warning("多词实体检测失败", exc_info=True)
            multi = []

        for spans in (multi, self.matcher.scan(text, self.ctx.patterns, common)):
            for span in spans:
                reason = screen_candidate(
                    span.name, text, span.start, span.end, claims,
                    self.ctx.words.is_blacklisted, common,
                )
                if reason is not None:
                    if reason != "overlap":
                        result.rejections.append(Rejection(name=span.name, reason=reason))
                    continue
                self._accept(text, span, known, claims, accepted, mentions, result)

        result.entities = list(accepted.values())
        self._after_detection(text, result, known_entities, mentions)
        return result

    def _accept(self, text: str, span: SpanMatch, known: dict[str, Entity], claims: SpanClaims,
                accepted: dict[str, Detection], mentions: list[Mention], result: TurnResult) -> None:
        common = self.ctx.words.lists.get_set("common_words")
        pattern_confidence = base_confidence(span.base_confidence, span.name, text, span.start, common)
        name = self.registry.canonical(span.name)
        entity_type, ngram = self._resolve_type(name, span, known)
        score, signals = self._score(text, name, span, entity_type, ngram, pattern_confidence)
        if score < self.ctx.config.confidence_threshold:
            result.rejections.append(Rejection(name=span.name, reason="low_confidence", confidence=score))
            return

        claims.claim(span.start, span.end)
        mentions.append(Mention(name, entity_type, span.start, span.end, gender_of(text, span.start)))
        existing = accepted.get(name.lower())
        if existing is not None:
            existing.confidence = max(existing.confidence, score)
            existing.occurrences += 1
            return

        detection = Detection(
            name=name,
            type=entity_type,
            start=span.start,
            end=span.end,
            pattern=span.pattern,
            base_confidence=pattern_confidence,
            context=span.context,
            confidence=score,
            signals=signals,
        )
        accepted[name.lower()] = detection
        logger.debug("接受实体: %s (%s) %.2f %s", name, entity_type, score, signals)

        try:
            self.associations.track(text, name, entity_type, span.start)
        except Exception:
            logger.warning("关联词记录失败: %s", name, exc_info=True)
        try:
            surface = detection.model_copy(update={"name": span.name})
            self.learning.learn_from_detection(text, surface)
        except Exception:
            logger.warning("候选词学习失败: %s", name, exc_info=True)

    def _after_detection(self, text: str, result: TurnResult, known_entities: list[Entity],
                         mentions: list[Mention]) -> None:
        detections = result.entities
        known_by_name = {e.name.lower(): e for e in known_entities}

        try:
            for detection in detections:
                registered = known_by_name.get(detection.name.lower())
                current = Entity(
                    name=detection.name,
                    type=detection.type,
                    confidence=detection.confidence,
                    occurrences=detection.occurrences + (registered.occurrences if registered else 0),
                )
                for other, score in self.associations.find_similar(detection.name, known_entities):
                    canonical, merged = choose_canonical(current, other)
                    if self.associations.merge(canonical, merged, score):
                        result.merges.append((merged.name, canonical.name))
        except Exception:
            logger.warning("相似实体合并失败", exc_info=True)

        try:
            self.learning.record_rejections(result.rejections)
        except Exception:
            logger.warning("黑名单学习失败", exc_info=True)

        try:
            self.learning.observe_non_entities(
                text, [d.name for d in detections], [e.name for e in known_entities],
            )
        except Exception:
            logger.warning("非实体观察失败", exc_info=True)

        if not detections:
            self._record_history([])
            return

        try:
            self.registry.upsert([
                Entity(name=d.name, type=d.type, confidence=d.confidence, occurrences=d.occurrences)
                for d in detections
            ])
        except Exception:
            logger.warning("实体登记失败", exc_info=True)

        try:
            for detection in detections:
                self.ngrams.train(detection.name, detection.type)
            self.ngrams.save()
        except Exception:
            logger.warning("N-gram 训练失败", exc_info=True)

        try:
            resolver = PronounResolver(
                self.history.recent_entities(self.ctx.config.pronoun_lookback),
                size=self.ctx.config.pronoun_lookback,
            )
            result.pronoun_links = resolver.resolve_all(text, mentions)
        except Exception:
            logger.warning("代词消解失败", exc_info=True)

        try:
            names = self.registry.names() | {d.name for d in detections}
            result.relationships = self.relationships.extract(text, names, result.pronoun_links)
        except Exception:
            logger.warning("关系抽取失败", exc_info=True)

        self._record_history(detections)

    def _record_history(self, detections: list[Detection]) -> None:
        try:
            self.history.record(self.ctx.turn, [
                SnapshotEntry(name=d.name, type=d.type, confidence=d.confidence) for d in detections
            ])
        except Exception:
            logger.warning("回合快照保存失败", exc_info=True)


def process_hook(
    hook: str,
    text: str,
    store: DocumentStore,
    turn: int = 0,
    config: ScoringConfig | None = None,
) -> HookResult:
    """Entry point for one hook invocation. Never raises; failures return ``text``."""
    try:
        if hook == "output":
            ctx = TurnContext.build(store, turn, config)
            return HookResult(text=text, result=EntityScorer(ctx).process(text))
        if hook == "input":
            ctx = TurnContext.build(store, turn, config)
            message = CommandService(ctx).handle(text)
            if message is not None:
                return HookResult(text=ZERO_WIDTH_SPACE, message=message)
        return HookResult(text=text)
    except Exception:
        logger.warning("钩子处理失败，返回原文: %s", hook, exc_info=True)
        return HookResult(text=text)
