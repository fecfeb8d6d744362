"""Combine independent confidence signals into one score."""

from __future__ import annotations

from entity_scorer.infra.config import ScoringConfig

MAX_ASSOCIATION_BOOST = 0.2
FREQUENCY_STEP = 0.2


class EnsembleScorer:
    """Weighted mean over the signals that apply to a candidate.

    Pattern confidence and context coherence always apply. The n-gram signal
    applies only when the classifier commits to a type, the association
    signal only when the entity has stored associations, and the frequency
    signal only when the entity appeared in recent turns.
    """

    def __init__(self, config: ScoringConfig | None = None) -> None:
        self.config = config or ScoringConfig()

    def score(
        self,
        pattern_confidence: float,
        entity_type: str,
        context: float,
        ngram: tuple[str, float] | None = None,
        association_boost: float | None = None,
        appearances: int = 0,
    ) -> tuple[float, dict[str, float]]:
        cfg = self.config
        signals: dict[str, float] = {
            "pattern": pattern_confidence,
            "context": context,
        }
        weights: dict[str, float] = {
            "pattern": cfg.weight_pattern,
            "context": cfg.weight_context,
        }
        if ngram is not None:
            ngram_type, ngram_confidence = ngram
            signals["ngram"] = ngram_confidence if ngram_type == entity_type else 1.0 - ngram_confidence
            weights["ngram"] = cfg.weight_ngram
        if association_boost is not None:
            signals["association"] = min(1.0, max(0.0, association_boost) / MAX_ASSOCIATION_BOOST)
            weights["association"] = cfg.weight_association
        if appearances > 0:
            signals["frequency"] = min(1.0, appearances * FREQUENCY_STEP)
            weights["frequency"] = cfg.weight_frequency

        total_weight = sum(weights.values())
        if total_weight <= 0:
            return 0.0, signals
        combined = sum(signals[key] * weights[key] for key in signals) / total_weight
        return max(0.0, min(1.0, combined)), signals
