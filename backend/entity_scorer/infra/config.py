import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

DATA_DIR = Path(os.environ.get("ENTITY_SCORER_DATA_DIR", Path.home() / ".entity-scorer"))
DB_PATH = DATA_DIR / "entities.db"

# Opt-in debug logging; the engine never reports errors to end users.
DEBUG = os.environ.get("ENTITY_SCORER_DEBUG", "").lower() in ("1", "true", "yes")

CONFIDENCE_THRESHOLD = float(os.environ.get("ENTITY_CONFIDENCE_THRESHOLD", "0.4"))
SIMILARITY_THRESHOLD = float(os.environ.get("ENTITY_SIMILARITY_THRESHOLD", "0.85"))
BLACKLIST_MIN_CONFIDENCE = float(os.environ.get("ENTITY_BLACKLIST_MIN_CONFIDENCE", "0.7"))

# Turn snapshots kept in the history document, and the lookback used for
# the appearance-frequency signal.
HISTORY_WINDOW = int(os.environ.get("ENTITY_HISTORY_WINDOW", "20"))
FREQUENCY_WINDOW = int(os.environ.get("ENTITY_FREQUENCY_WINDOW", "10"))

WORD_ASSOCIATION_WINDOW = 30
MIN_ASSOCIATION_OCCURRENCES = 3
MIN_ASSOCIATION_STRENGTH = 0.3
MIN_LEARNING_CONFIDENCE = 0.6
NGRAM_MIN_CONFIDENCE = 0.6
PRONOUN_LOOKBACK = 10


class ScoringConfig(BaseModel):
    """Per-turn tunables. Defaults come from the module constants."""

    confidence_threshold: float = CONFIDENCE_THRESHOLD
    similarity_threshold: float = SIMILARITY_THRESHOLD
    blacklist_min_confidence: float = BLACKLIST_MIN_CONFIDENCE
    history_window: int = HISTORY_WINDOW
    frequency_window: int = FREQUENCY_WINDOW
    association_window: int = WORD_ASSOCIATION_WINDOW
    min_association_occurrences: int = MIN_ASSOCIATION_OCCURRENCES
    min_association_strength: float = MIN_ASSOCIATION_STRENGTH
    min_learning_confidence: float = MIN_LEARNING_CONFIDENCE
    ngram_min_confidence: float = NGRAM_MIN_CONFIDENCE
    pronoun_lookback: int = PRONOUN_LOOKBACK

    # Ensemble weights
    weight_pattern: float = 0.4
    weight_ngram: float = 0.2
    weight_association: float = 0.2
    weight_frequency: float = 0.1
    weight_context: float = 0.1


def ensure_data_dir() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
