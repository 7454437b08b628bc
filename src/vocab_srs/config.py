"""Configuration constants and engine settings."""
import json
from dataclasses import dataclass, field, replace

from vocab_srs.db import get_connection
from vocab_srs.errors import ConfigurationError
from vocab_srs.models import QuestionType

DEFAULT_TIMEZONE = "UTC"

# Daily task
MAX_WORDS_PER_TASK = 20
SECONDS_PER_WORD = 45
DEFAULT_TYPE_WEIGHTS = {"fillBlank": 1.0, "multipleChoice": 1.0, "dictation": 1.0}

# Locking
LOCK_TIMEOUT_SECONDS = 5.0

# Dictation audio, filled by the speech collaborator
AUDIO_URL_TEMPLATE = "/audio/{word_id}.mp3"

# Progress
WEEKLY_WINDOW_DAYS = 7
CHART_WINDOW_DAYS = 90
RECENT_ACTIVITY_LIMIT = 10

# External weight keys in the order types are sampled
WEIGHT_KEYS = {
    "fillBlank": QuestionType.FILL_BLANK,
    "multipleChoice": QuestionType.MULTIPLE_CHOICE,
    "dictation": QuestionType.DICTATION,
}


@dataclass(frozen=True)
class SchedulerParams:
    """SM-2 constants. The thresholds are tunable, not fixed by the algorithm."""

    initial_ease: float = 2.5
    min_ease: float = 1.3
    max_ease: float = 2.7
    first_interval: int = 1
    second_interval: int = 6
    incorrect_ease_penalty: float = 0.2
    pass_quality: int = 3
    familiar_reviews: int = 3
    mastered_reviews: int = 6
    mastered_interval: int = 21


@dataclass(frozen=True)
class EngineConfig:
    max_words_per_task: int = MAX_WORDS_PER_TASK
    type_weights: dict = field(default_factory=lambda: dict(DEFAULT_TYPE_WEIGHTS))
    seconds_per_word: int = SECONDS_PER_WORD
    lock_timeout: float = LOCK_TIMEOUT_SECONDS
    audio_url_template: str = AUDIO_URL_TEMPLATE
    scheduler: SchedulerParams = field(default_factory=SchedulerParams)

    def validate(self) -> "EngineConfig":
        if self.max_words_per_task < 0:
            raise ConfigurationError("maxWordsPerTask must not be negative")
        if self.seconds_per_word <= 0:
            raise ConfigurationError("secondsPerWord must be positive")
        if self.lock_timeout <= 0:
            raise ConfigurationError("lock timeout must be positive")
        unknown = set(self.type_weights) - set(WEIGHT_KEYS)
        if unknown:
            raise ConfigurationError(f"Unknown type weight keys: {sorted(unknown)}")
        weights = [self.type_weights.get(key, 0) for key in WEIGHT_KEYS]
        if any(w < 0 for w in weights):
            raise ConfigurationError("typeWeights must not be negative")
        if sum(weights) <= 0:
            raise ConfigurationError("typeWeights must sum to a positive total")
        return self

    def normalized_weights(self) -> list[tuple[QuestionType, float]]:
        """Return (type, weight) pairs summing to 1, in fixed type order."""
        self.validate()
        total = sum(self.type_weights.get(key, 0) for key in WEIGHT_KEYS)
        return [
            (qtype, self.type_weights.get(key, 0) / total)
            for key, qtype in WEIGHT_KEYS.items()
        ]


def _int_setting(data: dict, key: str) -> int:
    try:
        return int(data[key])
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid {key}: {data[key]!r}") from e


def config_from_mapping(data: dict, base: EngineConfig = None) -> EngineConfig:
    """Build a config from the external camelCase keys, keeping unset values."""
    config = base or EngineConfig()
    changes = {}
    if "maxWordsPerTask" in data:
        changes["max_words_per_task"] = _int_setting(data, "maxWordsPerTask")
    if "typeWeights" in data:
        try:
            changes["type_weights"] = {k: float(v) for k, v in dict(data["typeWeights"]).items()}
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid typeWeights: {e}") from e
    if "secondsPerWord" in data:
        changes["seconds_per_word"] = _int_setting(data, "secondsPerWord")
    return replace(config, **changes).validate()


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def load_config(db_path: str) -> EngineConfig:
    """Load the engine config, applying any overrides saved in the settings table."""
    raw = get_setting(db_path, "engine_config")
    if not raw:
        return EngineConfig().validate()
    return config_from_mapping(json.loads(raw))


def save_config(db_path: str, config: EngineConfig) -> None:
    config.validate()
    set_setting(db_path, "engine_config", json.dumps({
        "maxWordsPerTask": config.max_words_per_task,
        "typeWeights": config.type_weights,
        "secondsPerWord": config.seconds_per_word,
    }))
