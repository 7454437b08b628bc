import random
from datetime import datetime, timedelta, timezone

import pytest

from vocab_srs.db import init_db
from vocab_srs.service import LearningEngine


class FixedClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, **kwargs) -> None:
        self.now += timedelta(days=days, **kwargs)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_vocab.db")
    return db_path


@pytest.fixture
def ready_db(tmp_db):
    init_db(tmp_db)
    return tmp_db


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def engine(tmp_db, clock):
    return LearningEngine(tmp_db, clock=clock, rng_factory=lambda user_id, day: random.Random(42))


def add_words(engine, user_id, words):
    """Add (text, definition) pairs; word ids are the lowercased text."""
    for text, definition in words:
        engine.on_word_added(user_id, text.lower(), text, definition)


ANIMALS = [
    ("cat", "a small domesticated feline"),
    ("dog", "a loyal domesticated canine"),
    ("horse", "a large animal used for riding"),
    ("sheep", "a woolly farm animal"),
    ("goat", "a horned farm animal"),
]
