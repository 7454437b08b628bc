import random
from datetime import date

import pytest

from vocab_srs import store
from vocab_srs.config import EngineConfig
from vocab_srs.db import transaction
from vocab_srs.errors import ConfigurationError
from vocab_srs.models import LearningRecord, QuestionType
from vocab_srs.tasks import build_daily_task, estimate_minutes, get_issued_task, get_or_build_task

DAY = date(2024, 1, 10)


def records(*word_ids):
    return [LearningRecord(user_id="u1", word_id=w, added_date=DAY, next_review_date=DAY) for w in word_ids]


@pytest.mark.parametrize("count, expected", [(0, 0), (1, 1), (3, 3), (4, 3), (20, 15)])
def test_estimate_minutes_rounds_up(count, expected):
    assert estimate_minutes(count, 45) == expected


def test_build_keeps_due_order_and_caps():
    config = EngineConfig(max_words_per_task=2)
    task = build_daily_task(records("kiwi", "apple", "pear"), "u1", DAY, config, random.Random(1))
    assert task.word_ids == ["kiwi", "apple"]
    assert task.estimated_minutes == 2
    assert task.task_id == "daily-2024-01-10"


def test_build_is_deterministic_for_a_seed():
    due = records(*[f"w{i}" for i in range(15)])
    first = build_daily_task(due, "u1", DAY, EngineConfig(), random.Random(7))
    second = build_daily_task(due, "u1", DAY, EngineConfig(), random.Random(7))
    assert first == second


def test_single_weighted_type_is_always_chosen():
    config = EngineConfig(type_weights={"fillBlank": 0, "multipleChoice": 0, "dictation": 1})
    task = build_daily_task(records("a", "b", "c"), "u1", DAY, config, random.Random(3))
    assert task.practice_types == [QuestionType.DICTATION]


def test_empty_due_set_gives_empty_task():
    task = build_daily_task([], "u1", DAY, EngineConfig(), random.Random(0))
    assert task.items == ()
    assert task.estimated_minutes == 0


def test_zero_max_words_gives_empty_task():
    task = build_daily_task(records("a"), "u1", DAY, EngineConfig(max_words_per_task=0), random.Random(0))
    assert task.words_count == 0


def test_bad_weights_raise_configuration_error():
    config = EngineConfig(type_weights={"fillBlank": 0, "multipleChoice": 0, "dictation": 0})
    with pytest.raises(ConfigurationError):
        build_daily_task(records("a"), "u1", DAY, config, random.Random(0))


def test_issued_task_is_stored_and_immutable(ready_db):
    with transaction(ready_db) as conn:
        for w in ("cat", "dog"):
            store.create_record(conn, "u1", w, DAY)
    assert get_issued_task(ready_db, "u1", DAY) is None

    first = get_or_build_task(ready_db, "u1", DAY, EngineConfig(), random.Random(1), "2024-01-10T09:00:00+00:00")
    assert first.word_ids == ["cat", "dog"]

    # A later word and a different rng must not change the issued task
    with transaction(ready_db) as conn:
        store.create_record(conn, "u1", "ant", DAY)
    again = get_or_build_task(ready_db, "u1", DAY, EngineConfig(), random.Random(99), "2024-01-10T10:00:00+00:00")
    assert again == first
    assert get_issued_task(ready_db, "u1", DAY) == first


def test_words_not_yet_due_are_left_out(ready_db):
    with transaction(ready_db) as conn:
        store.create_record(conn, "u1", "cat", DAY)
        store.create_record(conn, "u1", "dog", date(2024, 1, 12))
    task = get_or_build_task(ready_db, "u1", DAY, EngineConfig(), random.Random(1), "now")
    assert task.word_ids == ["cat"]
