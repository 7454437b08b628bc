"""Daily task building: picks today's due words and their question types."""
import json
import logging
import math
import random
from datetime import date

from vocab_srs import store
from vocab_srs.config import EngineConfig
from vocab_srs.db import get_connection
from vocab_srs.models import DailyTask, LearningRecord, TaskItem, parse_question_type

logger = logging.getLogger(__name__)


def estimate_minutes(words_count: int, seconds_per_word: int) -> int:
    return math.ceil(words_count * seconds_per_word / 60)


def build_daily_task(
    due: list[LearningRecord],
    user_id: str,
    day: date,
    config: EngineConfig,
    rng: random.Random,
) -> DailyTask:
    """Build a task from a due-set snapshot.

    ``due`` must already be in due order (as returned by ``store.due_before``);
    the first ``max_words_per_task`` words are kept in that order. Each word gets
    a question type drawn from the normalized type weights, so the result is
    reproducible for a given seed.
    """
    weights = config.normalized_weights()
    types = [qtype for qtype, _ in weights]
    probabilities = [w for _, w in weights]
    selected = due[:config.max_words_per_task]
    items = tuple(
        TaskItem(word_id=record.word_id, question_type=rng.choices(types, probabilities)[0])
        for record in selected
    )
    return DailyTask(
        user_id=user_id,
        date=day,
        items=items,
        estimated_minutes=estimate_minutes(len(items), config.seconds_per_word),
    )


def _task_from_row(row) -> DailyTask:
    items = tuple(
        TaskItem(word_id=i["wordId"], question_type=parse_question_type(i["type"]))
        for i in json.loads(row["items"])
    )
    return DailyTask(
        user_id=row["user_id"],
        date=date.fromisoformat(row["task_date"]),
        items=items,
        estimated_minutes=row["estimated_minutes"],
    )


def get_issued_task(db_path: str, user_id: str, day: date) -> DailyTask | None:
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT * FROM daily_tasks WHERE user_id = ? AND task_date = ?",
        (user_id, day.isoformat()),
    ).fetchone()
    conn.close()
    return _task_from_row(row) if row else None


def get_or_build_task(
    db_path: str,
    user_id: str,
    day: date,
    config: EngineConfig,
    rng: random.Random,
    issued_at: str,
) -> DailyTask:
    """Return the task issued for ``day``, building and storing it on first request.

    An issued task never changes; later grading does not alter it. If two
    requests race to build the same day's task, the first stored one wins and
    both callers get it.
    """
    existing = get_issued_task(db_path, user_id, day)
    if existing is not None:
        return existing

    conn = get_connection(db_path)
    due = store.due_before(conn, user_id, day)
    task = build_daily_task(due, user_id, day, config, rng)
    conn.execute(
        """INSERT OR IGNORE INTO daily_tasks (user_id, task_date, items, estimated_minutes, created_at)
        VALUES (?, ?, ?, ?, ?)""",
        (
            user_id,
            day.isoformat(),
            json.dumps([{"wordId": i.word_id, "type": i.question_type.value} for i in task.items]),
            task.estimated_minutes,
            issued_at,
        ),
    )
    stored = conn.execute(
        "SELECT * FROM daily_tasks WHERE user_id = ? AND task_date = ?",
        (user_id, day.isoformat()),
    ).fetchone()
    conn.commit()
    conn.close()
    logger.info("Issued task for %s on %s with %d words", user_id, day.isoformat(), task.words_count)
    return _task_from_row(stored)
