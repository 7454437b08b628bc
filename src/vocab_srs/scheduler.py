"""Review scheduling: applies SM-2 grades to stored learning records."""
import logging
import sqlite3
from datetime import date

from vocab_srs import store
from vocab_srs.config import EngineConfig, SchedulerParams
from vocab_srs.db import get_connection, transaction
from vocab_srs.errors import NotFound, UnknownWord
from vocab_srs.locks import registry, word_key
from vocab_srs.models import LearningRecord, ReviewScheduleItem
from vocab_srs.sm2 import apply_grade

logger = logging.getLogger(__name__)


def grade_word(
    conn: sqlite3.Connection,
    user_id: str,
    word_id: str,
    quality: int,
    now: date,
    params: SchedulerParams = SchedulerParams(),
    due_only: bool = False,
) -> LearningRecord:
    """Apply one graded attempt and write it back. Caller holds the word lock.

    With ``due_only`` a word not yet due on ``now`` is left as it is and the
    stored record is returned, so repeating a day's practice cannot push a
    word further along its schedule.
    """
    try:
        record = store.get_record(conn, user_id, word_id)
    except NotFound:
        raise UnknownWord("Word has no learning record", user_id=user_id, word_id=word_id) from None
    if due_only and not record.is_due(now):
        logger.debug("Skipped %s/%s: not due until %s", user_id, word_id, record.next_review_date)
        return record
    updated = apply_grade(record, quality, now, params)
    store.upsert_record(conn, updated)
    conn.execute(
        "INSERT INTO review_log (user_id, word_id, quality, reviewed_at) VALUES (?, ?, ?, ?)",
        (user_id, word_id, quality, now.isoformat()),
    )
    logger.debug(
        "Graded %s/%s q=%d: interval %d->%d, ease %.2f->%.2f, %s",
        user_id, word_id, quality, record.interval_days, updated.interval_days,
        record.ease_factor, updated.ease_factor, updated.mastery_level.value,
    )
    return updated


def record_grade(
    db_path: str,
    user_id: str,
    word_id: str,
    quality: int,
    now: date,
    config: EngineConfig = None,
) -> LearningRecord:
    """Grade a single word in its own transaction, under the word's lock."""
    config = config or EngineConfig()
    with registry.hold(word_key(db_path, user_id, word_id), timeout=config.lock_timeout):
        with transaction(db_path) as conn:
            return grade_word(conn, user_id, word_id, quality, now, config.scheduler)


def get_review_schedule(db_path: str, user_id: str) -> list[ReviewScheduleItem]:
    """Every word's upcoming review, soonest first."""
    conn = get_connection(db_path)
    records = store.list_records(conn, user_id)
    words = store.list_words(conn, user_id)
    conn.close()
    return [
        ReviewScheduleItem(
            word_id=r.word_id,
            word=words[r.word_id].display if r.word_id in words else r.word_id,
            next_review_date=r.next_review_date,
            interval_days=r.interval_days,
            ease_factor=r.ease_factor,
            review_count=r.review_count,
        )
        for r in records
    ]
