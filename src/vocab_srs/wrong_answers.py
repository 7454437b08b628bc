"""Wrong-answer retry queue, kept apart from the review schedule.

Entries are presented oldest-missed first and stay queued until the word is
answered correctly in a wrong-answer review. All mutations for one user go
through that user's queue lock.
"""
import logging
import sqlite3

from vocab_srs.config import EngineConfig
from vocab_srs.db import get_connection, transaction
from vocab_srs.errors import NotFound
from vocab_srs.locks import queue_key, registry
from vocab_srs.models import WrongAnswerEntry

logger = logging.getLogger(__name__)

_SELECT_ENTRIES = """SELECT q.*, w.text, w.phonetic, w.definition
    FROM wrong_answers q
    LEFT JOIN words w ON w.user_id = q.user_id AND w.word_id = q.word_id
    WHERE q.user_id = ?"""


def _entry_from_row(row: sqlite3.Row) -> WrongAnswerEntry:
    return WrongAnswerEntry(
        user_id=row["user_id"],
        word_id=row["word_id"],
        user_wrong_answer=row["user_wrong_answer"],
        review_count=row["review_count"],
        added_at=row["added_at"],
        word=row["text"] or row["word_id"],
        phonetic=row["phonetic"] or "",
        definition=row["definition"] or "",
    )


def push(conn: sqlite3.Connection, user_id: str, word_id: str, wrong_answer: str, now: str) -> None:
    """Queue a missed word, or bump its count and answer if already queued.

    ``added_at`` and the queue position are only set on first insert.
    """
    conn.execute(
        """INSERT INTO wrong_answers (user_id, word_id, user_wrong_answer, review_count, added_at)
        VALUES (?, ?, ?, 0, ?)
        ON CONFLICT(user_id, word_id) DO UPDATE SET
            user_wrong_answer=excluded.user_wrong_answer,
            review_count=review_count + 1""",
        (user_id, word_id, wrong_answer, now),
    )


def resolve(conn: sqlite3.Connection, user_id: str, word_id: str) -> bool:
    """Remove a word from the queue. Returns False if it was not queued."""
    cur = conn.execute(
        "DELETE FROM wrong_answers WHERE user_id = ? AND word_id = ?", (user_id, word_id)
    )
    return cur.rowcount > 0


def peek_next(conn: sqlite3.Connection, user_id: str) -> WrongAnswerEntry | None:
    row = conn.execute(_SELECT_ENTRIES + " ORDER BY q.position LIMIT 1", (user_id,)).fetchone()
    return _entry_from_row(row) if row else None


def list_entries(conn: sqlite3.Connection, user_id: str) -> list[WrongAnswerEntry]:
    rows = conn.execute(_SELECT_ENTRIES + " ORDER BY q.position", (user_id,)).fetchall()
    return [_entry_from_row(r) for r in rows]


def get_queue(db_path: str, user_id: str) -> list[WrongAnswerEntry]:
    conn = get_connection(db_path)
    entries = list_entries(conn, user_id)
    conn.close()
    return entries


def next_entry(db_path: str, user_id: str) -> WrongAnswerEntry | None:
    conn = get_connection(db_path)
    entry = peek_next(conn, user_id)
    conn.close()
    return entry


def pop_next(db_path: str, user_id: str, config: EngineConfig = None) -> WrongAnswerEntry | None:
    """Remove and return the oldest entry, or None when the queue is empty."""
    config = config or EngineConfig()
    with registry.hold(queue_key(db_path, user_id), timeout=config.lock_timeout):
        with transaction(db_path) as conn:
            entry = peek_next(conn, user_id)
            if entry is not None:
                resolve(conn, user_id, entry.word_id)
            return entry


def push_wrong_answer(
    db_path: str, user_id: str, word_id: str, wrong_answer: str, now: str,
    config: EngineConfig = None,
) -> None:
    config = config or EngineConfig()
    with registry.hold(queue_key(db_path, user_id), timeout=config.lock_timeout):
        with transaction(db_path) as conn:
            push(conn, user_id, word_id, wrong_answer, now)


def _log_review(
    conn: sqlite3.Connection, user_id: str, word_id: str, correct: bool, now: str,
) -> None:
    conn.execute(
        "INSERT INTO wrong_answer_reviews (user_id, word_id, correct, reviewed_at) VALUES (?, ?, ?, ?)",
        (user_id, word_id, int(correct), now),
    )


def review_wrong_answer(
    db_path: str, user_id: str, word_id: str, correct: bool, now: str,
    config: EngineConfig = None,
) -> None:
    """Record a re-attempt from the wrong-answer review.

    A correct re-attempt removes the entry; repeating it is a no-op. An
    incorrect one counts the attempt and keeps the entry in place. Attempts
    that changed the queue are logged for the activity feed.
    """
    config = config or EngineConfig()
    with registry.hold(queue_key(db_path, user_id), timeout=config.lock_timeout):
        with transaction(db_path) as conn:
            if correct:
                if resolve(conn, user_id, word_id):
                    _log_review(conn, user_id, word_id, True, now)
                    logger.info("Resolved wrong answer %s/%s", user_id, word_id)
                return
            cur = conn.execute(
                "UPDATE wrong_answers SET review_count = review_count + 1 WHERE user_id = ? AND word_id = ?",
                (user_id, word_id),
            )
            if cur.rowcount == 0:
                raise NotFound("Word is not in the wrong-answer queue", user_id=user_id, word_id=word_id)
            _log_review(conn, user_id, word_id, False, now)
