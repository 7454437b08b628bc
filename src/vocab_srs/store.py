"""Authoritative per-user, per-word learning state.

Functions here take an open connection so that callers can group several
reads and writes into one transaction (see ``db.transaction``). Mutations of a
single (user, word) key must happen while holding that key's lock from
``vocab_srs.locks``.
"""
import sqlite3
from datetime import date

from vocab_srs.config import DEFAULT_TIMEZONE, SchedulerParams
from vocab_srs.errors import NotFound
from vocab_srs.models import LearningRecord, MasteryLevel, Word, parse_mastery


def _to_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _record_from_row(row: sqlite3.Row) -> LearningRecord:
    return LearningRecord(
        user_id=row["user_id"],
        word_id=row["word_id"],
        added_date=_to_date(row["added_date"]),
        last_review_date=_to_date(row["last_review_date"]),
        next_review_date=_to_date(row["next_review_date"]),
        review_count=row["review_count"],
        interval_days=row["interval_days"],
        ease_factor=row["ease_factor"],
        mastery_level=parse_mastery(row["mastery_level"]),
    )


def ensure_user(conn: sqlite3.Connection, user_id: str) -> None:
    conn.execute("INSERT OR IGNORE INTO users (user_id) VALUES (?)", (user_id,))


def get_user_timezone(conn: sqlite3.Connection, user_id: str) -> str:
    row = conn.execute("SELECT timezone FROM users WHERE user_id = ?", (user_id,)).fetchone()
    return row["timezone"] if row else DEFAULT_TIMEZONE


def set_user_timezone(conn: sqlite3.Connection, user_id: str, tz_name: str) -> None:
    conn.execute(
        "INSERT INTO users (user_id, timezone) VALUES (?, ?) "
        "ON CONFLICT(user_id) DO UPDATE SET timezone=?",
        (user_id, tz_name, tz_name),
    )


def get_record(conn: sqlite3.Connection, user_id: str, word_id: str) -> LearningRecord:
    row = conn.execute(
        "SELECT * FROM learning_records WHERE user_id = ? AND word_id = ?",
        (user_id, word_id),
    ).fetchone()
    if row is None:
        raise NotFound("Unknown word", user_id=user_id, word_id=word_id)
    return _record_from_row(row)


def has_record(conn: sqlite3.Connection, user_id: str, word_id: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM learning_records WHERE user_id = ? AND word_id = ?",
        (user_id, word_id),
    ).fetchone()
    return row is not None


def upsert_record(conn: sqlite3.Connection, record: LearningRecord) -> None:
    mastery = parse_mastery(record.mastery_level).value
    conn.execute(
        """INSERT INTO learning_records (user_id, word_id, added_date, last_review_date,
            next_review_date, review_count, interval_days, ease_factor, mastery_level)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(user_id, word_id) DO UPDATE SET
            last_review_date=excluded.last_review_date,
            next_review_date=excluded.next_review_date,
            review_count=excluded.review_count,
            interval_days=excluded.interval_days,
            ease_factor=excluded.ease_factor,
            mastery_level=excluded.mastery_level""",
        (
            record.user_id,
            record.word_id,
            record.added_date.isoformat(),
            record.last_review_date.isoformat() if record.last_review_date else None,
            record.next_review_date.isoformat(),
            record.review_count,
            record.interval_days,
            record.ease_factor,
            mastery,
        ),
    )


def create_record(
    conn: sqlite3.Connection,
    user_id: str,
    word_id: str,
    day: date,
    params: SchedulerParams = SchedulerParams(),
) -> LearningRecord:
    """Create the initial record for a newly added word, due on ``day``."""
    record = LearningRecord(
        user_id=user_id,
        word_id=word_id,
        added_date=day,
        next_review_date=day,
        ease_factor=params.initial_ease,
    )
    upsert_record(conn, record)
    return record


def delete_record(conn: sqlite3.Connection, user_id: str, word_id: str) -> None:
    cur = conn.execute(
        "DELETE FROM learning_records WHERE user_id = ? AND word_id = ?",
        (user_id, word_id),
    )
    if cur.rowcount == 0:
        raise NotFound("Unknown word", user_id=user_id, word_id=word_id)


def due_before(conn: sqlite3.Connection, user_id: str, day: date) -> list[LearningRecord]:
    """Records due on or before ``day``, oldest due first, ties by word id."""
    rows = conn.execute(
        """SELECT * FROM learning_records
        WHERE user_id = ? AND next_review_date <= ?
        ORDER BY next_review_date ASC, word_id ASC""",
        (user_id, day.isoformat()),
    ).fetchall()
    return [_record_from_row(r) for r in rows]


def list_records(conn: sqlite3.Connection, user_id: str) -> list[LearningRecord]:
    rows = conn.execute(
        """SELECT * FROM learning_records WHERE user_id = ?
        ORDER BY next_review_date ASC, word_id ASC""",
        (user_id,),
    ).fetchall()
    return [_record_from_row(r) for r in rows]


def save_word(conn: sqlite3.Connection, user_id: str, word: Word) -> None:
    conn.execute(
        """INSERT INTO words (user_id, word_id, text, definition, phonetic)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(user_id, word_id) DO UPDATE SET
            text=excluded.text, definition=excluded.definition, phonetic=excluded.phonetic""",
        (user_id, word.word_id, word.text, word.definition, word.phonetic),
    )


def delete_word(conn: sqlite3.Connection, user_id: str, word_id: str) -> None:
    conn.execute("DELETE FROM words WHERE user_id = ? AND word_id = ?", (user_id, word_id))


def get_word(conn: sqlite3.Connection, user_id: str, word_id: str) -> Word:
    """Display data for a word, or a bare Word when none was supplied."""
    row = conn.execute(
        "SELECT * FROM words WHERE user_id = ? AND word_id = ?", (user_id, word_id)
    ).fetchone()
    if row is None:
        return Word(word_id=word_id)
    return Word(word_id=row["word_id"], text=row["text"],
                definition=row["definition"], phonetic=row["phonetic"])


def list_words(conn: sqlite3.Connection, user_id: str) -> dict[str, Word]:
    rows = conn.execute(
        "SELECT * FROM words WHERE user_id = ? ORDER BY word_id", (user_id,)
    ).fetchall()
    return {
        r["word_id"]: Word(word_id=r["word_id"], text=r["text"],
                           definition=r["definition"], phonetic=r["phonetic"])
        for r in rows
    }


def mastery_counts(conn: sqlite3.Connection, user_id: str) -> dict[MasteryLevel, int]:
    """Live tally of records per mastery level."""
    counts = {level: 0 for level in MasteryLevel}
    rows = conn.execute(
        "SELECT mastery_level, COUNT(*) AS n FROM learning_records WHERE user_id = ? GROUP BY mastery_level",
        (user_id,),
    ).fetchall()
    for row in rows:
        counts[parse_mastery(row["mastery_level"])] = row["n"]
    return counts
