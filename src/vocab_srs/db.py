"""Database initialization and connection management."""
import sqlite3
from contextlib import contextmanager
from pathlib import Path

DEFAULT_DB_PATH = str(Path.home() / ".vocab_srs" / "vocab.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    user_id TEXT PRIMARY KEY,
    timezone TEXT NOT NULL DEFAULT 'UTC'
);

CREATE TABLE IF NOT EXISTS words (
    user_id TEXT NOT NULL,
    word_id TEXT NOT NULL,
    text TEXT NOT NULL DEFAULT '',
    definition TEXT NOT NULL DEFAULT '',
    phonetic TEXT NOT NULL DEFAULT '',
    PRIMARY KEY (user_id, word_id)
);

CREATE TABLE IF NOT EXISTS learning_records (
    user_id TEXT NOT NULL,
    word_id TEXT NOT NULL,
    added_date TEXT NOT NULL,
    last_review_date TEXT,
    next_review_date TEXT NOT NULL,
    review_count INTEGER NOT NULL DEFAULT 0 CHECK (review_count >= 0),
    interval_days INTEGER NOT NULL DEFAULT 0 CHECK (interval_days >= 0),
    ease_factor REAL NOT NULL DEFAULT 2.5,
    mastery_level TEXT NOT NULL DEFAULT 'learning',
    PRIMARY KEY (user_id, word_id)
);

CREATE INDEX IF NOT EXISTS idx_records_due
    ON learning_records (user_id, next_review_date, word_id);

CREATE TABLE IF NOT EXISTS review_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    word_id TEXT NOT NULL,
    quality INTEGER NOT NULL,
    reviewed_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS daily_tasks (
    user_id TEXT NOT NULL,
    task_date TEXT NOT NULL,
    items TEXT NOT NULL,
    estimated_minutes INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (user_id, task_date)
);

CREATE TABLE IF NOT EXISTS practice_results (
    result_id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    task_id TEXT NOT NULL,
    practice_date TEXT NOT NULL,
    completed_at TEXT NOT NULL,
    total_questions INTEGER NOT NULL,
    correct_answers INTEGER NOT NULL,
    score INTEGER NOT NULL,
    accuracy REAL NOT NULL,
    duration_seconds INTEGER NOT NULL,
    wrong_answers TEXT NOT NULL DEFAULT '[]'
);

CREATE INDEX IF NOT EXISTS idx_results_user_date
    ON practice_results (user_id, practice_date);

CREATE TABLE IF NOT EXISTS wrong_answers (
    position INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    word_id TEXT NOT NULL,
    user_wrong_answer TEXT NOT NULL DEFAULT '',
    review_count INTEGER NOT NULL DEFAULT 0,
    added_at TEXT NOT NULL,
    UNIQUE (user_id, word_id)
);

CREATE TABLE IF NOT EXISTS wrong_answer_reviews (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    word_id TEXT NOT NULL,
    correct INTEGER NOT NULL,
    reviewed_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS user_streaks (
    user_id TEXT PRIMARY KEY,
    current_streak INTEGER NOT NULL DEFAULT 0,
    longest_streak INTEGER NOT NULL DEFAULT 0,
    last_practice_date TEXT
);

CREATE TABLE IF NOT EXISTS achievements (
    user_id TEXT NOT NULL,
    achievement_id TEXT NOT NULL,
    unlocked_at TEXT NOT NULL,
    PRIMARY KEY (user_id, achievement_id)
);

CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path, timeout=30)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


@contextmanager
def transaction(db_path: str = DEFAULT_DB_PATH):
    """Yield a connection inside a write transaction.

    The transaction starts with BEGIN IMMEDIATE so concurrent writers queue on
    the database lock instead of failing midway. It commits when the block
    exits normally and rolls back on any exception, which is re-raised.
    """
    conn = get_connection(db_path)
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()
