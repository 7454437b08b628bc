"""Learning engine facade: the operations exposed to the UI/API layer."""
import logging
import random
import threading
from datetime import date, datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from vocab_srs import progress, sessions, store, wrong_answers
from vocab_srs.config import (
    CHART_WINDOW_DAYS, DEFAULT_TIMEZONE, RECENT_ACTIVITY_LIMIT, EngineConfig, load_config,
)
from vocab_srs.db import DEFAULT_DB_PATH, get_connection, init_db, transaction
from vocab_srs.errors import ConfigurationError, NotFound
from vocab_srs.locks import queue_key, registry, word_key
from vocab_srs.models import (
    AnswerFeedback, ChartData, DailyTask, LearningRecord, PeriodStats, PracticeResult, ProgressStats,
    RecentActivity, ReviewScheduleItem, Word, WrongAnswerEntry,
)
from vocab_srs.questions import generate_questions
from vocab_srs.scheduler import get_review_schedule
from vocab_srs.sessions import PracticeSession
from vocab_srs.tasks import get_or_build_task

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def system_rng(user_id: str, day: date) -> random.Random:
    return random.Random()


def get_zone(tz_name: str):
    if tz_name == DEFAULT_TIMEZONE:
        return timezone.utc
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown time zone: {tz_name!r}") from e


class LearningEngine:
    """Spaced-repetition engine for many users sharing one store.

    ``clock`` returns the current aware datetime and ``rng_factory(user_id,
    day)`` returns the random generator used to pick question types and build
    questions; both are injectable so tests can pin them. Active practice
    sessions live on the engine instance, one per user.
    """

    def __init__(
        self,
        db_path: str = DEFAULT_DB_PATH,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], datetime] = utc_now,
        rng_factory: Callable[[str, date], random.Random] = system_rng,
    ):
        self.db_path = db_path
        init_db(db_path)
        self.config = (config or load_config(db_path)).validate()
        self.clock = clock
        self.rng_factory = rng_factory
        self._sessions: dict[str, PracticeSession] = {}
        self._sessions_lock = threading.Lock()

    # -- time -----------------------------------------------------------------

    def _now(self, user_id: str) -> datetime:
        conn = get_connection(self.db_path)
        tz_name = store.get_user_timezone(conn, user_id)
        conn.close()
        return self.clock().astimezone(get_zone(tz_name))

    def today(self, user_id: str) -> date:
        """The user's current calendar day in their time zone of record."""
        return self._now(user_id).date()

    # -- users and words --------------------------------------------------------

    def register_user(self, user_id: str, tz_name: str = DEFAULT_TIMEZONE) -> None:
        get_zone(tz_name)
        with transaction(self.db_path) as conn:
            store.set_user_timezone(conn, user_id, tz_name)

    def _require_user(self, user_id: str) -> None:
        conn = get_connection(self.db_path)
        row = conn.execute("SELECT 1 FROM users WHERE user_id = ?", (user_id,)).fetchone()
        conn.close()
        if row is None:
            raise NotFound("Unknown user", user_id=user_id)

    def on_word_added(
        self, user_id: str, word_id: str, text: str = "", definition: str = "", phonetic: str = "",
    ) -> LearningRecord:
        """Start tracking a word. Adding a word that is already tracked returns its record."""
        now = self._now(user_id)
        with registry.hold(word_key(self.db_path, user_id, word_id), timeout=self.config.lock_timeout):
            with transaction(self.db_path) as conn:
                store.ensure_user(conn, user_id)
                if store.has_record(conn, user_id, word_id):
                    return store.get_record(conn, user_id, word_id)
                record = store.create_record(conn, user_id, word_id, now.date(), self.config.scheduler)
                store.save_word(conn, user_id, Word(word_id, text, definition, phonetic))
                progress.refresh_achievements(conn, user_id, now.isoformat())
        logger.info("Added word %s for %s", word_id, user_id)
        return record

    def on_word_deleted(self, user_id: str, word_id: str) -> None:
        """Stop tracking a word, dropping its record and any queued wrong answer."""
        keys = (word_key(self.db_path, user_id, word_id), queue_key(self.db_path, user_id))
        with registry.hold(*keys, timeout=self.config.lock_timeout):
            with transaction(self.db_path) as conn:
                store.delete_record(conn, user_id, word_id)
                store.delete_word(conn, user_id, word_id)
                wrong_answers.resolve(conn, user_id, word_id)
        logger.info("Removed word %s for %s", word_id, user_id)

    # -- practice ---------------------------------------------------------------

    def get_daily_task(self, user_id: str, day: Optional[date] = None) -> DailyTask:
        self._require_user(user_id)
        now = self._now(user_id)
        day = day or now.date()
        return get_or_build_task(
            self.db_path, user_id, day, self.config, self.rng_factory(user_id, day), now.isoformat(),
        )

    def _evict_stale_sessions(self) -> None:
        """Drop unfinished sessions whose task day has passed for their user."""
        with self._sessions_lock:
            open_sessions = list(self._sessions.items())
        stale = [(uid, s) for uid, s in open_sessions if s.task.date < self.today(uid)]
        with self._sessions_lock:
            for uid, session in stale:
                if self._sessions.get(uid) is session:
                    del self._sessions[uid]
        if stale:
            logger.info("Dropped %d stale practice session(s)", len(stale))

    def start_practice(self, user_id: str, day: Optional[date] = None) -> PracticeSession:
        """Open a session over the day's task, replacing any unfinished one."""
        self._evict_stale_sessions()
        task = self.get_daily_task(user_id, day)
        now = self._now(user_id)
        conn = get_connection(self.db_path)
        words = store.list_words(conn, user_id)
        conn.close()
        questions = generate_questions(task, words, self.config, self.rng_factory(user_id, task.date))
        session = sessions.new_session(user_id, task, questions, now)
        with self._sessions_lock:
            self._sessions[user_id] = session
        return session

    def active_session(self, user_id: str) -> PracticeSession:
        with self._sessions_lock:
            session = self._sessions.get(user_id)
        if session is None:
            raise NotFound("No practice session in progress", user_id=user_id)
        return session

    def submit_answer(self, user_id: str, question_id: str, answer: str) -> AnswerFeedback:
        return sessions.submit_answer(self.active_session(user_id), question_id, answer)

    def skip_question(self, user_id: str, question_id: str) -> AnswerFeedback:
        return sessions.skip_question(self.active_session(user_id), question_id)

    def complete_session(
        self,
        user_id: str,
        session_answers: Optional[dict] = None,
        duration_seconds: Optional[int] = None,
        session: Optional[PracticeSession] = None,
    ) -> PracticeResult:
        session = session or self.active_session(user_id)
        now = self._now(user_id)
        result = sessions.complete_session(
            self.db_path, session, session_answers, now, now.date(), self.config,
            duration_seconds=duration_seconds,
        )
        with self._sessions_lock:
            if self._sessions.get(user_id) is session:
                del self._sessions[user_id]
        return result

    # -- wrong answers ----------------------------------------------------------

    def get_wrong_answer_queue(self, user_id: str) -> list[WrongAnswerEntry]:
        self._require_user(user_id)
        return wrong_answers.get_queue(self.db_path, user_id)

    def next_wrong_answer(self, user_id: str) -> Optional[WrongAnswerEntry]:
        self._require_user(user_id)
        return wrong_answers.next_entry(self.db_path, user_id)

    def review_wrong_answer(self, user_id: str, word_id: str, correct: bool) -> None:
        self._require_user(user_id)
        wrong_answers.review_wrong_answer(
            self.db_path, user_id, word_id, correct, self._now(user_id).isoformat(), self.config,
        )

    # -- schedule and stats -----------------------------------------------------

    def get_review_schedule(self, user_id: str) -> list[ReviewScheduleItem]:
        self._require_user(user_id)
        return get_review_schedule(self.db_path, user_id)

    def get_progress_stats(self, user_id: str) -> ProgressStats:
        self._require_user(user_id)
        day = self.today(user_id)
        conn = get_connection(self.db_path)
        stats = progress.snapshot(conn, user_id, day)
        conn.close()
        return stats

    def get_overview(self, user_id: str) -> dict[str, PeriodStats]:
        self._require_user(user_id)
        day = self.today(user_id)
        conn = get_connection(self.db_path)
        periods = progress.overview(conn, user_id, day)
        conn.close()
        return periods

    def get_chart_data(self, user_id: str, days: int = CHART_WINDOW_DAYS) -> ChartData:
        self._require_user(user_id)
        day = self.today(user_id)
        conn = get_connection(self.db_path)
        data = progress.chart_data(conn, user_id, day, days)
        conn.close()
        return data

    def get_recent_activity(
        self, user_id: str, limit: int = RECENT_ACTIVITY_LIMIT,
    ) -> list[RecentActivity]:
        self._require_user(user_id)
        conn = get_connection(self.db_path)
        events = progress.recent_activity(conn, user_id, limit)
        conn.close()
        return events
