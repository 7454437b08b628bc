"""Practice sessions: immediate answer feedback and the atomic session commit."""
import json
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from vocab_srs import progress, wrong_answers
from vocab_srs.config import EngineConfig
from vocab_srs.db import transaction
from vocab_srs.errors import InvalidState
from vocab_srs.grading import accuracy, grade, session_score
from vocab_srs.locks import queue_key, registry, word_key
from vocab_srs.models import (
    AnswerFeedback, DailyTask, PracticeQuestion, PracticeResult, WrongAnswerDetail,
)
from vocab_srs.scheduler import grade_word

logger = logging.getLogger(__name__)


@dataclass
class PracticeSession:
    """One run through a frozen question set.

    ``answers`` holds the first answer submitted for each question; ``None``
    marks a skip. Later submissions get feedback but never replace it.
    """

    session_id: str
    user_id: str
    task: DailyTask
    questions: tuple
    started_at: datetime
    answers: dict = field(default_factory=dict)
    completed: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def question(self, question_id: str) -> PracticeQuestion:
        for q in self.questions:
            if q.id == question_id:
                return q
        raise InvalidState(f"Question {question_id!r} is not part of this session", user_id=self.user_id)

    def _check_open(self) -> None:
        if self.completed:
            raise InvalidState("Session already completed", user_id=self.user_id)


def new_session(user_id: str, task: DailyTask, questions: list, started_at: datetime) -> PracticeSession:
    return PracticeSession(
        session_id=uuid.uuid4().hex[:12],
        user_id=user_id,
        task=task,
        questions=tuple(questions),
        started_at=started_at,
    )


def submit_answer(session: PracticeSession, question_id: str, answer: str) -> AnswerFeedback:
    """Grade an answer for feedback only. Nothing is written to the store."""
    question = session.question(question_id)
    with session._lock:
        session._check_open()
        first = question_id not in session.answers
        if first:
            session.answers[question_id] = answer
    result = grade(question, answer, first_attempt=first)
    return AnswerFeedback(question_id=question_id, correct=result.correct,
                          correct_answer=question.correct_answer)


def skip_question(session: PracticeSession, question_id: str) -> AnswerFeedback:
    question = session.question(question_id)
    with session._lock:
        session._check_open()
        session.answers.setdefault(question_id, None)
    return AnswerFeedback(question_id=question_id, correct=False, correct_answer=question.correct_answer)


def _merge_answers(session: PracticeSession, answers: Optional[dict]) -> dict:
    merged = dict(session.answers)
    for question_id, answer in (answers or {}).items():
        session.question(question_id)
        merged.setdefault(question_id, answer)
    return merged


def complete_session(
    db_path: str,
    session: PracticeSession,
    answers: Optional[dict],
    now: datetime,
    day: date,
    config: EngineConfig,
    duration_seconds: Optional[int] = None,
) -> PracticeResult:
    """Commit a finished session.

    ``answers`` maps question ids to answers not already submitted one at a
    time; questions with no answer count as skipped. Words that an earlier
    commit already moved past ``day`` keep their schedule. Every word's
    schedule update, the wrong-answer queue changes, the stored result and
    the streak update happen in one transaction while holding the session's
    word locks and the user's queue lock. An unknown question id rejects the
    whole batch before anything is written.
    """
    with session._lock:
        session._check_open()
        merged = _merge_answers(session, answers)

        if duration_seconds is None:
            duration_seconds = max(0, int((now - session.started_at).total_seconds()))
        graded = [(q, merged.get(q.id), grade(q, merged.get(q.id))) for q in session.questions]
        correct_count = sum(1 for _, _, g in graded if g.correct)
        total = len(graded)
        wrong = tuple(
            WrongAnswerDetail(
                question_id=q.id, word_id=q.word_id,
                user_answer=answer or "", correct_answer=q.correct_answer,
            )
            for q, answer, g in graded if not g.correct
        )
        result = PracticeResult(
            result_id=uuid.uuid4().hex,
            user_id=session.user_id,
            task_id=session.task.task_id,
            completed_at=now.isoformat(),
            total_questions=total,
            correct_answers=correct_count,
            accuracy=accuracy(correct_count, total),
            score=session_score(correct_count, total),
            duration_seconds=duration_seconds,
            wrong_answers=wrong,
        )

        user_id = session.user_id
        keys = [word_key(db_path, user_id, q.word_id) for q in session.questions]
        keys.append(queue_key(db_path, user_id))
        with registry.hold(*keys, timeout=config.lock_timeout):
            with transaction(db_path) as conn:
                for question, answer, outcome in graded:
                    grade_word(conn, user_id, question.word_id, outcome.quality, day, config.scheduler,
                               due_only=True)
                    if not outcome.correct:
                        wrong_answers.push(conn, user_id, question.word_id, answer or "", result.completed_at)
                conn.execute(
                    """INSERT INTO practice_results (result_id, user_id, task_id, practice_date,
                        completed_at, total_questions, correct_answers, score, accuracy,
                        duration_seconds, wrong_answers)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        result.result_id, user_id, result.task_id, day.isoformat(),
                        result.completed_at, total, correct_count, result.score,
                        result.accuracy, duration_seconds,
                        json.dumps([w.to_dict() for w in wrong]),
                    ),
                )
                progress.record_session(conn, user_id, result, day)

        session.completed = True
    logger.info(
        "Committed session %s for %s: %d/%d correct", session.session_id, user_id, correct_count, total,
    )
    return result
