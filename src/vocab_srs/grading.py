"""Answer grading for practice questions."""
from typing import Optional

from vocab_srs.models import GradeResult, PracticeQuestion, QuestionType

PERFECT_QUALITY = 5
FAILED_QUALITY = 0


def normalize_answer(text: str) -> str:
    return text.lower().strip()


def is_correct(question: PracticeQuestion, answer: Optional[str]) -> bool:
    """Compare an answer with the expected one. ``None`` means skipped."""
    if answer is None:
        return False
    if question.type == QuestionType.MULTIPLE_CHOICE:
        return answer == question.correct_answer
    return normalize_answer(answer) == normalize_answer(question.correct_answer)


def grade(question: PracticeQuestion, answer: Optional[str], first_attempt: bool = True) -> GradeResult:
    """Grade an answer. Only a correct first attempt earns full quality.

    There is no partial credit: a skip, a wrong answer, and a correct answer
    after an earlier wrong one all grade as quality 0.
    """
    correct = is_correct(question, answer)
    quality = PERFECT_QUALITY if correct and first_attempt else FAILED_QUALITY
    return GradeResult(correct=correct, quality=quality)


def accuracy(correct: int, total: int) -> float:
    if total == 0:
        return 0.0
    return correct / total


def session_score(correct: int, total: int) -> int:
    if total == 0:
        return 0
    return round(100 * correct / total)
