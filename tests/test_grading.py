import pytest

from vocab_srs.grading import accuracy, grade, is_correct, normalize_answer, session_score
from vocab_srs.models import PracticeQuestion, QuestionOption, QuestionType

SPELLING = PracticeQuestion(
    id="q1", word_id="cat", type=QuestionType.FILL_BLANK, prompt="c_t", correct_answer="Cat",
)
CHOICE = PracticeQuestion(
    id="q2", word_id="cat", type=QuestionType.MULTIPLE_CHOICE, prompt="?", correct_answer="B",
    options=(QuestionOption("A", "a canine"), QuestionOption("B", "a feline", True)),
)


def test_normalize_answer():
    assert normalize_answer("  CaT \n") == "cat"


@pytest.mark.parametrize("answer, expected", [
    ("cat", True),
    ("  CAT ", True),
    ("cats", False),
    ("", False),
    (None, False),
])
def test_spelling_answers(answer, expected):
    assert is_correct(SPELLING, answer) is expected


def test_multiple_choice_compares_option_ids():
    assert is_correct(CHOICE, "B")
    assert not is_correct(CHOICE, "A")
    # Option text is not an accepted answer
    assert not is_correct(CHOICE, "a feline")


def test_grade_quality():
    assert grade(CHOICE, "B").quality == 5
    assert grade(CHOICE, "A").quality == 0
    assert grade(CHOICE, None).correct is False
    assert grade(CHOICE, None).quality == 0


def test_correct_retry_earns_no_credit():
    result = grade(SPELLING, "cat", first_attempt=False)
    assert result.correct
    assert result.quality == 0


def test_accuracy_and_score():
    assert accuracy(0, 0) == 0.0
    assert accuracy(3, 4) == 0.75
    assert session_score(0, 0) == 0
    assert session_score(2, 3) == 67
    assert session_score(5, 5) == 100
