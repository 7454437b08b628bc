"""Practice question generation for a daily task."""
import random

from vocab_srs.config import EngineConfig
from vocab_srs.models import (
    DailyTask, PracticeQuestion, QuestionOption, QuestionType, Word,
)

OPTION_IDS = "ABCD"
MAX_DISTRACTORS = len(OPTION_IDS) - 1


def mask_word(text: str) -> str:
    """Keep the first and last letters and blank out the rest (``c_t``)."""
    if len(text) <= 2:
        return "_" * len(text)
    middle = "".join(" " if ch == " " else "_" for ch in text[1:-1])
    return f"{text[0]}{middle}{text[-1]}"


def _distractors(word: Word, words: dict[str, Word], rng: random.Random) -> list[str]:
    pool = sorted({
        w.definition for w in words.values()
        if w.word_id != word.word_id and w.definition and w.definition != word.definition
    })
    return rng.sample(pool, min(MAX_DISTRACTORS, len(pool)))


def fill_blank_question(qid: str, word: Word) -> PracticeQuestion:
    return PracticeQuestion(
        id=qid,
        word_id=word.word_id,
        type=QuestionType.FILL_BLANK,
        prompt=f"Complete the word: {mask_word(word.display)}",
        correct_answer=word.display,
        hint=word.definition,
    )


def multiple_choice_question(
    qid: str, word: Word, distractors: list[str], rng: random.Random,
) -> PracticeQuestion:
    texts = [(word.definition, True)] + [(d, False) for d in distractors]
    rng.shuffle(texts)
    options = tuple(
        QuestionOption(id=OPTION_IDS[i], text=text, is_correct=correct)
        for i, (text, correct) in enumerate(texts)
    )
    answer = next(o.id for o in options if o.is_correct)
    return PracticeQuestion(
        id=qid,
        word_id=word.word_id,
        type=QuestionType.MULTIPLE_CHOICE,
        prompt=f'What does "{word.display}" mean?',
        correct_answer=answer,
        hint=word.phonetic,
        options=options,
    )


def dictation_question(qid: str, word: Word, config: EngineConfig) -> PracticeQuestion:
    return PracticeQuestion(
        id=qid,
        word_id=word.word_id,
        type=QuestionType.DICTATION,
        prompt="Listen and spell the word",
        correct_answer=word.display,
        hint=word.definition,
        audio_url=config.audio_url_template.format(word_id=word.word_id),
        phonetic=word.phonetic,
    )


def generate_questions(
    task: DailyTask,
    words: dict[str, Word],
    config: EngineConfig,
    rng: random.Random,
    prefix: str = None,
) -> list[PracticeQuestion]:
    """Build one question per task item, in task order.

    A multiple-choice item for a word without a definition, or for a user with
    no other definitions to offer as distractors, becomes a fill-blank question.
    """
    prefix = prefix or task.task_id
    questions = []
    for index, item in enumerate(task.items, 1):
        qid = f"{prefix}-q{index}"
        word = words.get(item.word_id) or Word(word_id=item.word_id)
        if item.question_type == QuestionType.MULTIPLE_CHOICE:
            distractors = _distractors(word, words, rng) if word.definition else []
            if distractors:
                questions.append(multiple_choice_question(qid, word, distractors, rng))
            else:
                questions.append(fill_blank_question(qid, word))
        elif item.question_type == QuestionType.DICTATION:
            questions.append(dictation_question(qid, word, config))
        else:
            questions.append(fill_blank_question(qid, word))
    return questions
