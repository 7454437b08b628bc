"""Data classes for the learning engine domain model."""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

from vocab_srs.errors import InvalidState


class MasteryLevel(str, Enum):
    LEARNING = "learning"
    FAMILIAR = "familiar"
    MASTERED = "mastered"


class QuestionType(str, Enum):
    FILL_BLANK = "fill-blank"
    MULTIPLE_CHOICE = "multiple-choice"
    DICTATION = "dictation"


def parse_mastery(value: str) -> MasteryLevel:
    try:
        return MasteryLevel(value)
    except ValueError:
        raise InvalidState(f"Unknown mastery level: {value!r}") from None


def parse_question_type(value: str) -> QuestionType:
    try:
        return QuestionType(value)
    except ValueError:
        raise InvalidState(f"Unknown question type: {value!r}") from None


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class Word:
    word_id: str
    text: str = ""
    definition: str = ""
    phonetic: str = ""

    @property
    def display(self) -> str:
        return self.text or self.word_id


@dataclass
class LearningRecord:
    user_id: str
    word_id: str
    added_date: date
    next_review_date: date
    last_review_date: Optional[date] = None
    review_count: int = 0
    interval_days: int = 0
    ease_factor: float = 2.5
    mastery_level: MasteryLevel = MasteryLevel.LEARNING

    def is_due(self, day: date) -> bool:
        return self.next_review_date <= day

    def to_dict(self) -> dict:
        return {
            "wordId": self.word_id,
            "addedDate": _iso(self.added_date),
            "lastReviewDate": _iso(self.last_review_date),
            "nextReviewDate": _iso(self.next_review_date),
            "reviewCount": self.review_count,
            "intervalDays": self.interval_days,
            "easeFactor": self.ease_factor,
            "masteryLevel": self.mastery_level.value,
        }


@dataclass(frozen=True)
class TaskItem:
    word_id: str
    question_type: QuestionType


@dataclass(frozen=True)
class DailyTask:
    user_id: str
    date: date
    items: tuple = ()
    estimated_minutes: int = 0

    @property
    def task_id(self) -> str:
        return f"daily-{self.date.isoformat()}"

    @property
    def word_ids(self) -> list[str]:
        return [item.word_id for item in self.items]

    @property
    def words_count(self) -> int:
        return len(self.items)

    @property
    def practice_types(self) -> list[QuestionType]:
        seen = []
        for item in self.items:
            if item.question_type not in seen:
                seen.append(item.question_type)
        return seen

    def to_dict(self) -> dict:
        return {
            "id": self.task_id,
            "date": self.date.isoformat(),
            "wordsCount": self.words_count,
            "estimatedMinutes": self.estimated_minutes,
            "practiceTypes": [t.value for t in self.practice_types],
            "words": [
                {"wordId": item.word_id, "questionType": item.question_type.value}
                for item in self.items
            ],
        }


@dataclass(frozen=True)
class QuestionOption:
    id: str
    text: str
    is_correct: bool = False


@dataclass(frozen=True)
class PracticeQuestion:
    id: str
    word_id: str
    type: QuestionType
    prompt: str
    correct_answer: str
    hint: str = ""
    options: tuple = ()
    audio_url: Optional[str] = None
    phonetic: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "type": self.type.value,
            "question": self.prompt,
            "wordId": self.word_id,
            "correctAnswer": self.correct_answer,
            "hint": self.hint,
            "options": [
                {"id": o.id, "text": o.text, "isCorrect": o.is_correct} for o in self.options
            ],
        }
        if self.audio_url is not None:
            data["audioUrl"] = self.audio_url
        if self.phonetic is not None:
            data["phonetic"] = self.phonetic
        return data


@dataclass(frozen=True)
class GradeResult:
    correct: bool
    quality: int


@dataclass(frozen=True)
class AnswerFeedback:
    question_id: str
    correct: bool
    correct_answer: str

    def to_dict(self) -> dict:
        return {"correct": self.correct, "correctAnswer": self.correct_answer}


@dataclass(frozen=True)
class WrongAnswerDetail:
    question_id: str
    word_id: str
    user_answer: str
    correct_answer: str

    def to_dict(self) -> dict:
        return {
            "questionId": self.question_id,
            "wordId": self.word_id,
            "userAnswer": self.user_answer,
            "correctAnswer": self.correct_answer,
        }


@dataclass(frozen=True)
class PracticeResult:
    result_id: str
    user_id: str
    task_id: str
    completed_at: str
    total_questions: int
    correct_answers: int
    accuracy: float
    score: int
    duration_seconds: int
    wrong_answers: tuple = ()

    def to_dict(self) -> dict:
        return {
            "id": self.result_id,
            "taskId": self.task_id,
            "completedAt": self.completed_at,
            "totalQuestions": self.total_questions,
            "correctAnswers": self.correct_answers,
            "score": self.score,
            "accuracy": self.accuracy,
            "durationSeconds": self.duration_seconds,
            "wrongAnswers": [w.to_dict() for w in self.wrong_answers],
        }


@dataclass
class WrongAnswerEntry:
    user_id: str
    word_id: str
    user_wrong_answer: str
    review_count: int
    added_at: str
    word: str = ""
    phonetic: str = ""
    definition: str = ""

    def to_dict(self) -> dict:
        return {
            "wordId": self.word_id,
            "word": self.word,
            "phonetic": self.phonetic,
            "definition": self.definition,
            "userWrongAnswer": self.user_wrong_answer,
            "reviewCount": self.review_count,
            "addedAt": self.added_at,
        }


@dataclass
class ReviewScheduleItem:
    word_id: str
    word: str
    next_review_date: date
    interval_days: int
    ease_factor: float
    review_count: int

    def to_dict(self) -> dict:
        return {
            "wordId": self.word_id,
            "word": self.word,
            "nextReviewDate": self.next_review_date.isoformat(),
            "intervalDays": self.interval_days,
            "easeFactor": self.ease_factor,
            "reviewCount": self.review_count,
        }


@dataclass
class AccuracyPoint:
    date: date
    accuracy: float
    questions: int = 0

    def to_dict(self) -> dict:
        return {"date": self.date.isoformat(), "accuracy": self.accuracy}


@dataclass
class Achievement:
    id: str
    name: str
    description: str
    progress: int
    target: int
    unlocked_at: Optional[str] = None

    @property
    def unlocked(self) -> bool:
        return self.unlocked_at is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "unlockedAt": self.unlocked_at,
            "progress": self.progress,
            "target": self.target,
        }


@dataclass
class ProgressStats:
    total_words: int = 0
    mastered_words: int = 0
    familiar_words: int = 0
    learning_words: int = 0
    average_accuracy: float = 0.0
    current_streak: int = 0
    longest_streak: int = 0
    study_days: int = 0
    total_practice_sessions: int = 0
    total_reviews: int = 0
    last_practice_date: Optional[date] = None
    weekly_accuracy: list = field(default_factory=list)
    achievements: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalWords": self.total_words,
            "masteredWords": self.mastered_words,
            "familiarWords": self.familiar_words,
            "learningWords": self.learning_words,
            "totalPracticeSessions": self.total_practice_sessions,
            "totalReviews": self.total_reviews,
            "averageAccuracy": self.average_accuracy,
            "studyDays": self.study_days,
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
            "lastPracticeDate": _iso(self.last_practice_date),
            "weeklyAccuracy": [p.to_dict() for p in self.weekly_accuracy],
            "achievements": [a.to_dict() for a in self.achievements],
        }


@dataclass
class PeriodStats:
    start_date: date
    end_date: date
    study_days: int = 0
    words_learned: int = 0
    practice_sessions: int = 0
    reviews_completed: int = 0
    average_accuracy: float = 0.0
    total_study_minutes: int = 0

    def to_dict(self) -> dict:
        return {
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "studyDays": self.study_days,
            "wordsLearned": self.words_learned,
            "practiceSessions": self.practice_sessions,
            "reviewsCompleted": self.reviews_completed,
            "averageAccuracy": self.average_accuracy,
            "totalStudyMinutes": self.total_study_minutes,
        }


@dataclass
class DailyActivity:
    date: date
    study_days: int = 0
    practice_sessions: int = 0
    reviews_completed: int = 0

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "studyDays": self.study_days,
            "practiceSessions": self.practice_sessions,
            "reviewsCompleted": self.reviews_completed,
        }


@dataclass
class GrowthPoint:
    date: date
    total_words: int

    def to_dict(self) -> dict:
        return {"date": self.date.isoformat(), "totalWords": self.total_words}


@dataclass
class ChartData:
    activity_trend: list = field(default_factory=list)
    accuracy_trend: list = field(default_factory=list)
    vocabulary_growth: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "activityTrend": [p.to_dict() for p in self.activity_trend],
            "accuracyTrend": [p.to_dict() for p in self.accuracy_trend],
            "vocabularyGrowth": [p.to_dict() for p in self.vocabulary_growth],
        }


@dataclass
class RecentActivity:
    id: str
    type: str
    timestamp: str
    description: str
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "timestamp": self.timestamp,
            "description": self.description,
            "details": dict(self.details),
        }
