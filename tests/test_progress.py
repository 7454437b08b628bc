import uuid
from datetime import date

import pytest

from vocab_srs import progress, store
from vocab_srs.db import get_connection, transaction
from vocab_srs.errors import InvalidState
from vocab_srs.models import PracticeResult


def commit_session(db_path, day, total, correct, user_id="u1", duration=120):
    """Store a practice result for ``day`` and fold it into the streak."""
    result = PracticeResult(
        result_id=uuid.uuid4().hex, user_id=user_id, task_id=f"daily-{day.isoformat()}",
        completed_at=f"{day.isoformat()}T12:00:00+00:00", total_questions=total,
        correct_answers=correct, accuracy=correct / total if total else 0.0,
        score=0, duration_seconds=duration,
    )
    with transaction(db_path) as conn:
        conn.execute(
            """INSERT INTO practice_results (result_id, user_id, task_id, practice_date, completed_at,
                total_questions, correct_answers, score, accuracy, duration_seconds)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (result.result_id, user_id, result.task_id, day.isoformat(), result.completed_at,
             total, correct, 0, result.accuracy, duration),
        )
        return progress.record_session(conn, user_id, result, day)


@pytest.mark.parametrize("current, last, day, expected", [
    (0, None, date(2024, 1, 1), 1),
    (3, date(2024, 1, 1), date(2024, 1, 1), 3),
    (3, date(2024, 1, 1), date(2024, 1, 2), 4),
    (3, date(2024, 1, 1), date(2024, 1, 3), 1),
    (2, date(2024, 1, 5), date(2024, 1, 4), 2),
])
def test_next_streak(current, last, day, expected):
    assert progress.next_streak(current, last, day) == expected


def test_streak_resets_after_a_gap_but_keeps_longest(ready_db):
    for d in (1, 2, 3):
        stats = commit_session(ready_db, date(2024, 1, d), 4, 4)
    assert stats.current_streak == 3
    stats = commit_session(ready_db, date(2024, 1, 6), 4, 4)
    assert stats.current_streak == 1
    assert stats.longest_streak == 3
    assert stats.last_practice_date == date(2024, 1, 6)
    assert stats.study_days == 4


def test_second_session_same_day_keeps_streak(ready_db):
    commit_session(ready_db, date(2024, 1, 1), 4, 4)
    commit_session(ready_db, date(2024, 1, 2), 4, 4)
    stats = commit_session(ready_db, date(2024, 1, 2), 4, 2)
    assert stats.current_streak == 2
    assert stats.study_days == 2
    assert stats.total_practice_sessions == 3


def test_weekly_accuracy_is_weighted_by_questions(ready_db):
    day = date(2024, 1, 10)
    commit_session(ready_db, day, 10, 9)
    stats = commit_session(ready_db, day, 2, 0)
    points = stats.weekly_accuracy
    assert len(points) == 7
    assert points[0].date == date(2024, 1, 4)
    assert points[-1].date == day
    assert points[-1].accuracy == 0.75
    assert points[-1].questions == 12
    assert all(p.accuracy == 0.0 and p.questions == 0 for p in points[:-1])
    assert stats.average_accuracy == 0.75


def test_old_sessions_fall_out_of_the_week(ready_db):
    commit_session(ready_db, date(2024, 1, 1), 4, 4)
    conn = get_connection(ready_db)
    points = progress.weekly_accuracy(conn, "u1", date(2024, 1, 10))
    conn.close()
    assert all(p.questions == 0 for p in points)


def test_snapshot_counts_mastery_and_reviews(ready_db):
    with transaction(ready_db) as conn:
        for w in ("cat", "dog", "owl"):
            store.create_record(conn, "u1", w, date(2024, 1, 1))
        conn.execute("UPDATE learning_records SET mastery_level = 'mastered' WHERE word_id = 'owl'")
        conn.execute(
            "INSERT INTO review_log (user_id, word_id, quality, reviewed_at) VALUES ('u1', 'cat', 5, '2024-01-01')"
        )
    conn = get_connection(ready_db)
    stats = progress.snapshot(conn, "u1", date(2024, 1, 10))
    conn.close()
    assert stats.total_words == 3
    assert stats.learning_words == 2
    assert stats.mastered_words == 1
    assert stats.total_reviews == 1
    assert stats.current_streak == 0
    assert stats.last_practice_date is None


def test_achievements_unlock_once(ready_db):
    with transaction(ready_db) as conn:
        store.create_record(conn, "u1", "cat", date(2024, 1, 1))
        assert progress.refresh_achievements(conn, "u1", "2024-01-01T10:00:00") == ["first-word"]
        assert progress.refresh_achievements(conn, "u1", "2024-01-02T10:00:00") == []
    conn = get_connection(ready_db)
    achievements = {a.id: a for a in progress.get_achievements(conn, "u1")}
    conn.close()
    assert achievements["first-word"].unlocked_at == "2024-01-01T10:00:00"
    assert achievements["ten-words"].progress == 1
    assert achievements["ten-words"].target == 10
    assert not achievements["ten-words"].unlocked


def test_week_streak_achievement(ready_db):
    for d in range(1, 8):
        stats = commit_session(ready_db, date(2024, 1, d), 1, 1)
    unlocked = {a.id for a in stats.achievements if a.unlocked}
    assert "week-streak" in unlocked


def test_overview_periods(ready_db):
    # 2024-01-10 is a Wednesday; the week starts on Monday the 8th
    commit_session(ready_db, date(2024, 1, 5), 4, 2)
    commit_session(ready_db, date(2024, 1, 8), 4, 4)
    commit_session(ready_db, date(2024, 1, 10), 4, 3, duration=150)
    with transaction(ready_db) as conn:
        store.create_record(conn, "u1", "cat", date(2024, 1, 9))
    conn = get_connection(ready_db)
    periods = progress.overview(conn, "u1", date(2024, 1, 10))
    conn.close()
    assert periods["today"].practice_sessions == 1
    assert periods["today"].total_study_minutes == 2
    assert periods["today"].average_accuracy == 0.75
    assert periods["thisWeek"].start_date == date(2024, 1, 8)
    assert periods["thisWeek"].practice_sessions == 2
    assert periods["thisWeek"].words_learned == 1
    assert periods["thisMonth"].study_days == 3
    assert periods["thisMonth"].average_accuracy == 0.75
    assert periods["thisMonth"].to_dict()["startDate"] == "2024-01-01"


def test_snapshot_streak_lapses_after_a_missed_day(ready_db):
    for d in (1, 2, 3):
        commit_session(ready_db, date(2024, 1, d), 4, 4)
    conn = get_connection(ready_db)
    next_day = progress.snapshot(conn, "u1", date(2024, 1, 4))
    later = progress.snapshot(conn, "u1", date(2024, 1, 10))
    conn.close()
    # The streak can still be extended the day after the last session
    assert next_day.current_streak == 3
    assert later.current_streak == 0
    assert later.longest_streak == 3
    assert later.last_practice_date == date(2024, 1, 3)


def test_chart_data_series(ready_db):
    with transaction(ready_db) as conn:
        store.create_record(conn, "u1", "cat", date(2023, 12, 1))
        store.create_record(conn, "u1", "dog", date(2024, 1, 8))
        store.create_record(conn, "u1", "owl", date(2024, 1, 10))
        conn.executemany(
            "INSERT INTO review_log (user_id, word_id, quality, reviewed_at) VALUES ('u1', ?, 5, ?)",
            [("cat", "2024-01-08"), ("dog", "2024-01-08"), ("cat", "2024-01-10")],
        )
    commit_session(ready_db, date(2024, 1, 8), 4, 3)
    commit_session(ready_db, date(2024, 1, 8), 4, 1)
    commit_session(ready_db, date(2024, 1, 10), 2, 2)

    conn = get_connection(ready_db)
    data = progress.chart_data(conn, "u1", date(2024, 1, 10), days=5)
    conn.close()

    assert [p.date for p in data.activity_trend] == [date(2024, 1, d) for d in range(6, 11)]
    assert [p.practice_sessions for p in data.activity_trend] == [0, 0, 2, 0, 1]
    assert [p.study_days for p in data.activity_trend] == [0, 0, 1, 0, 1]
    assert [p.reviews_completed for p in data.activity_trend] == [0, 0, 2, 0, 1]
    assert [p.accuracy for p in data.accuracy_trend] == [0.0, 0.0, 0.5, 0.0, 1.0]
    assert [p.total_words for p in data.vocabulary_growth] == [1, 1, 2, 2, 3]
    assert data.to_dict()["vocabularyGrowth"][-1] == {"date": "2024-01-10", "totalWords": 3}


def test_chart_data_defaults_to_ninety_days(ready_db):
    conn = get_connection(ready_db)
    data = progress.chart_data(conn, "u1", date(2024, 3, 31))
    conn.close()
    assert len(data.activity_trend) == 90
    assert data.activity_trend[0].date == date(2024, 1, 2)
    assert all(p.total_words == 0 for p in data.vocabulary_growth)


def test_chart_data_rejects_empty_window(ready_db):
    conn = get_connection(ready_db)
    with pytest.raises(InvalidState):
        progress.chart_data(conn, "u1", date(2024, 1, 10), days=0)
    conn.close()


def test_recent_activity_merges_practice_and_reviews(ready_db):
    commit_session(ready_db, date(2024, 1, 8), 4, 3, duration=180)
    commit_session(ready_db, date(2024, 1, 10), 2, 2)
    with transaction(ready_db) as conn:
        conn.executemany(
            "INSERT INTO wrong_answer_reviews (user_id, word_id, correct, reviewed_at) VALUES ('u1', ?, ?, ?)",
            [("cat", 1, "2024-01-09T08:00:00+00:00"), ("dog", 0, "2024-01-09T08:05:00+00:00"),
             ("owl", 1, "2024-01-11T07:00:00+00:00"), ("cat", 1, "2024-01-09T08:01:00+00:00")],
        )
    conn = get_connection(ready_db)
    events = progress.recent_activity(conn, "u1")
    limited = progress.recent_activity(conn, "u1", limit=2)
    conn.close()

    assert [(e.type, e.timestamp[:10]) for e in events] == [
        ("review", "2024-01-11"), ("practice", "2024-01-10"),
        ("review", "2024-01-09"), ("practice", "2024-01-08"),
    ]
    review = events[2]
    assert review.id == "review-2024-01-09"
    assert review.timestamp == "2024-01-09T08:05:00+00:00"
    assert review.details == {"reviewCount": 3, "accuracy": pytest.approx(2 / 3)}
    practice = events[3]
    assert practice.details == {"questionCount": 4, "correctCount": 3, "duration": 3}
    assert practice.to_dict()["type"] == "practice"
    assert [e.type for e in limited] == ["review", "practice"]
