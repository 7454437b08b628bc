"""Progress statistics: streaks, accuracy trends, mastery counts and achievements."""
import logging
import sqlite3
from datetime import date, timedelta

from vocab_srs import store
from vocab_srs.config import CHART_WINDOW_DAYS, RECENT_ACTIVITY_LIMIT, WEEKLY_WINDOW_DAYS
from vocab_srs.errors import InvalidState
from vocab_srs.grading import accuracy
from vocab_srs.models import (
    AccuracyPoint, Achievement, ChartData, DailyActivity, GrowthPoint, MasteryLevel, PeriodStats,
    PracticeResult, ProgressStats, RecentActivity,
)

logger = logging.getLogger(__name__)

# (id, name, description, metric, target)
ACHIEVEMENTS = [
    ("first-word", "Beginner", "Add your first word", "total_words", 1),
    ("ten-words", "Word Collector", "Learn 10 words", "total_words", 10),
    ("first-review", "First Review", "Complete your first review", "total_reviews", 1),
    ("ten-reviews", "Review Pro", "Complete 10 reviews", "total_reviews", 10),
    ("week-streak", "Week Streak", "Practice 7 days in a row", "longest_streak", 7),
]


def next_streak(current: int, last_practice: date | None, day: date) -> int:
    """Streak after practicing on ``day``.

    Same-day sessions leave it unchanged, the next calendar day extends it, and
    a gap of two or more days starts over at 1. A session dated before the
    last practice day does not move the streak.
    """
    if last_practice is None:
        return 1
    gap = (day - last_practice).days
    if gap <= 0:
        return max(current, 1)
    if gap == 1:
        return current + 1
    return 1


def _streak_row(conn: sqlite3.Connection, user_id: str) -> sqlite3.Row | None:
    return conn.execute("SELECT * FROM user_streaks WHERE user_id = ?", (user_id,)).fetchone()


def _metrics(conn: sqlite3.Connection, user_id: str) -> dict:
    total_words = conn.execute(
        "SELECT COUNT(*) FROM learning_records WHERE user_id = ?", (user_id,)
    ).fetchone()[0]
    total_reviews = conn.execute(
        "SELECT COUNT(*) FROM review_log WHERE user_id = ?", (user_id,)
    ).fetchone()[0]
    streak = _streak_row(conn, user_id)
    return {
        "total_words": total_words,
        "total_reviews": total_reviews,
        "longest_streak": streak["longest_streak"] if streak else 0,
    }


def refresh_achievements(conn: sqlite3.Connection, user_id: str, now: str) -> list[str]:
    """Persist unlock times for newly reached achievements. Returns their ids."""
    metrics = _metrics(conn, user_id)
    unlocked = []
    for achievement_id, _, _, metric, target in ACHIEVEMENTS:
        if metrics[metric] >= target:
            cur = conn.execute(
                "INSERT OR IGNORE INTO achievements (user_id, achievement_id, unlocked_at) VALUES (?, ?, ?)",
                (user_id, achievement_id, now),
            )
            if cur.rowcount:
                unlocked.append(achievement_id)
    if unlocked:
        logger.info("User %s unlocked %s", user_id, ", ".join(unlocked))
    return unlocked


def get_achievements(conn: sqlite3.Connection, user_id: str) -> list[Achievement]:
    metrics = _metrics(conn, user_id)
    rows = conn.execute(
        "SELECT achievement_id, unlocked_at FROM achievements WHERE user_id = ?", (user_id,)
    ).fetchall()
    unlocked = {r["achievement_id"]: r["unlocked_at"] for r in rows}
    return [
        Achievement(
            id=achievement_id,
            name=name,
            description=description,
            progress=min(metrics[metric], target),
            target=target,
            unlocked_at=unlocked.get(achievement_id),
        )
        for achievement_id, name, description, metric, target in ACHIEVEMENTS
    ]


def accuracy_series(conn: sqlite3.Connection, user_id: str, day: date, days: int) -> list[AccuracyPoint]:
    """One point per day for ``days`` days ending at ``day``, weighted by question count."""
    start = day - timedelta(days=days - 1)
    rows = conn.execute(
        """SELECT practice_date, SUM(total_questions) AS q, SUM(correct_answers) AS c
        FROM practice_results
        WHERE user_id = ? AND practice_date BETWEEN ? AND ?
        GROUP BY practice_date""",
        (user_id, start.isoformat(), day.isoformat()),
    ).fetchall()
    by_day = {r["practice_date"]: (r["q"], r["c"]) for r in rows}
    points = []
    for offset in range(days):
        d = start + timedelta(days=offset)
        questions, correct = by_day.get(d.isoformat(), (0, 0))
        points.append(AccuracyPoint(date=d, accuracy=accuracy(correct, questions), questions=questions))
    return points


def weekly_accuracy(conn: sqlite3.Connection, user_id: str, day: date) -> list[AccuracyPoint]:
    return accuracy_series(conn, user_id, day, WEEKLY_WINDOW_DAYS)


def snapshot(conn: sqlite3.Connection, user_id: str, day: date) -> ProgressStats:
    """Current stats for a user as of ``day``.

    Mastery counts are tallied from the learning records on every call rather
    than kept as running counters.
    """
    counts = store.mastery_counts(conn, user_id)
    totals = conn.execute(
        """SELECT COUNT(*) AS sessions,
            COALESCE(SUM(total_questions), 0) AS questions,
            COALESCE(SUM(correct_answers), 0) AS correct,
            COUNT(DISTINCT practice_date) AS days
        FROM practice_results WHERE user_id = ?""",
        (user_id,),
    ).fetchone()
    metrics = _metrics(conn, user_id)
    streak = _streak_row(conn, user_id)
    last = None
    if streak and streak["last_practice_date"]:
        last = date.fromisoformat(streak["last_practice_date"])
    current = streak["current_streak"] if streak else 0
    # Missing a whole day breaks the streak even before the next session
    if last is None or (day - last).days >= 2:
        current = 0
    return ProgressStats(
        total_words=metrics["total_words"],
        mastered_words=counts[MasteryLevel.MASTERED],
        familiar_words=counts[MasteryLevel.FAMILIAR],
        learning_words=counts[MasteryLevel.LEARNING],
        average_accuracy=accuracy(totals["correct"], totals["questions"]),
        current_streak=current,
        longest_streak=streak["longest_streak"] if streak else 0,
        study_days=totals["days"],
        total_practice_sessions=totals["sessions"],
        total_reviews=metrics["total_reviews"],
        last_practice_date=last,
        weekly_accuracy=weekly_accuracy(conn, user_id, day),
        achievements=get_achievements(conn, user_id),
    )


def record_session(
    conn: sqlite3.Connection, user_id: str, result: PracticeResult, day: date,
) -> ProgressStats:
    """Fold a committed session into the streak state and return fresh stats.

    Runs inside the caller's transaction, after the session's result row and
    learning-record updates, so all of them commit or roll back together.
    """
    row = _streak_row(conn, user_id)
    current = row["current_streak"] if row else 0
    longest = row["longest_streak"] if row else 0
    last = date.fromisoformat(row["last_practice_date"]) if row and row["last_practice_date"] else None

    current = next_streak(current, last, day)
    longest = max(longest, current)
    if last is None or day > last:
        last = day
    conn.execute(
        """INSERT INTO user_streaks (user_id, current_streak, longest_streak, last_practice_date)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(user_id) DO UPDATE SET
            current_streak=excluded.current_streak,
            longest_streak=excluded.longest_streak,
            last_practice_date=excluded.last_practice_date""",
        (user_id, current, longest, last.isoformat()),
    )
    refresh_achievements(conn, user_id, result.completed_at)
    return snapshot(conn, user_id, day)


def period_stats(conn: sqlite3.Connection, user_id: str, start: date, end: date) -> PeriodStats:
    bounds = (user_id, start.isoformat(), end.isoformat())
    sessions = conn.execute(
        """SELECT COUNT(*) AS sessions,
            COALESCE(SUM(total_questions), 0) AS questions,
            COALESCE(SUM(correct_answers), 0) AS correct,
            COALESCE(SUM(duration_seconds), 0) AS seconds,
            COUNT(DISTINCT practice_date) AS days
        FROM practice_results WHERE user_id = ? AND practice_date BETWEEN ? AND ?""",
        bounds,
    ).fetchone()
    words_learned = conn.execute(
        "SELECT COUNT(*) FROM learning_records WHERE user_id = ? AND added_date BETWEEN ? AND ?",
        bounds,
    ).fetchone()[0]
    reviews = conn.execute(
        "SELECT COUNT(*) FROM review_log WHERE user_id = ? AND reviewed_at BETWEEN ? AND ?",
        bounds,
    ).fetchone()[0]
    return PeriodStats(
        start_date=start,
        end_date=end,
        study_days=sessions["days"],
        words_learned=words_learned,
        practice_sessions=sessions["sessions"],
        reviews_completed=reviews,
        average_accuracy=accuracy(sessions["correct"], sessions["questions"]),
        total_study_minutes=round(sessions["seconds"] / 60),
    )


def overview(conn: sqlite3.Connection, user_id: str, day: date) -> dict[str, PeriodStats]:
    """Today, this week (from Monday) and this month up to ``day``."""
    return {
        "today": period_stats(conn, user_id, day, day),
        "thisWeek": period_stats(conn, user_id, day - timedelta(days=day.weekday()), day),
        "thisMonth": period_stats(conn, user_id, day.replace(day=1), day),
    }


def _daily_counts(conn: sqlite3.Connection, sql: str, user_id: str, start: date, end: date) -> dict:
    rows = conn.execute(sql, (user_id, start.isoformat(), end.isoformat())).fetchall()
    return {r[0]: r[1] for r in rows}


def chart_data(
    conn: sqlite3.Connection, user_id: str, day: date, days: int = CHART_WINDOW_DAYS,
) -> ChartData:
    """Daily series for the ``days`` days ending at ``day``.

    Activity counts sessions and graded reviews per day, accuracy is weighted
    by question count, and vocabulary growth is the running total of tracked
    words by the day they were added.
    """
    if days < 1:
        raise InvalidState(f"Chart window must be at least one day, got {days}", user_id=user_id)
    start = day - timedelta(days=days - 1)
    sessions = _daily_counts(
        conn,
        """SELECT practice_date, COUNT(*) FROM practice_results
        WHERE user_id = ? AND practice_date BETWEEN ? AND ? GROUP BY practice_date""",
        user_id, start, day,
    )
    reviews = _daily_counts(
        conn,
        """SELECT reviewed_at, COUNT(*) FROM review_log
        WHERE user_id = ? AND reviewed_at BETWEEN ? AND ? GROUP BY reviewed_at""",
        user_id, start, day,
    )
    added = _daily_counts(
        conn,
        """SELECT added_date, COUNT(*) FROM learning_records
        WHERE user_id = ? AND added_date BETWEEN ? AND ? GROUP BY added_date""",
        user_id, start, day,
    )
    total = conn.execute(
        "SELECT COUNT(*) FROM learning_records WHERE user_id = ? AND added_date < ?",
        (user_id, start.isoformat()),
    ).fetchone()[0]

    activity, growth = [], []
    for offset in range(days):
        d = start + timedelta(days=offset)
        key = d.isoformat()
        count = sessions.get(key, 0)
        activity.append(DailyActivity(
            date=d,
            study_days=1 if count else 0,
            practice_sessions=count,
            reviews_completed=reviews.get(key, 0),
        ))
        total += added.get(key, 0)
        growth.append(GrowthPoint(date=d, total_words=total))
    return ChartData(
        activity_trend=activity,
        accuracy_trend=accuracy_series(conn, user_id, day, days),
        vocabulary_growth=growth,
    )


def recent_activity(
    conn: sqlite3.Connection, user_id: str, limit: int = RECENT_ACTIVITY_LIMIT,
) -> list[RecentActivity]:
    """Newest-first feed of practice sessions and wrong-answer review days."""
    events = []
    rows = conn.execute(
        """SELECT result_id, completed_at, total_questions, correct_answers, duration_seconds
        FROM practice_results WHERE user_id = ? ORDER BY completed_at DESC LIMIT ?""",
        (user_id, limit),
    ).fetchall()
    for r in rows:
        events.append(RecentActivity(
            id=r["result_id"],
            type="practice",
            timestamp=r["completed_at"],
            description=f"Completed practice: {r['correct_answers']}/{r['total_questions']} correct",
            details={
                "questionCount": r["total_questions"],
                "correctCount": r["correct_answers"],
                "duration": round(r["duration_seconds"] / 60),
            },
        ))
    # Wrong-answer reviews are summarized per day
    rows = conn.execute(
        """SELECT substr(reviewed_at, 1, 10) AS day, COUNT(*) AS n,
            SUM(correct) AS c, MAX(reviewed_at) AS last_at
        FROM wrong_answer_reviews WHERE user_id = ?
        GROUP BY day ORDER BY last_at DESC LIMIT ?""",
        (user_id, limit),
    ).fetchall()
    for r in rows:
        events.append(RecentActivity(
            id=f"review-{r['day']}",
            type="review",
            timestamp=r["last_at"],
            description=f"Reviewed {r['n']} missed word(s)",
            details={"reviewCount": r["n"], "accuracy": accuracy(r["c"], r["n"])},
        ))
    events.sort(key=lambda e: e.timestamp, reverse=True)
    return events[:limit]
