"""SM-2 spaced repetition algorithm."""
import math
from dataclasses import replace
from datetime import date, timedelta

from vocab_srs.config import SchedulerParams
from vocab_srs.errors import InvalidState
from vocab_srs.models import LearningRecord, MasteryLevel

DEFAULT_PARAMS = SchedulerParams()


def mastery_for(
    review_count: int,
    interval_days: int,
    params: SchedulerParams = DEFAULT_PARAMS,
) -> MasteryLevel:
    """Map review count and interval to a mastery tier.

    A zero interval means the word was just missed (or never reviewed), which
    is always ``learning``.
    """
    if review_count < params.familiar_reviews or interval_days == 0:
        return MasteryLevel.LEARNING
    if review_count < params.mastered_reviews and interval_days < params.mastered_interval:
        return MasteryLevel.FAMILIAR
    return MasteryLevel.MASTERED


def next_ease(ease_factor: float, quality: int, params: SchedulerParams = DEFAULT_PARAMS) -> float:
    if quality < params.pass_quality:
        new_ef = ease_factor - params.incorrect_ease_penalty
    else:
        new_ef = ease_factor + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02))
    new_ef = min(params.max_ease, max(params.min_ease, new_ef))
    return round(new_ef, 2)


def sm2_update(
    quality: int,
    review_count: int,
    ease_factor: float,
    interval: int,
    params: SchedulerParams = DEFAULT_PARAMS,
) -> dict:
    """Calculate next review parameters using SM-2.

    Args:
        quality: Rating 0-5 (0=incorrect or skipped, 3=correct after a hint, 5=perfect)
        review_count: Number of graded reviews so far, correct or not
        ease_factor: Current ease factor
        interval: Current interval in days

    Returns:
        Dict with updated interval, review_count, ease_factor.
    """
    if not 0 <= quality <= 5:
        raise InvalidState(f"Quality must be between 0 and 5, got {quality}")

    new_review_count = review_count + 1
    if quality >= params.pass_quality:
        if new_review_count == 1:
            new_interval = params.first_interval
        elif new_review_count == 2:
            new_interval = params.second_interval
        else:
            # Half days round up
            new_interval = max(1, math.floor(interval * ease_factor + 0.5))
    else:
        # Incorrect — due again today
        new_interval = 0

    return {
        "interval": new_interval,
        "review_count": new_review_count,
        "ease_factor": next_ease(ease_factor, quality, params),
    }


def apply_grade(
    record: LearningRecord,
    quality: int,
    now: date,
    params: SchedulerParams = DEFAULT_PARAMS,
) -> LearningRecord:
    """Return the record as it stands after one graded attempt on ``now``."""
    updated = sm2_update(
        quality=quality,
        review_count=record.review_count,
        ease_factor=record.ease_factor,
        interval=record.interval_days,
        params=params,
    )
    return replace(
        record,
        review_count=updated["review_count"],
        interval_days=updated["interval"],
        ease_factor=updated["ease_factor"],
        mastery_level=mastery_for(updated["review_count"], updated["interval"], params),
        last_review_date=now,
        next_review_date=now + timedelta(days=updated["interval"]),
    )
