"""Spaced repetition scheduler.

Pure functions: the current date is always passed in, never read from the
clock, so the same input gives the same schedule.

Feedback is either a tier or a literal number of days:

* ``Again``: due today, streak reset to 0, total reviews unchanged.
* ``Hard``: due tomorrow, streak unchanged, total reviews + 1.
* ``Good``: ``good_ladder[total_reviews]`` days (``good_cap`` past the end),
  streak + 1, total reviews + 1.
* ``Easy``: ``easy_ladder[total_reviews]`` days (``easy_cap`` past the end),
  streak + 2, total reviews + 1.
* ``n`` days: due in ``n`` days, streak + 1, total reviews + 1.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Union

from wordsheet.config import ReviewSettings
from wordsheet.errors import InvalidFeedbackError
from wordsheet.models.records import ReviewState


class Feedback(Enum):
    """Answer tiers of a review."""
    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


FeedbackValue = Union[Feedback, int]


@dataclass(frozen=True)
class ScheduleResult:
    """Days until the next review and the updated counters."""
    days_until_due: int
    review_count: int
    total_reviews: int


def parse_feedback(value: Union[Feedback, int, str]) -> FeedbackValue:
    """Turn a tier name or a day count into feedback.

    Raises:
        InvalidFeedbackError: for anything else.
    """
    if isinstance(value, Feedback):
        return value
    if isinstance(value, bool):
        raise InvalidFeedbackError(value)
    if isinstance(value, int):
        if value > 0:
            return value
        raise InvalidFeedbackError(value)
    if isinstance(value, str):
        text = value.strip()
        if text.isascii() and text.isdigit() and int(text) > 0:
            return int(text)
        try:
            return Feedback(text.lower())
        except ValueError:
            raise InvalidFeedbackError(value) from None
    raise InvalidFeedbackError(value)


def _ladder_days(ladder: List[int], cap: int, total_reviews: int) -> int:
    if total_reviews < len(ladder):
        return ladder[max(total_reviews, 0)]
    return cap


def schedule(
    feedback: Union[Feedback, int, str],
    review_count: int,
    total_reviews: int,
    settings: ReviewSettings,
) -> ScheduleResult:
    """Compute the next interval and counters for one answer."""
    feedback = parse_feedback(feedback)

    if isinstance(feedback, int):
        return ScheduleResult(feedback, review_count + 1, total_reviews + 1)
    if feedback is Feedback.AGAIN:
        return ScheduleResult(0, 0, total_reviews)
    if feedback is Feedback.HARD:
        return ScheduleResult(1, review_count, total_reviews + 1)
    if feedback is Feedback.GOOD:
        days = _ladder_days(settings.good_ladder, settings.good_cap, total_reviews)
        return ScheduleResult(days, review_count + 1, total_reviews + 1)
    days = _ladder_days(settings.easy_ladder, settings.easy_cap, total_reviews)
    return ScheduleResult(days, review_count + 2, total_reviews + 1)


def next_due_date(now: Union[date, datetime], days: int) -> date:
    """Get the due date ``days`` after ``now``, at date granularity."""
    today = now.date() if isinstance(now, datetime) else now
    return today + timedelta(days=days)


def apply_review(
    state: ReviewState,
    feedback: Union[Feedback, int, str],
    now: Union[date, datetime],
    settings: ReviewSettings,
) -> ReviewState:
    """Get the review state after one answer; ``state`` is left untouched.

    Raises:
        InvalidFeedbackError: for unknown feedback, or a day count past the
            last representable date.
    """
    result = schedule(feedback, state.review_count, state.total_reviews, settings)
    try:
        due = next_due_date(now, result.days_until_due)
    except OverflowError:
        raise InvalidFeedbackError(feedback) from None
    return ReviewState(
        next_due_date=due,
        review_count=result.review_count,
        total_reviews=result.total_reviews,
    )
