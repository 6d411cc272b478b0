"""Service for review sessions: due queries and answer handling."""
import logging
from dataclasses import replace
from datetime import UTC, date, datetime
from typing import Dict, List, Optional, Union

from wordsheet.config import ReviewSettings
from wordsheet.errors import EmptyWordError, InvalidFeedbackError, Result
from wordsheet.models.records import WordRecord
from wordsheet.monitoring import review_feedback
from wordsheet.services.edit_lock import EditLock
from wordsheet.services.srs_scheduler import (
    Feedback,
    apply_review,
    next_due_date,
    parse_feedback,
)
from wordsheet.services.word_table import WordTable

logger = logging.getLogger(__name__)


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


class ReviewService:
    """Service for reviewing due words."""

    def __init__(self, table: WordTable, settings: ReviewSettings, lock: EditLock):
        """Initialize the service with the word table."""
        self.table = table
        self.settings = settings
        self.lock = lock

    def _scheduled(self) -> List[WordRecord]:
        return [
            record for record in self.table.all_records()
            if not record.is_blank and record.review.next_due_date is not None
        ]

    def get_due_rows(self, as_of: Union[date, datetime]) -> List[WordRecord]:
        """Get words due on or before ``as_of``, oldest first."""
        as_of = _as_date(as_of)
        due = [r for r in self._scheduled() if r.review.next_due_date <= as_of]
        return sorted(due, key=lambda r: (r.review.next_due_date, r.row))

    def get_future_rows(self, limit: int, as_of: Union[date, datetime]) -> List[WordRecord]:
        """Get words not yet due, soonest first, for cramming."""
        as_of = _as_date(as_of)
        future = [r for r in self._scheduled() if r.review.next_due_date > as_of]
        return sorted(future, key=lambda r: (r.review.next_due_date, r.row))[:max(limit, 0)]

    def statistics(self, as_of: Union[date, datetime]) -> Dict[str, int]:
        """Get due, upcoming and total counts."""
        as_of = _as_date(as_of)
        scheduled = self._scheduled()
        due = sum(1 for r in scheduled if r.review.next_due_date <= as_of)
        return {
            "due": due,
            "upcoming": len(scheduled) - due,
            "total": len(scheduled),
        }

    async def submit_feedback(
        self,
        row: int,
        feedback: Union[Feedback, int, str],
        now: Optional[datetime] = None,
    ) -> Result[WordRecord]:
        """Schedule the next review of ``row`` from one answer.

        Invalid feedback leaves the row untouched and returns a failed result.
        """
        now = now or datetime.now(UTC)
        try:
            feedback = parse_feedback(feedback)
        except InvalidFeedbackError as e:
            logger.warning(f"Ignored feedback for row {row}: {e}")
            return Result.failure(e)

        async with self.lock.hold(f"reviewing row {row}"):
            record = self.table.read(row)
            if record is None or record.is_blank:
                return Result.failure(EmptyWordError(row))
            try:
                review = apply_review(record.review, feedback, now, self.settings)
            except InvalidFeedbackError as e:
                logger.warning(f"Ignored feedback for row {row}: {e}")
                return Result.failure(e)
            record = replace(record, review=review, modified_at=now)
            self.table.write(record)

        tier = feedback.value if isinstance(feedback, Feedback) else "days"
        review_feedback.labels(tier=tier).inc()
        logger.info(
            f"Reviewed '{record.word}' ({tier}): next {record.review.next_due_date}, "
            f"streak {record.review.review_count}, total {record.review.total_reviews}"
        )
        return Result.success(record)

    @staticmethod
    def mark_incorrect(record: WordRecord, now: datetime) -> WordRecord:
        """Make a word due tomorrow after a wrong quiz answer."""
        return replace(
            record,
            review=replace(record.review, next_due_date=next_due_date(now, 1)),
            modified_at=now,
        )
