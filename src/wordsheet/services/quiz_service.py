"""Quiz and unscramble drills with usage-balanced word selection."""
import logging
import random
import re
from dataclasses import replace
from datetime import UTC, datetime
from typing import Dict, List, Optional, Sequence

from wordsheet.config import QuizSettings, SheetSettings
from wordsheet.errors import InsufficientPoolError, Result
from wordsheet.models.records import (
    QuizAnswer,
    QuizQuestion,
    UnscrambleTask,
    WordRecord,
)
from wordsheet.monitoring import quiz_sessions, quiz_usage_resets
from wordsheet.services.edit_lock import EditLock
from wordsheet.services.formatter import first_definition
from wordsheet.services.review_service import ReviewService
from wordsheet.services.word_table import WordTable

logger = logging.getLogger(__name__)

MASK = "___"


def mask_word(text: str, word: str) -> str:
    """Hide the answer inside its own definition."""
    if not word:
        return text
    return re.sub(re.escape(word), MASK, text, flags=re.IGNORECASE)


class QuizService:
    """Service for quizzes over already reviewed words."""

    def __init__(
        self,
        table: WordTable,
        settings: QuizSettings,
        sheet_settings: SheetSettings,
        lock: EditLock,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the service; ``rng`` makes the selection reproducible in tests."""
        self.table = table
        self.settings = settings
        self.sheet_settings = sheet_settings
        self.lock = lock
        self.rng = rng or random.Random()

    def _prompt(self, record: WordRecord) -> str:
        return first_definition(record.definitions, self.sheet_settings.placeholder)

    def is_eligible(self, record: WordRecord) -> bool:
        """Reviewed at least once and with a usable definition."""
        return (
            not record.is_blank
            and record.review.review_count > 0
            and bool(self._prompt(record))
        )

    def eligible_pool(self, records: Optional[Sequence[WordRecord]] = None) -> List[WordRecord]:
        records = self.table.all_records() if records is None else records
        return [record for record in records if self.is_eligible(record)]

    def choose_least_used(self, pool: List[WordRecord], count: int) -> List[WordRecord]:
        """Pick ``count`` words, least quizzed first.

        Words at the minimum usage count are sampled first; when there are
        fewer of them than needed, all of them are taken and the rest is
        sampled from the remaining pool.
        """
        count = min(count, len(pool))
        if count <= 0:
            return []
        lowest = min(record.quiz_usage_count for record in pool)
        least_used = [record for record in pool if record.quiz_usage_count == lowest]
        if len(least_used) >= count:
            return self.rng.sample(least_used, count)
        others = [record for record in pool if record.quiz_usage_count != lowest]
        chosen = least_used + self.rng.sample(others, count - len(least_used))
        self.rng.shuffle(chosen)
        return chosen

    def select_questions(self, count: Optional[int] = None) -> Result[List[QuizQuestion]]:
        """Build multiple choice questions for one session."""
        if count is None:
            count = self.settings.questions_per_session
        pool = self.eligible_pool()
        required = max(self.settings.min_pool, self.settings.distractors + 1)
        if len(pool) < required:
            logger.info(f"Quiz refused: {len(pool)} eligible words, {required} required")
            return Result.failure(InsufficientPoolError(len(pool), required))

        questions = []
        for record in self.choose_least_used(pool, count):
            others = [other.word for other in pool if other.row != record.row]
            distractors = self.rng.sample(others, self.settings.distractors)
            options = [record.word, *distractors]
            self.rng.shuffle(options)
            questions.append(QuizQuestion(
                prompt=mask_word(self._prompt(record), record.word),
                correct_word=record.word,
                distractor_words=distractors,
                options=options,
                row=record.row,
            ))
        return Result.success(questions)

    def scramble(self, word: str) -> str:
        """Shuffle the letters of a word, differently from the word when possible."""
        letters = list(word)
        if len(set(letters)) < 2:
            return word
        while True:
            self.rng.shuffle(letters)
            scrambled = "".join(letters)
            if scrambled != word:
                return scrambled

    def select_unscramble(self, count: Optional[int] = None) -> Result[List[UnscrambleTask]]:
        """Build unscramble tasks with the same least-used selection."""
        if count is None:
            count = self.settings.questions_per_session
        pool = self.eligible_pool()
        if not pool:
            return Result.failure(InsufficientPoolError(0, 1))
        return Result.success([
            UnscrambleTask(
                scrambled=self.scramble(record.word),
                correct_word=record.word,
                hint=mask_word(self._prompt(record), record.word),
                row=record.row,
            )
            for record in self.choose_least_used(pool, count)
        ])

    async def record_session(self, answers: Sequence[QuizAnswer], now: Optional[datetime] = None) -> bool:
        """Store the outcome of a session; returns True if usage counts were reset.

        Every touched row counts one more use; wrong answers make the word due
        tomorrow. Once every eligible word has been used, all eligible usage
        counts go back to zero.
        """
        now = now or datetime.now(UTC)
        missed = {answer.row for answer in answers if not answer.correct}
        touched = {answer.row for answer in answers}

        async with self.lock.hold("recording quiz session"):
            records: Dict[int, WordRecord] = {r.row: r for r in self.table.all_records()}
            changed: Dict[int, WordRecord] = {}
            for row in sorted(touched):
                record = records.get(row)
                if record is None or record.is_blank:
                    logger.warning(f"Quiz answer for empty row {row} ignored")
                    continue
                record = replace(record, quiz_usage_count=record.quiz_usage_count + 1)
                if row in missed:
                    record = ReviewService.mark_incorrect(record, now)
                records[row] = changed[row] = record

            pool = self.eligible_pool(list(records.values()))
            reset = bool(pool) and all(record.quiz_usage_count > 0 for record in pool)
            if reset:
                for record in pool:
                    changed[record.row] = replace(record, quiz_usage_count=0)

            for row in sorted(changed):
                self.table.write(changed[row])

        quiz_sessions.inc()
        if reset:
            quiz_usage_resets.inc()
            logger.info(f"Every eligible word was quizzed; reset usage of {len(pool)} words")
        logger.info(f"Recorded quiz session: {len(touched)} words, {len(missed)} missed")
        return reset
