"""Service turning a word in a row into an enriched record."""
import logging
from dataclasses import replace
from datetime import UTC, datetime
from typing import List, Optional

from wordsheet.config import ReviewSettings, SheetSettings
from wordsheet.errors import (
    DuplicateWordError,
    EmptyWordError,
    EnrichmentServiceError,
    ParseError,
    Result,
)
from wordsheet.models.records import (
    ReviewState,
    RowChangedEvent,
    SenseGroup,
    WordRecord,
)
from wordsheet.monitoring import enrichment_errors, words_processed
from wordsheet.services.edit_lock import EditLock
from wordsheet.services.enrichment_client import EnrichmentClient
from wordsheet.services.formatter import flatten_sense_groups, sentinel_content
from wordsheet.services.srs_scheduler import next_due_date
from wordsheet.services.word_table import WordTable

logger = logging.getLogger(__name__)


class WordProcessor:
    """Checks, enriches and writes single words."""

    def __init__(
        self,
        table: WordTable,
        client: EnrichmentClient,
        review_settings: ReviewSettings,
        sheet_settings: SheetSettings,
        lock: EditLock,
    ):
        """Initialize the processor with its collaborators."""
        self.table = table
        self.client = client
        self.review_settings = review_settings
        self.sheet_settings = sheet_settings
        self.lock = lock

    def initial_review_state(self, now: datetime) -> ReviewState:
        """Review state of a freshly added word."""
        return ReviewState(
            next_due_date=next_due_date(now, self.review_settings.new_word_delay_days),
            review_count=0,
            total_reviews=0,
        )

    def _stamp(self, record: WordRecord, word: str, now: datetime) -> WordRecord:
        """Set the word and timestamps; scheduling defaults only on first creation."""
        record = replace(record, word=word, modified_at=now)
        if record.created_at is None:
            record = replace(
                record,
                created_at=now,
                review=self.initial_review_state(now),
                quiz_usage_count=0,
            )
        return record

    @staticmethod
    def merge_refresh(record: WordRecord, groups: List[SenseGroup], now: datetime) -> WordRecord:
        """Replace the content fields of a record with fresh enrichment.

        Creation time, scheduling and user fields are carried over untouched.
        """
        return replace(record, **flatten_sense_groups(groups), modified_at=now)

    def sentinel_record(self, record: WordRecord, word: str, error: Exception, now: datetime) -> WordRecord:
        """Record shown when the lookup failed."""
        kind = "Parse error" if isinstance(error, ParseError) else "Service error"
        content = sentinel_content(f"{kind}: {error}", self.sheet_settings.placeholder)
        return self._stamp(replace(record, **content), word, now)

    async def process(self, word: str, row: int, now: Optional[datetime] = None) -> Result[WordRecord]:
        """Check, enrich and write the word of ``row``.

        Returns a failed result with ``EmptyWordError``, ``DuplicateWordError``
        or the enrichment error; the latter leaves a visible sentinel record.

        Raises:
            LockTimeoutError: if the edit lock is not acquired in time.
        """
        now = now or datetime.now(UTC)
        word = (word or "").strip()
        if not word:
            return Result.failure(EmptyWordError(row))

        async with self.lock.hold(f"processing '{word}' in row {row}"):
            conflicting_row = self.table.find_duplicate(word, exclude_row=row)
            if conflicting_row is not None:
                self.table.set_word(row, "")
                words_processed.labels(outcome="duplicate").inc()
                logger.warning(f"'{word}' in row {row} duplicates row {conflicting_row}; cleared")
                return Result.failure(DuplicateWordError(word, conflicting_row))
            return await self._enrich(word, row, now)

    async def _enrich(self, word: str, row: int, now: datetime) -> Result[WordRecord]:
        """Look up ``word`` and write the result to ``row``; the lock must be held."""
        record = self.table.read(row) or WordRecord(row=row)
        try:
            groups = await self.client.lookup(word)
        except EnrichmentServiceError as e:
            enrichment_errors.labels(error_type=type(e).__name__).inc()
            words_processed.labels(outcome="enrichment_error").inc()
            logger.error(f"Enrichment failed for '{word}' in row {row}: {e}")
            self.table.write(self.sentinel_record(record, word, e, now))
            return Result.failure(e)

        record = self._stamp(self.merge_refresh(record, groups, now), word, now)
        self.table.write(record)
        words_processed.labels(outcome="success").inc()
        logger.info(f"Processed '{word}' in row {row}: {record.part_of_speech}")
        return Result.success(record)

    async def handle_row_changed(self, event: RowChangedEvent, now: Optional[datetime] = None) -> Result[Optional[WordRecord]]:
        """React to an edit of a row's word cell; an empty value clears the row."""
        if not (event.new_value or "").strip():
            async with self.lock.hold(f"clearing row {event.row}"):
                self.table.clear_row(event.row)
            logger.info(f"Cleared row {event.row}")
            return Result.success(None)
        return await self.process(event.new_value, event.row, now)

    async def add_word(self, word: str, now: Optional[datetime] = None) -> Result[WordRecord]:
        """Append a new row for ``word`` and process it under one lock hold."""
        now = now or datetime.now(UTC)
        word = (word or "").strip()
        if not word:
            return Result.failure(EmptyWordError(self.table.row_count() + 1))

        async with self.lock.hold(f"adding '{word}'"):
            conflicting_row = self.table.find_duplicate(word)
            if conflicting_row is not None:
                words_processed.labels(outcome="duplicate").inc()
                return Result.failure(DuplicateWordError(word, conflicting_row))
            row = self.table.append_word(word)
            return await self._enrich(word, row, now)
