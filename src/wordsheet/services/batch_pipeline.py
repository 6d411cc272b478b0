"""Resumable batch refresh of the whole sheet.

The sheet is walked in fixed-size windows in increasing row order. For each
window the words are looked up concurrently, fresh content is merged into
the rows (creation time, scheduling and user fields are never touched), the
window is written back in one call and only then the cursor is persisted.
A crash before the write leaves no trace; a crash between the write and the
cursor update repeats that window on the next run. Rows are processed at
least once, never skipped.
"""
import asyncio
import logging
import time
from datetime import UTC, datetime
from typing import List, Optional, Tuple

from wordsheet.config import BatchSettings
from wordsheet.errors import EnrichmentServiceError
from wordsheet.models.records import BatchStatus, SenseGroup, WordRecord
from wordsheet.monitoring import (
    batch_rows_refreshed,
    batch_windows,
    enrichment_errors,
    window_duration,
)
from wordsheet.services.edit_lock import EditLock
from wordsheet.services.enrichment_client import EnrichmentClient
from wordsheet.services.kv_store import KeyValueStore
from wordsheet.services.word_processor import WordProcessor
from wordsheet.services.word_table import WordTable

logger = logging.getLogger(__name__)


class BatchPipeline:
    """Windowed, resumable enrichment refresh."""

    def __init__(
        self,
        table: WordTable,
        client: EnrichmentClient,
        kv: KeyValueStore,
        settings: BatchSettings,
        lock: EditLock,
    ):
        """Initialize the pipeline with its collaborators."""
        self.table = table
        self.client = client
        self.kv = kv
        self.settings = settings
        self.lock = lock

    @property
    def cursor_row(self) -> int:
        """Last row written by the pipeline; 0 before the first window."""
        value = self.kv.get(self.settings.cursor_key)
        try:
            return max(int(value), 0) if value is not None else 0
        except ValueError:
            logger.warning(f"Ignoring unreadable batch cursor {value!r}")
            return 0

    def status(self) -> BatchStatus:
        """Get progress; safe to call at any time."""
        cursor = self.cursor_row
        total = self.table.row_count()
        return BatchStatus(
            last_processed=min(cursor, total),
            total_rows=total,
            is_complete=cursor >= total,
        )

    def resume(self) -> BatchStatus:
        """Forget the cursor so the next window starts again at row 1.

        Row content is not touched.
        """
        self.kv.delete(self.settings.cursor_key)
        self.kv.delete(self.settings.total_key)
        logger.info("Batch cursor cleared; next window starts at row 1")
        return self.status()

    async def _lookup(self, semaphore: asyncio.Semaphore, record: WordRecord) -> Tuple[WordRecord, Optional[List[SenseGroup]]]:
        async with semaphore:
            try:
                return record, await self.client.lookup(record.word)
            except EnrichmentServiceError as e:
                enrichment_errors.labels(error_type=type(e).__name__).inc()
                logger.warning(f"Batch refresh of '{record.word}' (row {record.row}) failed: {e}")
                return record, None

    async def process_next_window(self, now: Optional[datetime] = None) -> BatchStatus:
        """Refresh the next window of rows and advance the cursor."""
        now = now or datetime.now(UTC)
        total = self.table.row_count()
        start_row = self.cursor_row + 1
        if start_row > total:
            logger.info(f"Batch refresh complete ({total} rows)")
            return self.status()

        started = time.monotonic()
        window_size = min(self.settings.batch_size, total - start_row + 1)
        records = self.table.read_window(start_row, window_size)
        semaphore = asyncio.Semaphore(self.settings.batch_size)
        results = await asyncio.gather(*(
            self._lookup(semaphore, record) for record in records if not record.is_blank
        ))

        refreshed = {
            record.row: (record.word, groups)
            for record, groups in results
            if groups is not None
        }

        async with self.lock.hold(f"writing batch window {start_row}-{start_row + window_size - 1}"):
            # Re-read so answers given while the lookups ran are kept
            current = self.table.read_window(start_row, window_size)
            merged = [
                self._merge(record, refreshed.get(record.row), now)
                for record in current
            ]
            self.table.write_window(start_row, merged)

        cursor = start_row + window_size - 1
        self.kv.set(self.settings.cursor_key, str(cursor))
        self.kv.set(self.settings.total_key, str(total))

        batch_windows.inc()
        batch_rows_refreshed.inc(len(refreshed))
        window_duration.observe(time.monotonic() - started)
        logger.info(
            f"Batch window rows {start_row}-{cursor}: {len(refreshed)} refreshed, "
            f"{len(results) - len(refreshed)} failed, {window_size - len(results)} blank"
        )
        return self.status()

    @staticmethod
    def _merge(
        current: WordRecord,
        refreshed: Optional[Tuple[str, List[SenseGroup]]],
        now: datetime,
    ) -> WordRecord:
        """Apply fresh content onto the row as it is now.

        Failed lookups keep the prior content; a row whose word changed while
        the lookups ran is left alone.
        """
        if refreshed is None:
            return current
        word, groups = refreshed
        if word.casefold() != current.word.casefold():
            logger.info(f"Row {current.row} changed from '{word}' during the window; skipped")
            return current
        return WordProcessor.merge_refresh(current, groups, now)
