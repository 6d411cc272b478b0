"""Tests for single-word processing."""
import asyncio
from dataclasses import replace
from datetime import date, timedelta

import pytest

from wordsheet.config import LockSettings
from wordsheet.errors import (
    DuplicateWordError,
    EmptyWordError,
    EnrichmentServiceError,
    LockTimeoutError,
    ParseError,
)
from wordsheet.models.records import ReviewState, RowChangedEvent, UserMetadata
from wordsheet.services.edit_lock import EditLock
from wordsheet.services.word_processor import WordProcessor


@pytest.fixture
def processor(table, client, review_settings, sheet_settings, lock) -> WordProcessor:
    return WordProcessor(table, client, review_settings, sheet_settings, lock)


@pytest.mark.asyncio
async def test_process_new_word(processor: WordProcessor, table, now):
    row = table.append_word("run")

    result = await processor.process("run", row, now)

    assert result.ok
    record = table.read(row)
    assert record == result.value
    assert record.part_of_speech == "verb"
    assert record.definitions == "[verb]\n1. to run quickly"
    assert record.created_at == now
    assert record.modified_at == now
    assert record.review == ReviewState(
        next_due_date=now.date() + timedelta(days=1), review_count=0, total_reviews=0
    )
    assert record.quiz_usage_count == 0


@pytest.mark.asyncio
async def test_reprocess_keeps_creation_and_schedule(processor: WordProcessor, table, now):
    row = table.append_word("run")
    await processor.process("run", row, now)
    reviewed = replace(
        table.read(row),
        review=ReviewState(next_due_date=date(2024, 4, 1), review_count=3, total_reviews=5),
        quiz_usage_count=2,
        user=UserMetadata(speaking=True, difficulty=2),
    )
    table.write(reviewed)

    later = now + timedelta(days=10)
    result = await processor.process("run", row, later)

    record = result.unwrap()
    assert record.created_at == now
    assert record.modified_at == later
    assert record.review == reviewed.review
    assert record.quiz_usage_count == 2
    assert record.user == reviewed.user


@pytest.mark.asyncio
async def test_empty_word(processor: WordProcessor, table, client, now):
    row = table.append_word("  ")

    result = await processor.process("   ", row, now)

    assert isinstance(result.error, EmptyWordError)
    assert client.calls == []


@pytest.mark.asyncio
async def test_duplicate_clears_the_new_cell(processor: WordProcessor, table, client, now):
    await processor.add_word("Run", now)
    row = table.append_word("run")

    result = await processor.process("run", row, now)

    assert isinstance(result.error, DuplicateWordError)
    assert result.error.conflicting_row == 1
    assert table.read(row).is_blank
    assert table.read(1).word == "Run"
    assert client.calls == ["Run"]


@pytest.mark.asyncio
async def test_concurrent_edits_of_the_same_word(processor: WordProcessor, table, now):
    """Two rows edited to the same word: exactly one gets enriched."""
    for word in ("walk", "Run", "jump", "run"):
        table.append_word(word)

    results = await asyncio.gather(
        processor.handle_row_changed(RowChangedEvent(row=2, new_value="Run"), now),
        processor.handle_row_changed(RowChangedEvent(row=4, new_value="run"), now),
    )

    assert sum(1 for r in results if r.ok) == 1
    errors = [r.error for r in results if not r.ok]
    assert len(errors) == 1 and isinstance(errors[0], DuplicateWordError)
    enriched = [r for r in table.all_records() if r.word.casefold() == "run"]
    assert len(enriched) == 1
    assert enriched[0].part_of_speech == "verb"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, prefix",
    [
        (EnrichmentServiceError("HTTP 503"), "Service error"),
        (ParseError("No JSON found"), "Parse error"),
    ],
)
async def test_enrichment_failure_writes_sentinel(
    table, review_settings, sheet_settings, lock, failing_client_factory, now, error, prefix
):
    processor = WordProcessor(
        table, failing_client_factory("run", error=error), review_settings, sheet_settings, lock
    )
    row = table.append_word("run")

    result = await processor.process("run", row, now)

    assert result.error is error
    record = table.read(row)
    assert record.word == "run"
    assert record.part_of_speech.startswith(prefix)
    assert record.definitions == sheet_settings.placeholder
    assert record.created_at == now


@pytest.mark.asyncio
async def test_clearing_a_row(processor: WordProcessor, table, now):
    await processor.add_word("run", now)

    result = await processor.handle_row_changed(RowChangedEvent(row=1, new_value=""), now)

    assert result.ok and result.value is None
    assert table.read(1).is_blank
    assert table.read(1).definitions == ""


@pytest.mark.asyncio
async def test_add_word_rejects_duplicates(processor: WordProcessor, table, now):
    first = await processor.add_word("run", now)
    second = await processor.add_word("RUN", now)

    assert first.ok
    assert isinstance(second.error, DuplicateWordError)
    assert table.row_count() == 1


@pytest.mark.asyncio
async def test_lock_timeout(table, client, review_settings, sheet_settings, now):
    lock = EditLock(LockSettings(timeout_seconds=0.05))
    processor = WordProcessor(table, client, review_settings, sheet_settings, lock)
    row = table.append_word("run")

    async with lock.hold("test"):
        with pytest.raises(LockTimeoutError):
            await processor.process("run", row, now)

    assert table.read(row).definitions == ""


@pytest.mark.asyncio
async def test_add_word_lock_timeout_leaves_no_row(table, client, review_settings, sheet_settings, now):
    lock = EditLock(LockSettings(timeout_seconds=0.05))
    processor = WordProcessor(table, client, review_settings, sheet_settings, lock)

    async with lock.hold("test"):
        with pytest.raises(LockTimeoutError):
            await processor.add_word("run", now)

    assert table.row_count() == 0

    result = await processor.add_word("run", now)

    assert result.ok
    assert table.read(1).created_at == now
    assert table.read(1).review.next_due_date is not None
