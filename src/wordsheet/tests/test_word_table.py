"""Tests for the record view of the sheet."""
from dataclasses import replace
from datetime import date

import pytest
from faker import Faker

from wordsheet.models.records import ReviewState, WordRecord
from wordsheet.models.schema import ColumnSchema
from wordsheet.services.row_store import MemoryRowStore
from wordsheet.services.word_table import WordTable

fake = Faker()


def test_open_initializes_empty_store(store: MemoryRowStore):
    table = WordTable.open(store)

    assert store.header() == ColumnSchema.for_version(2).header
    assert table.schema.version == 2
    assert table.row_count() == 0
    assert table.all_records() == []


def test_open_reads_existing_layout():
    old = ColumnSchema.for_version(1)
    cells = old.blank_row()
    cells[old.index("word")] = "run"
    cells[old.index("review_count")] = 3
    store = MemoryRowStore(old.header, [cells])

    table = WordTable.open(store, schema_version=2)

    assert table.schema.version == 1
    assert store.header() == old.header
    assert table.read(1).review.review_count == 3


def test_append_and_read(table: WordTable):
    words = [fake.unique.word() for _ in range(3)]
    rows = [table.append_word(word) for word in words]

    assert rows == [1, 2, 3]
    assert [r.word for r in table.all_records()] == words
    assert table.read(4) is None


def test_write_window_checks_alignment(table: WordTable):
    table.append_word("run")
    table.append_word("walk")

    records = table.read_window(1, 2)
    table.write_window(1, [replace(r, notes="checked") for r in records])

    assert [r.notes for r in table.all_records()] == ["checked", "checked"]
    with pytest.raises(ValueError):
        table.write_window(2, records)


def test_set_word_touches_only_the_word(table: WordTable):
    table.append_word("run")
    record = replace(
        table.read(1),
        definitions="1. to move fast",
        review=ReviewState(next_due_date=date(2024, 5, 1), review_count=2, total_reviews=2),
    )
    table.write(record)

    table.set_word(1, "")

    updated = table.read(1)
    assert updated.is_blank
    assert updated.definitions == record.definitions
    assert updated.review == record.review


def test_clear_and_delete_row(table: WordTable):
    for word in ("run", "walk", "jump"):
        table.append_word(word)

    table.clear_row(1)
    table.delete_row(2)

    records = table.all_records()
    assert [r.word for r in records] == ["", "jump"]
    assert records[0] == WordRecord(row=1)


def test_find_duplicate_ignores_case_and_own_row(table: WordTable):
    table.append_word("Run")
    table.append_word("walk")

    assert table.find_duplicate("run") == 1
    assert table.find_duplicate("  RUN ") == 1
    assert table.find_duplicate("run", exclude_row=1) is None
    assert table.find_duplicate("jump") is None


def test_sort_by_due_date(table: WordTable):
    for word, due in (("run", date(2024, 3, 9)), ("walk", None), ("jump", date(2024, 3, 2))):
        row = table.append_word(word)
        table.write(replace(table.read(row), review=ReviewState(next_due_date=due)))

    table.sort_by("next_due_date")

    assert [r.word for r in table.all_records()] == ["jump", "run", "walk"]
