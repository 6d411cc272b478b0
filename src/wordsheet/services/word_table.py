"""Record-level view of the row store."""
import logging
from typing import List, Optional, Sequence

from wordsheet.models.records import WordRecord
from wordsheet.models.schema import ColumnSchema
from wordsheet.services.row_store import RowStore

logger = logging.getLogger(__name__)


class WordTable:
    """Reads and writes ``WordRecord`` rows through a column schema."""

    def __init__(self, store: RowStore, schema: ColumnSchema):
        """Initialize the table with a store and its column layout."""
        self.store = store
        self.schema = schema

    @classmethod
    def open(cls, store: RowStore, schema_version: int = 2) -> "WordTable":
        """Open a store, resolving its layout from the header row.

        An empty store gets the header of ``schema_version``.
        """
        header = store.header()
        if header:
            schema = ColumnSchema.from_header(header)
            logger.info(f"Opened sheet with layout version {schema.version or 'custom'}")
        else:
            schema = ColumnSchema.for_version(schema_version)
            store.set_header(schema.header)
            logger.info(f"Initialized empty sheet with layout version {schema_version}")
        return cls(store, schema)

    def row_count(self) -> int:
        return self.store.row_count()

    def read(self, row: int) -> Optional[WordRecord]:
        """Get a single record or None if the row does not exist."""
        records = self.read_window(row, 1)
        return records[0] if records else None

    def read_window(self, start_row: int, count: int) -> List[WordRecord]:
        """Get ``count`` consecutive records from ``start_row``."""
        rows = self.store.read_rows(start_row, count, 0, self.schema.width - 1)
        return [self.schema.decode(start_row + i, cells) for i, cells in enumerate(rows)]

    def all_records(self) -> List[WordRecord]:
        count = self.row_count()
        return self.read_window(1, count) if count else []

    def write(self, record: WordRecord) -> None:
        self.store.write_rows(record.row, [self.schema.encode(record)])

    def write_window(self, start_row: int, records: Sequence[WordRecord]) -> None:
        """Write consecutive records in a single store call."""
        for offset, record in enumerate(records):
            if record.row != start_row + offset:
                raise ValueError(
                    f"Record for row {record.row} does not belong at row {start_row + offset}"
                )
        self.store.write_rows(start_row, [self.schema.encode(record) for record in records])

    def set_word(self, row: int, text: str) -> None:
        """Overwrite only the word cell of a row."""
        self.store.write_rows(row, [[text]], self.schema.index("word"))

    def append_word(self, word: str) -> int:
        """Append a row holding only the word; returns its row index."""
        row = self.row_count() + 1
        cells = self.schema.blank_row()
        cells[self.schema.index("word")] = word
        self.store.write_rows(row, [cells])
        return row

    def clear_row(self, row: int) -> None:
        """Blank every cell of a row without removing it."""
        self.store.write_rows(row, [self.schema.blank_row()])

    def delete_row(self, row: int) -> None:
        self.store.delete_row(row)

    def find_duplicate(self, word: str, exclude_row: Optional[int] = None) -> Optional[int]:
        """Get the row already holding ``word`` (case-insensitive), if any."""
        needle = word.strip().casefold()
        column = self.schema.index("word")
        count = self.row_count()
        if not count:
            return None
        for offset, cells in enumerate(self.store.read_rows(1, count, column, column)):
            row = offset + 1
            if row == exclude_row:
                continue
            if str(cells[0] or "").strip().casefold() == needle:
                return row
        return None

    def sort_by(self, *fields: str, ascending: bool = True) -> None:
        """Sort the sheet by named fields."""
        self.store.sort([(self.schema.index(name), ascending) for name in fields])
