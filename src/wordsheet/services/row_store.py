"""Row store adapters: a sheet of positional cells addressed by row index.

Rows are 1-based and exclude the header. Every call is atomic on its own;
nothing is transactional across calls.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from wordsheet.models.models import SheetRow

logger = logging.getLogger(__name__)

SortKey = Tuple[int, bool]  # (column index, ascending)


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _sort_value(value: Any) -> tuple:
    if isinstance(value, bool):
        return (0, float(value), "")
    if isinstance(value, (int, float)):
        return (0, float(value), "")
    return (1, 0.0, str(value).lower())


class RowStore(ABC):
    """Tabular store of rows of cells."""

    @abstractmethod
    def header(self) -> List[str]:
        """Get the header row (empty for a new store)."""

    @abstractmethod
    def set_header(self, names: Sequence[str]) -> None:
        """Replace the header row."""

    @abstractmethod
    def row_count(self) -> int:
        """Get the number of data rows."""

    @abstractmethod
    def _read(self, start_row: int, count: int) -> List[List[Any]]:
        """Read whole rows."""

    @abstractmethod
    def _write(self, start_row: int, rows: List[List[Any]], first_col: int) -> None:
        """Write cells starting at a column, creating rows when appending."""

    @abstractmethod
    def delete_row(self, row: int) -> None:
        """Delete a row, shifting the following rows up."""

    def read_rows(
        self,
        start_row: int,
        count: int,
        first_col: int = 0,
        last_col: Optional[int] = None,
    ) -> List[List[Any]]:
        """Read ``count`` rows from ``start_row`` limited to a column range."""
        if start_row < 1 or count < 0:
            raise ValueError(f"Invalid row range: start={start_row}, count={count}")
        width = len(self.header())
        result = []
        for cells in self._read(start_row, count):
            stop = (last_col + 1) if last_col is not None else max(width, len(cells))
            cells = list(cells) + [""] * max(0, stop - len(cells))
            result.append(cells[first_col:stop])
        return result

    def write_rows(self, start_row: int, rows: Sequence[Sequence[Any]], first_col: int = 0) -> None:
        """Write rows starting at ``start_row``; writing right after the last row appends."""
        if start_row < 1:
            raise ValueError(f"Invalid start row: {start_row}")
        if start_row > self.row_count() + 1:
            raise ValueError(
                f"Cannot write at row {start_row}: store has {self.row_count()} rows"
            )
        if not rows:
            return
        self._write(start_row, [list(cells) for cells in rows], first_col)

    def sort(self, by: Sequence[SortKey]) -> None:
        """Sort the data rows by columns; empty cells go last."""
        count = self.row_count()
        if count < 2 or not by:
            return
        rows = self._read(1, count)
        width = max(len(self.header()), max(len(cells) for cells in rows))
        rows = [list(cells) + [""] * (width - len(cells)) for cells in rows]
        for column, ascending in reversed(list(by)):
            rows.sort(key=lambda cells: _sort_value(cells[column]), reverse=not ascending)
            rows.sort(key=lambda cells: _is_empty(cells[column]))
        self._write(1, rows, 0)
        logger.info(f"Sorted {count} rows by {list(by)}")


def _merge_cells(current: List[Any], values: List[Any], first_col: int) -> List[Any]:
    cells = list(current)
    if len(cells) < first_col + len(values):
        cells.extend([""] * (first_col + len(values) - len(cells)))
    cells[first_col:first_col + len(values)] = values
    return cells


class MemoryRowStore(RowStore):
    """Row store kept in a list; used by tests and tools."""

    def __init__(self, header: Optional[Sequence[str]] = None, rows: Optional[Sequence[Sequence[Any]]] = None):
        self._header = list(header or [])
        self._rows = [list(cells) for cells in (rows or [])]

    def header(self) -> List[str]:
        return list(self._header)

    def set_header(self, names: Sequence[str]) -> None:
        self._header = list(names)

    def row_count(self) -> int:
        return len(self._rows)

    def _read(self, start_row: int, count: int) -> List[List[Any]]:
        return [list(cells) for cells in self._rows[start_row - 1:start_row - 1 + count]]

    def _write(self, start_row: int, rows: List[List[Any]], first_col: int) -> None:
        for offset, values in enumerate(rows):
            index = start_row - 1 + offset
            if index < len(self._rows):
                self._rows[index] = _merge_cells(self._rows[index], values, first_col)
            else:
                self._rows.append(_merge_cells([], values, first_col))

    def delete_row(self, row: int) -> None:
        if not 1 <= row <= len(self._rows):
            raise IndexError(f"Row {row} does not exist")
        del self._rows[row - 1]


class SqlRowStore(RowStore):
    """Row store persisted with SQLAlchemy, one ``SheetRow`` per row."""

    HEADER_POSITION = 0

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize the store with a session factory."""
        self.session_factory = session_factory

    def header(self) -> List[str]:
        with self.session_factory() as db:
            row = db.query(SheetRow).filter(SheetRow.position == self.HEADER_POSITION).first()
            return list(row.cells) if row else []

    def set_header(self, names: Sequence[str]) -> None:
        with self.session_factory() as db:
            row = db.query(SheetRow).filter(SheetRow.position == self.HEADER_POSITION).first()
            if row is None:
                db.add(SheetRow(position=self.HEADER_POSITION, cells=list(names)))
            else:
                row.cells = list(names)
            db.commit()

    def row_count(self) -> int:
        with self.session_factory() as db:
            return db.query(SheetRow).filter(SheetRow.position > self.HEADER_POSITION).count()

    def _read(self, start_row: int, count: int) -> List[List[Any]]:
        with self.session_factory() as db:
            rows = (
                db.query(SheetRow)
                .filter(
                    SheetRow.position >= start_row,
                    SheetRow.position < start_row + count,
                )
                .order_by(SheetRow.position)
                .all()
            )
            return [list(row.cells) for row in rows]

    def _write(self, start_row: int, rows: List[List[Any]], first_col: int) -> None:
        with self.session_factory() as db:
            existing = {
                row.position: row
                for row in db.query(SheetRow)
                .filter(
                    SheetRow.position >= start_row,
                    SheetRow.position < start_row + len(rows),
                )
                .all()
            }
            for offset, values in enumerate(rows):
                position = start_row + offset
                row = existing.get(position)
                if row is None:
                    db.add(SheetRow(position=position, cells=_merge_cells([], values, first_col)))
                else:
                    # JSON columns only notice reassignment
                    row.cells = _merge_cells(row.cells, values, first_col)
            db.commit()

    def delete_row(self, row: int) -> None:
        with self.session_factory() as db:
            target = db.query(SheetRow).filter(SheetRow.position == row).first()
            if target is None or row < 1:
                raise IndexError(f"Row {row} does not exist")
            db.delete(target)
            db.query(SheetRow).filter(SheetRow.position > row).update(
                {SheetRow.position: SheetRow.position - 1}, synchronize_session=False
            )
            db.commit()
