"""Database models backing the row store and the job state."""
from sqlalchemy import JSON, Column, Integer, String

from wordsheet.models.base import Base, TimestampMixin


class SheetRow(Base, TimestampMixin):
    """One row of the word sheet; position 0 holds the header."""

    __tablename__ = "sheet_rows"

    id = Column(Integer, primary_key=True)
    position = Column(Integer, nullable=False, index=True)
    cells = Column(JSON, nullable=False, default=list)


class JobState(Base, TimestampMixin):
    """Durable key-value pair, e.g. the batch cursor."""

    __tablename__ = "job_state"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=False)
