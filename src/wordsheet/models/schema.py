"""Versioned column layout of the word sheet.

Column positions are configuration: each schema version lists the header
of the sheet in order, and a sheet written under an older layout is read by
resolving its header row with :meth:`ColumnSchema.from_header`.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

from wordsheet.models.records import ReviewState, UserMetadata, WordRecord

logger = logging.getLogger(__name__)

FIELD_LABELS: Dict[str, str] = {
    "word": "Word",
    "part_of_speech": "Part of Speech",
    "definitions": "Definitions",
    "examples": "Examples",
    "translations": "Translations",
    "synonyms": "Synonyms",
    "antonyms": "Antonyms",
    "notes": "Notes",
    "pronunciation": "Pronunciation",
    "related_forms": "Related Forms",
    "created_at": "Created",
    "modified_at": "Modified",
    "next_due_date": "Next Review",
    "review_count": "Review Count",
    "total_reviews": "Total Reviews",
    "quiz_usage_count": "Quiz Usage",
    "speaking": "Speaking",
    "writing": "Writing",
    "difficulty": "Difficulty",
}

CONTENT_FIELDS = (
    "part_of_speech",
    "definitions",
    "examples",
    "translations",
    "synonyms",
    "antonyms",
    "notes",
    "pronunciation",
    "related_forms",
)
SCHEDULING_FIELDS = ("next_due_date", "review_count", "total_reviews", "quiz_usage_count")
USER_FIELDS = ("speaking", "writing", "difficulty")

SCHEMA_VERSIONS: Dict[int, List[str]] = {
    # First layout: scheduling next to the word, no related forms or user flags.
    1: [
        "word",
        "next_due_date",
        "review_count",
        "total_reviews",
        "part_of_speech",
        "definitions",
        "examples",
        "translations",
        "synonyms",
        "antonyms",
        "notes",
        "pronunciation",
        "created_at",
        "modified_at",
        "quiz_usage_count",
    ],
    2: [
        "word",
        *CONTENT_FIELDS,
        "created_at",
        "modified_at",
        *SCHEDULING_FIELDS,
        *USER_FIELDS,
    ],
}

_LABEL_TO_FIELD = {label.lower(): name for name, label in FIELD_LABELS.items()}


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def _as_int(value: Any) -> int:
    if value in (None, ""):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "y", "x")
    return bool(value)


def _as_date(value: Any) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.warning(f"Ignoring unreadable date cell: {value!r}")
        return None


def _as_datetime(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        logger.warning(f"Ignoring unreadable timestamp cell: {value!r}")
        return None


class ColumnSchema:
    """Mapping between record fields and column positions."""

    def __init__(self, fields: Sequence[str], version: Optional[int] = None):
        unknown = [name for name in fields if name not in FIELD_LABELS]
        if unknown:
            raise ValueError(f"Unknown sheet fields: {unknown}")
        if "word" not in fields:
            raise ValueError("Sheet layout must contain a word column")
        if len(set(fields)) != len(fields):
            raise ValueError("Sheet layout has duplicate columns")
        self.fields = list(fields)
        self.version = version
        self._positions = {name: i for i, name in enumerate(self.fields)}

    @classmethod
    def for_version(cls, version: int) -> "ColumnSchema":
        """Get the schema of a known layout version."""
        if version not in SCHEMA_VERSIONS:
            raise ValueError(f"Unknown schema version: {version}")
        return cls(SCHEMA_VERSIONS[version], version=version)

    @classmethod
    def from_header(cls, header: Sequence[str]) -> "ColumnSchema":
        """Resolve the layout from a header row of labels or field names."""
        fields = []
        for cell in header:
            key = str(cell).strip()
            name = key if key in FIELD_LABELS else _LABEL_TO_FIELD.get(key.lower())
            if name is None:
                raise ValueError(f"Unknown header column: {cell!r}")
            fields.append(name)
        version = next(
            (v for v, layout in SCHEMA_VERSIONS.items() if layout == fields), None
        )
        return cls(fields, version=version)

    @property
    def width(self) -> int:
        return len(self.fields)

    @property
    def header(self) -> List[str]:
        return [FIELD_LABELS[name] for name in self.fields]

    def index(self, name: str) -> int:
        """Get the 0-based column position of a field."""
        try:
            return self._positions[name]
        except KeyError:
            raise KeyError(f"Field '{name}' is not part of this sheet layout") from None

    def encode(self, record: WordRecord) -> List[Any]:
        """Turn a record into the cell values of one row."""
        values = {
            "word": record.word,
            "created_at": record.created_at.isoformat() if record.created_at else "",
            "modified_at": record.modified_at.isoformat() if record.modified_at else "",
            "next_due_date": (
                record.review.next_due_date.isoformat() if record.review.next_due_date else ""
            ),
            "review_count": record.review.review_count,
            "total_reviews": record.review.total_reviews,
            "quiz_usage_count": record.quiz_usage_count,
            "speaking": record.user.speaking,
            "writing": record.user.writing,
            "difficulty": record.user.difficulty,
        }
        for name in CONTENT_FIELDS:
            values[name] = getattr(record, name)
        return [values[name] for name in self.fields]

    def decode(self, row: int, cells: Sequence[Any]) -> WordRecord:
        """Build a record from the cell values of one row."""
        cells = list(cells) + [""] * (self.width - len(cells))
        raw = dict(zip(self.fields, cells))
        get = raw.get
        record = WordRecord(
            row=row,
            word=_as_text(get("word")).strip(),
            created_at=_as_datetime(get("created_at")),
            modified_at=_as_datetime(get("modified_at")),
            review=ReviewState(
                next_due_date=_as_date(get("next_due_date")),
                review_count=_as_int(get("review_count")),
                total_reviews=_as_int(get("total_reviews")),
            ),
            quiz_usage_count=_as_int(get("quiz_usage_count")),
            user=UserMetadata(
                speaking=_as_bool(get("speaking")),
                writing=_as_bool(get("writing")),
                difficulty=_as_int(get("difficulty")),
            ),
        )
        for name in CONTENT_FIELDS:
            setattr(record, name, _as_text(get(name)))
        return record

    def blank_row(self) -> List[Any]:
        return [""] * self.width
