"""Dataclasses for word records and the data flowing between services."""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional


@dataclass
class Meaning:
    """One numbered meaning inside a sense-group."""
    definition: str
    example: str = ""
    translation: str = ""


@dataclass
class GeneralExample:
    """Example sentence not tied to a single meaning."""
    example: str
    translation: str = ""


@dataclass
class RelatedForm:
    """Derived or related word, e.g. ``runner (noun)``."""
    word: str
    part_of_speech: str = ""


@dataclass
class SenseGroup:
    """Enrichment data for one part of speech of a word."""
    part_of_speech: str
    meanings: List[Meaning] = field(default_factory=list)
    general_examples: List[GeneralExample] = field(default_factory=list)
    synonyms: List[str] = field(default_factory=list)
    antonyms: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    pronunciation: Dict[str, str] = field(default_factory=dict)  # {"uk": ..., "us": ...}
    related_forms: List[RelatedForm] = field(default_factory=list)


@dataclass
class ReviewState:
    """Spaced repetition state of a word."""
    next_due_date: Optional[date] = None
    review_count: int = 0  # successful streak
    total_reviews: int = 0  # times shown


@dataclass
class UserMetadata:
    """Flags set by the learner; never touched by enrichment or scheduling."""
    speaking: bool = False
    writing: bool = False
    difficulty: int = 0


@dataclass
class WordRecord:
    """One row of the word sheet."""
    row: int
    word: str = ""
    part_of_speech: str = ""
    definitions: str = ""
    examples: str = ""
    translations: str = ""
    synonyms: str = ""
    antonyms: str = ""
    notes: str = ""
    pronunciation: str = ""
    related_forms: str = ""
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    review: ReviewState = field(default_factory=ReviewState)
    quiz_usage_count: int = 0
    user: UserMetadata = field(default_factory=UserMetadata)

    @property
    def is_blank(self) -> bool:
        return not self.word.strip()


@dataclass
class RowChangedEvent:
    """The word cell of a single row changed."""
    row: int
    new_value: str


@dataclass
class BatchStatus:
    """Progress of the batch refresh."""
    last_processed: int
    total_rows: int
    is_complete: bool


@dataclass
class QuizQuestion:
    """Multiple choice question built from one row."""
    prompt: str
    correct_word: str
    distractor_words: List[str]
    options: List[str]
    row: int


@dataclass
class QuizAnswer:
    """Result of one answered quiz question."""
    row: int
    correct: bool


@dataclass
class UnscrambleTask:
    """Word drill: restore the word from shuffled letters."""
    scrambled: str
    correct_word: str
    hint: str
    row: int
