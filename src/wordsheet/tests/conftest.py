"""Test configuration."""
import asyncio
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from dotenv import load_dotenv

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="wordsheet-test-"))

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from sqlalchemy.orm import sessionmaker  # noqa: E402

from wordsheet.config import (  # noqa: E402
    BatchSettings,
    LockSettings,
    QuizSettings,
    ReviewSettings,
    SheetSettings,
    ensure_directories,
)
from wordsheet.errors import EnrichmentServiceError  # noqa: E402
from wordsheet.models.base import init_db, make_engine  # noqa: E402
from wordsheet.models.records import (  # noqa: E402
    GeneralExample,
    Meaning,
    RelatedForm,
    SenseGroup,
)
from wordsheet.services.edit_lock import EditLock  # noqa: E402
from wordsheet.services.kv_store import MemoryKeyValueStore  # noqa: E402
from wordsheet.services.row_store import MemoryRowStore  # noqa: E402
from wordsheet.services.word_table import WordTable  # noqa: E402


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment before each test."""
    # Ensure test directories exist
    ensure_directories()

    yield


def make_groups(word: str, pos: str = "verb") -> List[SenseGroup]:
    """Sense-groups as the enrichment service would return them for ``word``."""
    return [
        SenseGroup(
            part_of_speech=pos,
            meanings=[
                Meaning(
                    definition=f"to {word} quickly",
                    example=f"I {word} every day.",
                    translation=f"{word}-tr",
                ),
            ],
            general_examples=[GeneralExample(f"They {word} together.", "вместе")],
            synonyms=[f"{word}-syn"],
            antonyms=[f"{word}-ant"],
            notes=["informal"],
            pronunciation={"uk": f"/{word}/", "us": f"/{word}/"},
            related_forms=[RelatedForm(f"{word}ner", "noun")],
        )
    ]


class FakeEnrichmentClient:
    """Stands in for the HTTP client; failures are configured per word."""

    def __init__(self, failures: Optional[Dict[str, Exception]] = None, delay: float = 0.0):
        self.failures = {k.casefold(): v for k, v in (failures or {}).items()}
        self.delay = delay
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def lookup(self, word: str) -> List[SenseGroup]:
        self.calls.append(word)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            error = self.failures.get(word.casefold())
            if error is not None:
                raise error
            return make_groups(word)
        finally:
            self.in_flight -= 1

    async def aclose(self) -> None:
        pass


@pytest.fixture
def now() -> datetime:
    """Fixed clock."""
    return datetime(2024, 3, 1, 10, 30, tzinfo=UTC)


@pytest.fixture
def store() -> MemoryRowStore:
    return MemoryRowStore()


@pytest.fixture
def table(store: MemoryRowStore) -> WordTable:
    return WordTable.open(store)


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def lock() -> EditLock:
    return EditLock(LockSettings(timeout_seconds=1))


@pytest.fixture
def client() -> FakeEnrichmentClient:
    return FakeEnrichmentClient()


@pytest.fixture
def failing_client_factory():
    """Build a fake client failing for the given words."""
    def factory(*words: str, error: Optional[Exception] = None) -> FakeEnrichmentClient:
        return FakeEnrichmentClient(
            {word: error or EnrichmentServiceError(f"lookup of {word} failed") for word in words}
        )
    return factory


@pytest.fixture
def review_settings() -> ReviewSettings:
    return ReviewSettings(
        good_ladder=[3, 7, 14],
        good_cap=30,
        easy_ladder=[7, 30, 90],
        easy_cap=180,
        new_word_delay_days=1,
    )


@pytest.fixture
def sheet_settings() -> SheetSettings:
    return SheetSettings(schema_version=2, placeholder="—")


@pytest.fixture
def batch_settings() -> BatchSettings:
    return BatchSettings(batch_size=2, interval_seconds=0)


@pytest.fixture
def quiz_settings() -> QuizSettings:
    return QuizSettings(questions_per_session=3, min_pool=4, distractors=3)


@pytest.fixture
def session_factory():
    """Sessions on a fresh in-memory database."""
    engine = make_engine("sqlite://")
    init_db(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def groups_for():
    """Build sense-groups for a word."""
    return make_groups


@pytest.fixture
def slow_client() -> FakeEnrichmentClient:
    """Fake client whose lookups take a moment, so they overlap."""
    return FakeEnrichmentClient(delay=0.01)
