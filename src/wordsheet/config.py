"""Configuration settings for the word sheet."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

VERSION = "0.1.0"

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
LOGS_DIR = DATA_DIR / "logs"

# Review settings
GOOD_LADDER = [3, 7, 14]  # days after a "Good" answer, indexed by total reviews
EASY_LADDER = [7, 30, 90]  # days after an "Easy" answer, indexed by total reviews


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [
        DATA_DIR,
        LOGS_DIR,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


def _int_list(value: str) -> list[int]:
    """Parse a comma separated list of integers."""
    return [int(item) for item in value.split(",") if item.strip()]


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR
    logs_dir: Path = LOGS_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///wordsheet.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


def get_admin_ids() -> list[int]:
    """Get admin IDs from environment variable."""
    return [int(id_) for id_ in os.getenv("TELEGRAM_ADMIN_IDS", "").split(",") if id_]


@dataclass
class BotSettings:
    """Bot configuration settings."""
    token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    admin_ids: list[int] = field(default_factory=get_admin_ids)


@dataclass
class EnrichmentSettings:
    """Settings for the external word enrichment service."""
    api_url: str = os.getenv(
        "ENRICHMENT_API_URL", "https://api.openai.com/v1/chat/completions"
    )
    api_key: str = os.getenv("ENRICHMENT_API_KEY", "")
    model: str = os.getenv("ENRICHMENT_MODEL", "gpt-4o-mini")
    timeout: float = float(os.getenv("ENRICHMENT_TIMEOUT", "60"))
    source_language: str = os.getenv("SOURCE_LANGUAGE", "English")
    native_language: str = os.getenv("NATIVE_LANGUAGE", "Russian")


@dataclass
class SheetSettings:
    """Row store layout settings."""
    schema_version: int = int(os.getenv("SHEET_SCHEMA_VERSION", "2"))
    placeholder: str = "—"


@dataclass
class BatchSettings:
    """Batch refresh settings."""
    batch_size: int = int(os.getenv("BATCH_SIZE", "10"))
    interval_seconds: float = float(os.getenv("BATCH_INTERVAL_SECONDS", "60"))
    cursor_key: str = "batch_cursor_row"
    total_key: str = "batch_total_rows"


@dataclass
class ReviewSettings:
    """Spaced repetition settings."""
    good_ladder: list[int] = field(
        default_factory=lambda: _int_list(os.getenv("GOOD_LADDER", "")) or list(GOOD_LADDER)
    )
    good_cap: int = int(os.getenv("GOOD_CAP", "30"))
    easy_ladder: list[int] = field(
        default_factory=lambda: _int_list(os.getenv("EASY_LADDER", "")) or list(EASY_LADDER)
    )
    easy_cap: int = int(os.getenv("EASY_CAP", "180"))
    new_word_delay_days: int = int(os.getenv("NEW_WORD_DELAY_DAYS", "1"))


@dataclass
class QuizSettings:
    """Quiz and drill settings."""
    questions_per_session: int = int(os.getenv("QUIZ_QUESTIONS", "10"))
    min_pool: int = int(os.getenv("QUIZ_MIN_POOL", "4"))
    distractors: int = 3


@dataclass
class LockSettings:
    """Edit lock settings."""
    timeout_seconds: float = float(os.getenv("LOCK_TIMEOUT", "90"))


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    enabled: bool = os.getenv("MONITORING_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("MONITORING_PORT", "9090"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_bot_settings() -> BotSettings:
    """Get bot settings."""
    return BotSettings()


def get_enrichment_settings() -> EnrichmentSettings:
    """Get enrichment settings."""
    return EnrichmentSettings()


def get_sheet_settings() -> SheetSettings:
    """Get sheet settings."""
    return SheetSettings()


def get_batch_settings() -> BatchSettings:
    """Get batch settings."""
    return BatchSettings()


def get_review_settings() -> ReviewSettings:
    """Get review settings."""
    return ReviewSettings()


def get_quiz_settings() -> QuizSettings:
    """Get quiz settings."""
    return QuizSettings()


def get_lock_settings() -> LockSettings:
    """Get lock settings."""
    return LockSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    bot: BotSettings = field(default_factory=get_bot_settings)
    enrichment: EnrichmentSettings = field(default_factory=get_enrichment_settings)
    sheet: SheetSettings = field(default_factory=get_sheet_settings)
    batch: BatchSettings = field(default_factory=get_batch_settings)
    review: ReviewSettings = field(default_factory=get_review_settings)
    quiz: QuizSettings = field(default_factory=get_quiz_settings)
    lock: LockSettings = field(default_factory=get_lock_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self, require_token: bool = False) -> None:
        """Validate settings and raise ValueError if invalid."""
        if require_token and not self.bot.token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")

        if self.batch.batch_size < 1:
            raise ValueError("BATCH_SIZE must be positive")

        for name, ladder in (("GOOD_LADDER", self.review.good_ladder),
                             ("EASY_LADDER", self.review.easy_ladder)):
            if not ladder:
                raise ValueError(f"{name} cannot be empty")
            if any(later <= earlier for earlier, later in zip(ladder, ladder[1:])):
                raise ValueError(f"{name} must be strictly increasing")

        if self.quiz.min_pool < self.quiz.distractors + 1:
            raise ValueError("QUIZ_MIN_POOL must leave room for the distractors")

        if self.lock.timeout_seconds <= 0:
            raise ValueError("LOCK_TIMEOUT must be positive")

        if self.lock.timeout_seconds <= self.enrichment.timeout:
            raise ValueError("LOCK_TIMEOUT must be longer than ENRICHMENT_TIMEOUT")


# Create global settings instance
settings = Settings()
settings.validate()
