"""Tests for configuration settings."""
import os

import pytest

from wordsheet.config import (
    EASY_LADDER,
    GOOD_LADDER,
    BatchSettings,
    EnrichmentSettings,
    LockSettings,
    QuizSettings,
    ReviewSettings,
    Settings,
    settings,
)


def test_base_directories_exist():
    """Test that all required directories exist."""
    from wordsheet.config import DATA_DIR, LOGS_DIR

    assert DATA_DIR.exists()
    assert LOGS_DIR.exists()


def test_settings_defaults():
    """Test default settings values."""
    assert settings.review.good_ladder == GOOD_LADDER == [3, 7, 14]
    assert settings.review.easy_ladder == EASY_LADDER == [7, 30, 90]
    assert settings.review.good_cap == 30
    assert settings.review.easy_cap == 180
    assert settings.sheet.schema_version == 2
    assert settings.batch.cursor_key == "batch_cursor_row"
    assert settings.quiz.distractors == 3
    assert settings.quiz.min_pool == 4


def test_ladder_from_env(monkeypatch):
    """Test that the review ladders can be overridden by environment variables."""
    monkeypatch.setenv("GOOD_LADDER", "2, 5, 9, 20")

    review = ReviewSettings()

    assert review.good_ladder == [2, 5, 9, 20]
    assert review.easy_ladder == EASY_LADDER


def test_settings_from_env():
    """Test that the bot token is picked up when settings are rebuilt."""
    test_token = "test_token_123"
    os.environ["TELEGRAM_BOT_TOKEN"] = test_token
    try:
        from wordsheet.config import BotSettings

        # Dataclass defaults are read at import time; pass the value explicitly
        test_settings = Settings(bot=BotSettings(token=os.environ["TELEGRAM_BOT_TOKEN"]))
        test_settings.validate(require_token=True)
        assert test_settings.bot.token == test_token
    finally:
        del os.environ["TELEGRAM_BOT_TOKEN"]


def test_validate_requires_token():
    from wordsheet.config import BotSettings

    with pytest.raises(ValueError, match="TELEGRAM_BOT_TOKEN"):
        Settings(bot=BotSettings(token="")).validate(require_token=True)


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"batch": BatchSettings(batch_size=0)}, "BATCH_SIZE"),
        ({"review": ReviewSettings(good_ladder=[])}, "GOOD_LADDER"),
        ({"review": ReviewSettings(easy_ladder=[7, 7, 30])}, "EASY_LADDER"),
        ({"quiz": QuizSettings(min_pool=2, distractors=3)}, "QUIZ_MIN_POOL"),
        ({"lock": LockSettings(timeout_seconds=0)}, "LOCK_TIMEOUT"),
        (
            {"lock": LockSettings(timeout_seconds=30), "enrichment": EnrichmentSettings(timeout=60)},
            "ENRICHMENT_TIMEOUT",
        ),
    ],
)
def test_validate_rejects_bad_values(overrides, message):
    with pytest.raises(ValueError, match=message):
        Settings(**overrides).validate()


if __name__ == "__main__":
    pytest.main([__file__])
