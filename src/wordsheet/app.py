"""Main application: wiring of stores, services and the Telegram bot."""
import logging
from dataclasses import dataclass
from typing import Callable, Optional
from warnings import filterwarnings

from sqlalchemy.orm import Session
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ConversationHandler,
    MessageHandler,
    filters,
)
from telegram.warnings import PTBUserWarning

from wordsheet.bot import (
    ADDING_WORDS,
    MAIN_MENU,
    QUIZ,
    REVIEWING,
    UNSCRAMBLE,
    handle_add_words,
    handle_batch,
    handle_callback,
    handle_delete_row,
    handle_edit_row,
    handle_message,
    handle_review_response,
    handle_sort,
    handle_start,
    handle_unscramble_answer,
    show_cram,
    start_quiz,
    start_review,
    start_unscramble,
)
from wordsheet.config import Settings, settings as default_settings
from wordsheet.models.base import SessionLocal, init_db
from wordsheet.monitoring import start_monitoring
from wordsheet.services.batch_pipeline import BatchPipeline
from wordsheet.services.edit_lock import EditLock
from wordsheet.services.enrichment_client import EnrichmentClient
from wordsheet.services.kv_store import KeyValueStore, SqlKeyValueStore
from wordsheet.services.quiz_service import QuizService
from wordsheet.services.review_service import ReviewService
from wordsheet.services.row_store import RowStore, SqlRowStore
from wordsheet.services.scheduler_service import SchedulerService
from wordsheet.services.word_processor import WordProcessor
from wordsheet.services.word_table import WordTable

# Suppress the warning about CallbackQueryHandler and per_message
filterwarnings(action="ignore", message=r".*CallbackQueryHandler", category=PTBUserWarning)


@dataclass
class Services:
    """Everything the front-end needs, built once per process."""
    settings: Settings
    table: WordTable
    kv: KeyValueStore
    client: EnrichmentClient
    lock: EditLock
    processor: WordProcessor
    review: ReviewService
    quiz: QuizService
    pipeline: BatchPipeline
    runner: SchedulerService


def build_services(
    settings: Settings,
    store: Optional[RowStore] = None,
    kv: Optional[KeyValueStore] = None,
    client: Optional[EnrichmentClient] = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> Services:
    """Create the services; stores default to the SQL adapters."""
    store = store or SqlRowStore(session_factory)
    kv = kv or SqlKeyValueStore(session_factory)
    client = client or EnrichmentClient(settings.enrichment)
    lock = EditLock(settings.lock)
    table = WordTable.open(store, settings.sheet.schema_version)
    processor = WordProcessor(table, client, settings.review, settings.sheet, lock)
    pipeline = BatchPipeline(table, client, kv, settings.batch, lock)
    return Services(
        settings=settings,
        table=table,
        kv=kv,
        client=client,
        lock=lock,
        processor=processor,
        review=ReviewService(table, settings.review, lock),
        quiz=QuizService(table, settings.quiz, settings.sheet, lock),
        pipeline=pipeline,
        runner=SchedulerService(pipeline, settings.batch),
    )


def build_conversation() -> ConversationHandler:
    """Create conversation handler for both messages and callbacks."""
    commands = [
        CommandHandler("start", handle_start),
        CommandHandler("review", start_review),
        CommandHandler("cram", show_cram),
        CommandHandler("quiz", start_quiz),
        CommandHandler("unscramble", start_unscramble),
        CommandHandler("edit", handle_edit_row),
        CommandHandler("delete", handle_delete_row),
        CommandHandler("sort", handle_sort),
        CommandHandler("batch", handle_batch),
    ]
    return ConversationHandler(
        entry_points=commands,
        states={
            MAIN_MENU: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message),
                CallbackQueryHandler(handle_callback),
            ],
            ADDING_WORDS: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, handle_add_words),
                CallbackQueryHandler(handle_callback),
            ],
            REVIEWING: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, handle_review_response),
                CallbackQueryHandler(handle_callback),
            ],
            QUIZ: [
                CallbackQueryHandler(handle_callback),
            ],
            UNSCRAMBLE: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, handle_unscramble_answer),
                CallbackQueryHandler(handle_callback),
            ],
        },
        fallbacks=commands,
        per_message=False,
    )


class WordSheetApp:
    """Main application class."""

    def __init__(self, settings: Settings = default_settings):
        """Initialize the application."""
        self.settings = settings
        self.application: Optional[Application] = None
        self.services: Optional[Services] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            self.settings.validate(require_token=True)

            # Initialize database
            init_db()
            self.services = build_services(self.settings)
            self.logger.info("Services initialized")

            if self.settings.monitoring.enabled:
                start_monitoring(self.settings.monitoring.port)
                self.logger.info("Metrics exported on port %d", self.settings.monitoring.port)

            # Create application
            self.application = Application.builder().token(self.settings.bot.token).build()
            self.application.bot_data["services"] = self.services
            self.application.add_handler(build_conversation())
            self.logger.info("Handlers added")

            # Start application
            await self.application.initialize()
            await self.application.start()
            await self.application.updater.start_polling()
            self.logger.info("Application started")

            self.running = True

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            self.running = True
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the application."""
        if not self.running:
            return

        try:
            # Let the batch window in flight finish
            if self.services:
                await self.services.runner.stop()
                await self.services.client.aclose()
                self.logger.info("Batch runner stopped")

            if self.application:
                if self.application.updater and self.application.updater.running:
                    await self.application.updater.stop()
                if self.application.running:
                    await self.application.stop()
                await self.application.shutdown()
                self.application = None
                self.logger.info("Application stopped")

        finally:
            self.services = None
            self.running = False
