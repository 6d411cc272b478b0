"""Service running the batch refresh on a cadence."""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from wordsheet.config import BatchSettings
from wordsheet.models.records import BatchStatus
from wordsheet.services.batch_pipeline import BatchPipeline

logger = logging.getLogger(__name__)

StatusCallback = Callable[[BatchStatus], Awaitable[None]]


class SchedulerService:
    """Runs batch windows one after another in the background.

    Stopping takes effect once the window in flight has been written; a
    window is never cancelled half way.
    """

    def __init__(
        self,
        pipeline: BatchPipeline,
        settings: BatchSettings,
        on_window: Optional[StatusCallback] = None,
    ):
        """Initialize the service with the pipeline to drive."""
        self.pipeline = pipeline
        self.settings = settings
        self.on_window = on_window
        self.tasks: Dict[str, asyncio.Task] = {}
        self.running = False
        self._stop_requested = asyncio.Event()

    async def run_once(self) -> BatchStatus:
        """Process a single window (manual mode)."""
        return await self.pipeline.process_next_window()

    async def start(self) -> None:
        """Start processing windows automatically."""
        if self.running:
            return

        self.running = True
        self._stop_requested.clear()
        logger.info("Starting batch auto mode...")
        self.tasks["batch_refresh"] = asyncio.create_task(self._run_batch_refresh())

    async def stop(self) -> None:
        """Stop auto mode after the window in flight."""
        if not self.running:
            return

        logger.info("Stopping batch auto mode...")
        self._stop_requested.set()
        await asyncio.gather(*self.tasks.values(), return_exceptions=True)
        self.tasks.clear()
        self.running = False

    async def restart(self) -> BatchStatus:
        """Stop auto mode, then clear the cursor so the next window starts at row 1."""
        await self.stop()
        return self.pipeline.resume()

    async def _wait_interval(self) -> bool:
        """Sleep between windows; returns True if a stop was requested."""
        try:
            await asyncio.wait_for(self._stop_requested.wait(), timeout=self.settings.interval_seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def _run_batch_refresh(self) -> None:
        """Run windows until the sheet is done or a stop is requested."""
        try:
            while not self._stop_requested.is_set():
                try:
                    status = await self.pipeline.process_next_window()
                except Exception as e:
                    logger.error("Error in batch refresh task: %s", str(e))
                    if await self._wait_interval():
                        break
                    continue

                if self.on_window:
                    await self.on_window(status)

                if status.is_complete:
                    logger.info("Batch refresh finished all %d rows", status.total_rows)
                    break

                if await self._wait_interval():
                    break
        finally:
            self.running = False
            logger.info("Batch auto mode stopped")
