"""Main entry point for the word sheet."""
import asyncio
import logging
import signal

from wordsheet.app import WordSheetApp
from wordsheet.config import VERSION, ensure_directories
from wordsheet.logging_config import setup_logging

logger = logging.getLogger("wordsheet")


async def shutdown(sig: signal.Signals, loop: asyncio.AbstractEventLoop) -> None:
    """Cleanup tasks tied to the service's shutdown."""
    logger.info(f"Received exit signal {sig.name}...")

    tasks = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
    for task in tasks:
        task.cancel()

    logger.info(f"Cancelling {len(tasks)} outstanding tasks")
    await asyncio.gather(*tasks, return_exceptions=True)

    loop.stop()


def handle_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    """Handle exceptions in the event loop."""
    msg = context.get("exception", context["message"])
    logger.error(f"Caught exception: {msg}")


async def main() -> None:
    """Run the application until interrupted."""
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda s=sig: asyncio.create_task(shutdown(s, loop))
        )

    loop.set_exception_handler(handle_exception)

    app = WordSheetApp()
    try:
        logger.info("Starting word sheet...")
        await app.start()

        # Keep the application running
        while True:
            try:
                await asyncio.sleep(1)
            except asyncio.CancelledError:
                break
    finally:
        logger.info("Cleaning up...")
        await app.stop()


def run() -> None:
    """Console entry point."""
    ensure_directories()

    setup_logging(f"Starting wordsheet v{VERSION} ...")

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        loop.run_until_complete(main())
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    except RuntimeError as e:
        # loop.stop() from the signal handler ends run_until_complete early
        logger.info(f"Event loop stopped: {e}")
    finally:
        loop.close()


if __name__ == "__main__":
    run()
