"""Main entry point: achievement engine fed by JSON-lines events on stdin"""
import logging
import asyncio
import sys
from typing import TextIO

from pydantic import ValidationError

from src import config
from src.config import validate_config, LOG_LEVEL
from src.db.connection import db
from src.db.store import PostgresAchievementStore
from src.exceptions import PersistenceError
from src.gamification.achievement_system import AchievementService
from src.gamification.registry import AchievementRegistry, load_registry
from src.models.events import ActivityEvent, SubmitResult
from src.services.unlock_notifications import build_notifier

logger = logging.getLogger(__name__)


async def run_feed(service: AchievementService, stream: TextIO, out: TextIO) -> int:
    """
    Submit one event per input line and write one SubmitResult JSON line back

    Lines that are not valid events are reported as rejected; persistence
    failures are reported and the feed continues with the next line.

    Returns:
        Number of events submitted
    """
    submitted = 0
    while True:
        line = await asyncio.to_thread(stream.readline)
        if not line:
            break
        line = line.strip()
        if not line:
            continue

        try:
            event = ActivityEvent.model_validate_json(line)
        except ValidationError as e:
            logger.warning(f"Skipping unreadable event line: {e.error_count()} error(s)")
            result = SubmitResult(accepted=False, reason=f"invalid event: {e.errors()[0]['msg']}")
        else:
            try:
                result = await service.submit_event(event)
                submitted += 1
            except PersistenceError as e:
                result = SubmitResult(accepted=False, reason=f"persistence failure: {e.message}")

        out.write(result.model_dump_json() + "\n")
        out.flush()

    await service.drain_notifications()
    return submitted


async def main() -> None:
    """Main application entry point"""
    try:
        # Validate configuration
        logger.info("Validating configuration...")
        validate_config()

        # Initialize database
        logger.info("Initializing database connection pool...")
        await db.init_pool()
        store = PostgresAchievementStore()

        # Load and validate the catalog; an invalid catalog is fatal
        logger.info("Loading achievement registry...")
        if config.ACHIEVEMENTS_FILE is not None:
            registry = AchievementRegistry.from_json_file(config.ACHIEVEMENTS_FILE)
        else:
            registry = await load_registry(store)

        service = AchievementService(store, registry, notifier=build_notifier())

        logger.info("Achievement engine is reading events from stdin. Send EOF to stop.")
        submitted = await run_feed(service, sys.stdin, sys.stdout)
        logger.info(f"Processed {submitted} events")

    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise
    finally:
        logger.info("Closing database connection...")
        await db.close_pool()

        logger.info("Shutdown complete")


if __name__ == "__main__":
    # Configure logging (stderr, stdout carries results)
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO)
    )
    asyncio.run(main())
