#!/usr/bin/env python3
"""
FeedWorker Service Runner
========================

Main entry point for running the ingestion loop as a long-lived service
(systemd, Docker). Handles initialization, startup, and graceful shutdown.
"""

import sys
import signal
import asyncio
import argparse
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from feedworker.config.settings import get_settings
from feedworker.database.connection import DatabaseConnection
from feedworker.database.schema import DatabaseSchema
from feedworker.scheduler.feed_worker import FeedWorker
from feedworker.storage.feed_store import SQLiteFeedStore
from feedworker.utils.exceptions import FeedWorkerError
from feedworker.utils.logging import configure_application_logging, get_logger_for_component


async def main():
    """Main entry point for the worker service."""
    parser = argparse.ArgumentParser(description='FeedWorker ingestion service')
    parser.add_argument('--once', action='store_true',
                        help='Run a single cycle and exit')
    parser.add_argument('--max-cycles', type=int, default=None,
                        help='Stop after this many cycles')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')

    args = parser.parse_args()

    try:
        settings = get_settings()
    except FeedWorkerError as e:
        print(f"❌ Configuration error: {e}")
        sys.exit(1)

    configure_application_logging(
        log_level="DEBUG" if args.debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size=settings.logging.max_file_size_mb * 1024 * 1024,
        backup_count=settings.logging.backup_count,
    )
    logger = get_logger_for_component("service")
    logger.info(f"Starting {settings.app_name} {settings.version}...")

    DatabaseSchema(settings.database.path).create_tables()
    db = DatabaseConnection(settings.database.path, settings.database.pool_size)
    worker = FeedWorker.from_settings(SQLiteFeedStore(db), settings)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, worker.stop)
        except NotImplementedError:
            # Windows event loops; Ctrl+C falls back to KeyboardInterrupt
            break

    try:
        if args.once:
            result = await worker.run_cycle()
            logger.info(
                f"Cycle finished: {result.succeeded}/{result.selected} feeds, "
                f"{result.new_entries} new posts"
            )
            sys.exit(1 if result.error else 0)

        await worker.run_forever(max_cycles=args.max_cycles)
    finally:
        db.close_all_connections()
        logger.info("FeedWorker service stopped")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n👋 Worker stopped by user")
