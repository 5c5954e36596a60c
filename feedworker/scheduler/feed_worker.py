"""
FeedWorker Scheduling Loop
=========================

Periodically selects the feeds that are most overdue, fetches them
concurrently and hands each fetched document to the batch processor.

Features:
- Least-recently-fetched selection bounded by the batch size
- One coroutine per feed under a shared per-cycle HTTP session
- Per-feed failure isolation behind an asyncio.gather barrier
- Injectable sleep and interruptible shutdown
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

import aiohttp

from ..config.settings import FeedWorkerSettings, WorkerSettings
from ..database.models import Feed
from ..ingestion.feed_fetcher import FeedFetcher
from ..processing.batch_processor import FeedBatchProcessor, IngestionStats
from ..storage.feed_store import FeedStore
from ..utils.exceptions import DatabaseError, FeedFetchError
from ..utils.logging import PerformanceLogger, get_logger_for_component

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class FeedOutcome:
    """Result of fetching and processing one feed in a cycle."""
    feed_id: str
    feed_url: str
    success: bool
    stats: Optional[IngestionStats] = None
    error: Optional[str] = None


@dataclass
class CycleResult:
    """Aggregated result of one scheduling cycle."""
    selected: int = 0
    outcomes: List[FeedOutcome] = field(default_factory=list)
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    @property
    def new_entries(self) -> int:
        return sum(o.stats.stored for o in self.outcomes if o.stats)

    @property
    def duplicates(self) -> int:
        return sum(o.stats.duplicates for o in self.outcomes if o.stats)


class FeedWorker:
    """Long-running feed ingestion loop."""

    def __init__(
        self,
        store: FeedStore,
        settings: WorkerSettings,
        fetcher: Optional[FeedFetcher] = None,
        processor: Optional[FeedBatchProcessor] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        """Initialize the worker.

        Args:
            store: Persistence handle
            settings: Interval, batch size and fetch timeout
            fetcher: Feed fetcher, built from settings if omitted
            processor: Batch processor, built over the store if omitted
            sleep: Awaitable sleep between cycles; defaults to an
                interruptible sleep that returns early on stop()
        """
        self.store = store
        self.settings = settings
        self.fetcher = fetcher or FeedFetcher(
            timeout=settings.fetch_timeout, max_connections=settings.batch_size
        )
        self.processor = processor or FeedBatchProcessor(store)
        self._sleep = sleep
        self.logger = get_logger_for_component("feed_worker")

        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self.cycles_completed = 0

    @classmethod
    def from_settings(cls, store: FeedStore, settings: FeedWorkerSettings) -> "FeedWorker":
        """Build a worker with a fetcher configured from application settings."""
        return cls(store, settings.worker, fetcher=FeedFetcher.from_settings(settings))

    @property
    def is_running(self) -> bool:
        return self._running

    async def run_cycle(self) -> CycleResult:
        """Run exactly one select / fetch / process cycle.

        Returns:
            CycleResult; selection failures are reported in ``error``
        """
        result = CycleResult()
        self.logger.info("Starting feed cycle")

        try:
            feeds = await asyncio.to_thread(
                self.store.select_feeds_due, self.settings.batch_size
            )
        except DatabaseError as e:
            self.logger.error(f"Error selecting feeds to fetch: {e}")
            result.error = str(e)
            return result

        if not feeds:
            self.logger.info("No feeds due for fetching")
            return result

        result.selected = len(feeds)
        self.logger.info(f"Fetching {len(feeds)} feeds", extra={"feed_count": len(feeds)})

        with PerformanceLogger(self.logger, "feed cycle", feed_count=len(feeds)) as perf:
            async with self.fetcher.get_session() as session:
                outcomes = await asyncio.gather(
                    *(self._process_feed(feed, session) for feed in feeds),
                    return_exceptions=True,
                )

        for feed, outcome in zip(feeds, outcomes):
            if isinstance(outcome, BaseException):
                self.logger.error(
                    f"Unexpected error processing feed {feed.url}: {outcome}",
                    extra={"feed_id": feed.id, "error": str(outcome)},
                )
                outcome = FeedOutcome(
                    feed_id=feed.id, feed_url=feed.url, success=False, error=str(outcome)
                )
            result.outcomes.append(outcome)

        result.duration_seconds = perf.duration or 0.0
        self.logger.info(
            f"Feed cycle complete: {result.succeeded}/{result.selected} feeds fetched, "
            f"{result.new_entries} new posts, {result.duplicates} duplicates, "
            f"{result.failed} failed",
            extra={
                "selected": result.selected,
                "succeeded": result.succeeded,
                "failed": result.failed,
                "new_entries": result.new_entries,
                "duration_seconds": result.duration_seconds,
            },
        )
        return result

    async def _process_feed(self, feed: Feed, session: aiohttp.ClientSession) -> FeedOutcome:
        self.logger.info(f"Fetching feed {feed.name} ({feed.url})")

        try:
            raw_feed = await self.fetcher.fetch_feed(feed.url, session)
        except FeedFetchError as e:
            # Watermark stays put so the feed is selected again next cycle
            self.logger.error(f"Error fetching feed {feed.url}: {e}")
            return FeedOutcome(feed_id=feed.id, feed_url=feed.url, success=False, error=str(e))

        stats = await asyncio.to_thread(self.processor.process, feed, raw_feed)
        self.logger.info(
            f"Feed {feed.name} collected, {stats.stored} new of {stats.items_seen} items"
        )
        return FeedOutcome(feed_id=feed.id, feed_url=feed.url, success=True, stats=stats)

    async def run_forever(self, max_cycles: Optional[int] = None) -> int:
        """Run cycles until stop() is called or ``max_cycles`` is reached.

        Args:
            max_cycles: Stop after this many cycles (None runs indefinitely)

        Returns:
            Number of cycles run
        """
        self._running = True
        self._stop_event = asyncio.Event()
        cycles = 0

        self.logger.info(
            f"Starting feed worker: {self.settings.batch_size} feeds every "
            f"{self.settings.interval_seconds}s"
        )

        try:
            while self._running:
                try:
                    await self.run_cycle()
                except Exception as e:
                    self.logger.error(f"Unexpected error in feed cycle: {e}", exc_info=True)

                cycles += 1
                self.cycles_completed += 1

                if max_cycles is not None and cycles >= max_cycles:
                    break
                if not self._running:
                    break

                await self._wait(self.settings.interval_seconds)
        finally:
            self._running = False

        self.logger.info(f"Feed worker stopped after {cycles} cycles")
        return cycles

    def stop(self) -> None:
        """Request shutdown; the loop exits after the current cycle."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()

    async def _wait(self, seconds: float) -> None:
        if self._sleep is not None:
            await self._sleep(seconds)
            return

        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            # Interval elapsed without a stop request
            return
