"""
Ingestion Batch Processor
========================

Turns one fetched feed document into stored posts and advances the feed's
fetch watermark. Runs synchronously; the scheduler calls it from a worker
thread.
"""

from dataclasses import dataclass
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Optional

from ..database.models import Feed, RawFeed
from ..storage.feed_store import FeedStore, RecordStatus
from ..utils.clock import Clock, to_utc, utc_now
from ..utils.exceptions import DatabaseError
from ..utils.logging import get_logger_for_component


def parse_pub_date(value: str) -> Optional[datetime]:
    """Parse an item date as RSS (RFC 822/1123) or Atom (RFC 3339) writes it.

    Examples: 'Mon, 02 Jan 2006 15:04:05 -0700', '2024-01-02T10:00:00Z'.

    Returns:
        UTC datetime, or None if the value is empty or unparseable
    """
    if not value or not value.strip():
        return None
    value = value.strip()

    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        parsed = None

    if parsed is None:
        # fromisoformat only accepts a trailing Z from Python 3.11
        if value.endswith(("Z", "z")):
            value = value[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None

    return to_utc(parsed)


@dataclass
class IngestionStats:
    """Per-feed counters for one processed document."""
    feed_id: str
    items_seen: int = 0
    stored: int = 0
    duplicates: int = 0
    skipped: int = 0
    failed: int = 0
    marked_fetched: bool = False


class FeedBatchProcessor:
    """Normalizes raw items and persists them through a FeedStore."""

    def __init__(self, store: FeedStore, clock: Clock = utc_now):
        """Initialize processor.

        Args:
            store: Persistence handle
            clock: Source of the fallback publication time and fetch watermark
        """
        self.store = store
        self.clock = clock
        self.logger = get_logger_for_component("batch_processor")

    def process(self, feed: Feed, raw_feed: RawFeed) -> IngestionStats:
        """Store every new item of a fetched document, then mark the feed fetched.

        Item-level failures are counted and logged; they never stop the
        remaining items or the watermark update.

        Args:
            feed: Feed the document was fetched from
            raw_feed: Successfully fetched document

        Returns:
            IngestionStats for this feed
        """
        stats = IngestionStats(feed_id=feed.id)

        for item in raw_feed.items:
            stats.items_seen += 1

            title = (item.title or "").strip()
            link = (item.link or "").strip()
            if not title or not link:
                self.logger.debug(f"Skipping item without title or link in feed {feed.id}")
                stats.skipped += 1
                continue

            if item.published_at is not None:
                published_at = to_utc(item.published_at)
            else:
                published_at = parse_pub_date(item.pub_date)
            if published_at is None:
                published_at = to_utc(self.clock())

            result = self.store.record_entry(
                feed.id, title, link, item.description, published_at
            )

            if result.status == RecordStatus.DUPLICATE:
                self.logger.info(f"Duplicate post url={link}, skipping")
                stats.duplicates += 1
            elif result.status == RecordStatus.FAILED:
                self.logger.error(f"Error storing post url={link}: {result.error}")
                stats.failed += 1
            else:
                self.logger.info(f"Stored post '{title}' from feed {feed.name}")
                stats.stored += 1

        try:
            self.store.mark_feed_fetched(feed.id, to_utc(self.clock()))
            stats.marked_fetched = True
            self.logger.info(f"Marked feed {feed.name} as fetched")
        except DatabaseError as e:
            self.logger.error(f"Error marking feed {feed.name} fetched: {e}")

        return stats
