"""
Feed Repository
===============

Repository pattern implementation for feed data management, including the
due-feed selection and watermark updates used by the scheduler.
"""

import sqlite3
from datetime import datetime
from typing import List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import Feed
from ..utils.clock import utc_now, to_db_timestamp
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode


class FeedRepository:
    """Repository for managing feed records in the database."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize feed repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("feed_repository")

    def create_feed(self, feed: Feed) -> Feed:
        """Create a new feed.

        Args:
            feed: Feed object to create

        Returns:
            The stored feed

        Raises:
            DatabaseError: If the URL is already registered or the insert fails
        """
        try:
            with self.db.get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO feeds (
                        id, name, url, user_id, last_fetched_at, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        feed.id,
                        feed.name,
                        feed.url,
                        feed.user_id,
                        to_db_timestamp(feed.last_fetched_at) if feed.last_fetched_at else None,
                        to_db_timestamp(feed.created_at),
                        to_db_timestamp(feed.updated_at),
                    ),
                )
                conn.commit()

            self.logger.info(f"Created feed {feed.id}: {feed.url}")
            return feed

        except sqlite3.IntegrityError as e:
            raise DatabaseError(
                f"Failed to create feed {feed.url}: {e}",
                error_code=ErrorCode.DATABASE_CONSTRAINT,
                recoverable=False,
            ) from e
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to create feed: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def get_feed_by_id(self, feed_id: str) -> Optional[Feed]:
        """Get feed by ID, or None if not found."""
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM feeds WHERE id = ?", (feed_id,)
                ).fetchone()

                return self._row_to_feed(row) if row else None

        except sqlite3.Error as e:
            self.logger.error(f"Failed to get feed {feed_id}: {e}")
            return None

    def get_feed_by_url(self, url: str) -> Optional[Feed]:
        """Get feed by URL, or None if not found."""
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM feeds WHERE url = ?", (url,)
                ).fetchone()

                return self._row_to_feed(row) if row else None

        except sqlite3.Error as e:
            self.logger.error(f"Failed to get feed by URL {url}: {e}")
            return None

    def get_all_feeds(self) -> List[Feed]:
        """Get all feeds in creation order."""
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    "SELECT * FROM feeds ORDER BY created_at, id"
                ).fetchall()

                return [self._row_to_feed(row) for row in rows]

        except sqlite3.Error as e:
            self.logger.error(f"Failed to get feeds: {e}")
            return []

    def get_feeds_due(self, limit: int) -> List[Feed]:
        """Get the least recently fetched feeds.

        Never-fetched feeds come first, then ascending last_fetched_at; ties
        fall back to creation order.

        Args:
            limit: Maximum number of feeds to return

        Returns:
            Up to ``limit`` feeds

        Raises:
            DatabaseError: If the query fails
        """
        if limit <= 0:
            return []

        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT * FROM feeds
                    ORDER BY last_fetched_at IS NOT NULL,
                             last_fetched_at ASC,
                             created_at ASC,
                             id ASC
                    LIMIT ?
                """,
                    (limit,),
                ).fetchall()

                return [self._row_to_feed(row) for row in rows]

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to select feeds due for fetch: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

    def mark_feed_fetched(self, feed_id: str, fetched_at: Optional[datetime] = None) -> None:
        """Advance a feed's fetch watermark.

        Args:
            feed_id: Feed ID
            fetched_at: Fetch time (default: now)

        Raises:
            DatabaseError: If the feed does not exist or the update fails
        """
        timestamp = to_db_timestamp(fetched_at or utc_now())

        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    """
                    UPDATE feeds
                    SET last_fetched_at = ?, updated_at = ?
                    WHERE id = ?
                """,
                    (timestamp, timestamp, feed_id),
                )
                conn.commit()

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to mark feed {feed_id} fetched: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        if cursor.rowcount == 0:
            raise DatabaseError(
                f"No feed found with ID {feed_id}",
                error_code=ErrorCode.DATABASE_ERROR,
                recoverable=False,
            )

    def _row_to_feed(self, row) -> Feed:
        return Feed(
            id=row["id"],
            name=row["name"],
            url=row["url"],
            user_id=row["user_id"],
            last_fetched_at=row["last_fetched_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
