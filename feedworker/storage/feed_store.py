"""
Feed Store Interface
===================

The persistence boundary consumed by the ingestion worker. Entry inserts
return a RecordResult variant instead of raising, so the batch processor can
tell an already-ingested link apart from a genuine storage failure.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import Feed, Post
from ..utils.clock import Clock, utc_now
from ..utils.exceptions import DatabaseError, DuplicatePostError
from ..utils.logging import get_logger_for_component
from .feed_repository import FeedRepository
from .post_repository import PostRepository


class RecordStatus(str, Enum):
    """Outcome of recording one entry."""
    CREATED = "created"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass
class RecordResult:
    """Result of FeedStore.record_entry."""
    status: RecordStatus
    post: Optional[Post] = None
    error: Optional[str] = None

    @classmethod
    def created(cls, post: Post) -> "RecordResult":
        return cls(status=RecordStatus.CREATED, post=post)

    @classmethod
    def duplicate(cls) -> "RecordResult":
        return cls(status=RecordStatus.DUPLICATE)

    @classmethod
    def failed(cls, error: str) -> "RecordResult":
        return cls(status=RecordStatus.FAILED, error=error)


class FeedStore(ABC):
    """Persistence operations used by the ingestion worker."""

    @abstractmethod
    def select_feeds_due(self, limit: int) -> List[Feed]:
        """Return up to ``limit`` feeds, least recently fetched first.

        Raises:
            DatabaseError: On connectivity or query failure
        """

    @abstractmethod
    def record_entry(
        self,
        feed_id: str,
        title: str,
        link: str,
        description: Optional[str],
        published_at: datetime,
    ) -> RecordResult:
        """Insert a new entry for a feed."""

    @abstractmethod
    def mark_feed_fetched(self, feed_id: str, fetched_at: Optional[datetime] = None) -> None:
        """Set the feed's last-fetch timestamp.

        Raises:
            DatabaseError: If the update fails
        """


class SQLiteFeedStore(FeedStore):
    """FeedStore backed by the SQLite repositories."""

    def __init__(self, db_connection: DatabaseConnection, clock: Clock = utc_now):
        """Initialize the store.

        Args:
            db_connection: Database connection manager
            clock: Source of creation/update timestamps
        """
        self.db = db_connection
        self.feeds = FeedRepository(db_connection)
        self.posts = PostRepository(db_connection)
        self.clock = clock
        self.logger = get_logger_for_component("feed_store")

    def select_feeds_due(self, limit: int) -> List[Feed]:
        return self.feeds.get_feeds_due(limit)

    def record_entry(
        self,
        feed_id: str,
        title: str,
        link: str,
        description: Optional[str],
        published_at: datetime,
    ) -> RecordResult:
        now = self.clock()
        try:
            post = Post(
                feed_id=feed_id,
                title=title,
                url=link,
                description=description,
                published_at=published_at,
                created_at=now,
                updated_at=now,
            )
            return RecordResult.created(self.posts.create_post(post))

        except DuplicatePostError:
            return RecordResult.duplicate()
        except DatabaseError as e:
            return RecordResult.failed(str(e))
        except ValueError as e:
            # pydantic ValidationError subclasses ValueError
            return RecordResult.failed(f"Invalid entry: {e}")

    def mark_feed_fetched(self, feed_id: str, fetched_at: Optional[datetime] = None) -> None:
        self.feeds.mark_feed_fetched(feed_id, fetched_at or self.clock())
