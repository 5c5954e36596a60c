"""
FeedWorker Storage Layer
=======================

Repository pattern implementations for data access abstraction.

This module provides:
- Feed, post and user repositories over the pooled SQLite connection
- The FeedStore interface consumed by the ingestion worker
- Classified insert results (created / duplicate / failed)
"""

from .feed_repository import FeedRepository
from .post_repository import PostRepository
from .user_repository import UserRepository
from .feed_store import FeedStore, SQLiteFeedStore, RecordResult, RecordStatus

__all__ = [
    "FeedRepository",
    "PostRepository",
    "UserRepository",
    "FeedStore",
    "SQLiteFeedStore",
    "RecordResult",
    "RecordStatus",
]
