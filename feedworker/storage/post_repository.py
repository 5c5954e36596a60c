"""
Post Repository
===============

Repository for ingested posts. Duplicate detection relies on the
UNIQUE(feed_id, url) constraint and is reported as DuplicatePostError so
callers can tell "already ingested" apart from real storage failures.
"""

import sqlite3
from typing import List

from ..database.connection import DatabaseConnection
from ..database.models import Post
from ..utils.clock import to_db_timestamp
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, DuplicatePostError, ErrorCode

# sqlite reports the violated columns in the error message
_POST_UNIQUE_COLUMNS = "posts.feed_id, posts.url"


def is_duplicate_post_error(error: sqlite3.IntegrityError) -> bool:
    """True if the integrity error is the (feed_id, url) uniqueness violation."""
    message = str(error)
    return "UNIQUE constraint failed" in message and _POST_UNIQUE_COLUMNS in message


class PostRepository:
    """Repository for Post CRUD operations."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("post_repository")

    def create_post(self, post: Post) -> Post:
        """Insert a new post.

        Args:
            post: Post model to store

        Returns:
            The stored post

        Raises:
            DuplicatePostError: If the feed already has a post with this URL
            DatabaseError: For any other storage failure
        """
        try:
            with self.db.get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO posts (id, feed_id, title, url, description,
                                       published_at, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        post.id, post.feed_id, post.title, post.url, post.description,
                        to_db_timestamp(post.published_at),
                        to_db_timestamp(post.created_at),
                        to_db_timestamp(post.updated_at),
                    )
                )
                conn.commit()

        except sqlite3.IntegrityError as e:
            if is_duplicate_post_error(e):
                raise DuplicatePostError(post.feed_id, post.url) from e
            raise DatabaseError(
                f"Failed to create post: {e}",
                error_code=ErrorCode.DATABASE_CONSTRAINT,
                context={"feed_id": post.feed_id, "url": post.url},
            ) from e
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to create post: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
                context={"feed_id": post.feed_id, "url": post.url},
            ) from e

        self.logger.debug(f"Created post: {post.id}")
        return post

    def get_posts_for_feed(self, feed_id: str, limit: int = 100) -> List[Post]:
        """Get posts for a feed, newest first."""
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT * FROM posts
                    WHERE feed_id = ?
                    ORDER BY published_at DESC, created_at DESC
                    LIMIT ?
                    """,
                    (feed_id, limit)
                ).fetchall()

                return [Post(**dict(row)) for row in rows]

        except sqlite3.Error as e:
            self.logger.error(f"Failed to get posts for feed {feed_id}: {e}")
            return []

    def count_posts_for_feed(self, feed_id: str) -> int:
        """Count stored posts for a feed."""
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT COUNT(*) FROM posts WHERE feed_id = ?", (feed_id,)
                ).fetchone()
                return row[0]

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to count posts for feed {feed_id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e
