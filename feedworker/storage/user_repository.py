"""
User Repository
===============

Minimal user persistence: feeds reference an owning user.
"""

import sqlite3
from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.models import User
from ..utils.clock import to_db_timestamp
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode


class UserRepository:
    """Repository for user records."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("user_repository")

    def create_user(self, user: User) -> User:
        """Create a new user.

        Raises:
            DatabaseError: If the insert fails
        """
        try:
            with self.db.get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO users (id, name, api_key, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        user.id, user.name, user.api_key,
                        to_db_timestamp(user.created_at),
                        to_db_timestamp(user.updated_at),
                    ),
                )
                conn.commit()

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to create user: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e

        self.logger.info(f"Created user {user.id}: {user.name}")
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        """Get user by ID, or None if not found."""
        row = self.db.execute_one("SELECT * FROM users WHERE id = ?", (user_id,))
        return User(**dict(row)) if row else None
