"""
FeedWorker Data Models
=====================

Pydantic data models for the stored records and plain dataclasses for the
transient fetch results. Stored models correspond to the database schema.
"""

from datetime import datetime
from dataclasses import dataclass, field
from typing import List, Optional
import uuid

from pydantic import BaseModel, Field, field_validator

from ..utils.clock import utc_now, to_utc


def new_id() -> str:
    """Fresh opaque identity for a stored record."""
    return str(uuid.uuid4())


class User(BaseModel):
    """Feed owner."""
    id: str = Field(default_factory=new_id, description="Unique user ID")
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    api_key: str = Field(default_factory=lambda: uuid.uuid4().hex, description="API key")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def __str__(self) -> str:
        return f"User({self.name}:{self.id})"


class Feed(BaseModel):
    """Subscribed syndication source."""
    id: str = Field(default_factory=new_id, description="Unique feed ID")
    name: str = Field(..., min_length=1, max_length=255, description="Feed display name")
    url: str = Field(..., min_length=1, description="Feed URL, unique across feeds")
    user_id: str = Field(..., description="Owning user ID")
    last_fetched_at: Optional[datetime] = Field(default=None, description="Last successful fetch, None if never fetched")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("last_fetched_at", "created_at", "updated_at")
    @classmethod
    def normalize_timezone(cls, v):
        """Stored timestamps are always UTC."""
        return to_utc(v) if v is not None else v

    @property
    def never_fetched(self) -> bool:
        return self.last_fetched_at is None

    def __str__(self) -> str:
        return f"Feed({self.name}:{self.url})"


class Post(BaseModel):
    """One ingested feed entry."""
    id: str = Field(default_factory=new_id, description="Unique post ID")
    feed_id: str = Field(..., description="Owning feed ID")
    title: str = Field(..., min_length=1, description="Entry title")
    url: str = Field(..., min_length=1, description="Canonical entry link")
    description: Optional[str] = Field(default=None, description="Entry description as supplied by the feed")
    published_at: datetime = Field(..., description="Publication time, feed-supplied or fallback")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("published_at", "created_at", "updated_at")
    @classmethod
    def normalize_timezone(cls, v):
        return to_utc(v)

    def __str__(self) -> str:
        return f"Post({self.title[:50]})"


@dataclass
class RawItem:
    """One item of a fetched feed document, before normalization.

    pub_date is the date text as the document carries it; published_at is
    that value already resolved by the feed parser, when it could be.
    """

    title: str = ""
    link: str = ""
    description: str = ""
    pub_date: str = ""
    published_at: Optional[datetime] = None


@dataclass
class RawFeed:
    """Parsed feed document for one fetch; never persisted."""

    title: str = ""
    items: List[RawItem] = field(default_factory=list)
