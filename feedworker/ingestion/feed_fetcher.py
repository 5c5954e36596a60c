"""
Remote Feed Fetcher
==================

Fetches one syndication document over HTTP and parses it into a RawFeed.
Each failure mode is raised as its own FeedFetchError subclass; nothing is
retried here, the scheduler simply tries again on a later cycle.
"""

import asyncio
import ssl
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict

import aiohttp
import certifi
import feedparser

from ..config.settings import FeedWorkerSettings, HTTPSettings
from ..database.models import RawFeed, RawItem
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import (
    ErrorCode,
    FeedNetworkError,
    FeedParseError,
    FeedRequestError,
    FeedStatusError,
    ValidationError,
)
from ..utils.validators import URLValidator


class FeedFetcher:
    """HTTP feed fetcher backed by aiohttp and feedparser."""

    def __init__(
        self,
        timeout: float = 30,
        user_agent: str = HTTPSettings().user_agent,
        accept: str = HTTPSettings().accept,
        max_connections: int = 10,
        limit_per_host: int = 5,
    ):
        """Initialize feed fetcher.

        Args:
            timeout: Total request timeout in seconds
            user_agent: User-Agent header sent with every request
            accept: Accept header sent with every request
            max_connections: Connection limit for one session
            limit_per_host: Connection limit per remote host
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self.accept = accept
        self.max_connections = max_connections
        self.limit_per_host = limit_per_host
        self.logger = get_logger_for_component("feed_fetcher")

        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    @classmethod
    def from_settings(cls, settings: FeedWorkerSettings) -> "FeedFetcher":
        """Build a fetcher sized for one scheduler batch."""
        return cls(
            timeout=settings.worker.fetch_timeout,
            user_agent=settings.http.user_agent,
            accept=settings.http.accept,
            max_connections=settings.worker.batch_size,
            limit_per_host=settings.http.limit_per_host,
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        """Get configured aiohttp session."""
        connector = aiohttp.TCPConnector(
            ssl=self.ssl_context,
            limit=self.max_connections,
            limit_per_host=self.limit_per_host,
        )

        timeout = aiohttp.ClientTimeout(total=self.timeout)

        headers = {
            "User-Agent": self.user_agent,
            "Accept": self.accept,
        }

        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=headers
        ) as session:
            yield session

    async def fetch_feed(self, feed_url: str, session: aiohttp.ClientSession) -> RawFeed:
        """Fetch and parse a single feed.

        Cancelling the calling task aborts the in-flight request.

        Args:
            feed_url: URL of the feed
            session: aiohttp session for requests

        Returns:
            Parsed RawFeed with items in document order

        Raises:
            FeedRequestError: URL is not an absolute http(s) URL
            FeedNetworkError: Transport failure or timeout
            FeedStatusError: Non-2xx response
            FeedParseError: Body is not a syndication document
        """
        try:
            validated_url = URLValidator.validate_feed_url(feed_url)
        except ValidationError as e:
            raise FeedRequestError(f"Invalid feed URL: {e}", feed_url=feed_url) from e

        start_time = time.monotonic()
        self.logger.debug(f"Fetching feed: {validated_url}")

        try:
            async with session.get(validated_url) as response:
                if not 200 <= response.status < 300:
                    raise FeedStatusError(
                        f"HTTP {response.status}: {response.reason}",
                        status=response.status,
                        feed_url=feed_url,
                    )

                content = await response.read()
                headers = {
                    "content-type": response.headers.get("Content-Type", ""),
                    "content-location": str(response.url),
                }

        except asyncio.TimeoutError as e:
            raise FeedNetworkError(
                f"Request timeout after {self.timeout}s",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e
        except aiohttp.InvalidURL as e:
            raise FeedRequestError(f"Invalid feed URL: {e}", feed_url=feed_url) from e
        except aiohttp.ClientError as e:
            raise FeedNetworkError(f"Request failed: {e}", feed_url=feed_url) from e

        raw_feed = self.parse_document(content, feed_url, headers)

        self.logger.info(
            f"Fetched {len(raw_feed.items)} items from {feed_url} "
            f"in {time.monotonic() - start_time:.2f}s"
        )
        return raw_feed

    async def fetch(self, feed_url: str) -> RawFeed:
        """Fetch one feed with a dedicated session."""
        async with self.get_session() as session:
            return await self.fetch_feed(feed_url, session)

    def parse_document(
        self, content: bytes, feed_url: str, headers: Dict[str, str] = None
    ) -> RawFeed:
        """Parse a feed body into a RawFeed.

        Raises:
            FeedParseError: If the body is not a recognizable feed
        """
        # Item fields are stored exactly as the feed supplies them
        feed_data = feedparser.parse(
            content,
            response_headers=headers or {},
            sanitize_html=False,
            resolve_relative_uris=False,
        )
        entries = feed_data.get("entries", [])

        if feed_data.get("bozo"):
            if not entries:
                reason = feed_data.get("bozo_exception") or "invalid XML structure"
                raise FeedParseError(f"Feed parse error: {reason}", feed_url=feed_url)
            self.logger.info(f"Feed has parse warnings but contains entries: {feed_url}")

        if not entries and not feed_data.get("version"):
            raise FeedParseError("Unrecognized feed format", feed_url=feed_url)

        return RawFeed(
            title=feed_data.feed.get("title", ""),
            items=[self._to_raw_item(entry) for entry in entries],
        )

    def _to_raw_item(self, entry: Any) -> RawItem:
        # Atom entries carry summary/updated where RSS has description/pubDate
        date_field = "published" if entry.get("published") else "updated"

        published_at = None
        date_parsed = entry.get(f"{date_field}_parsed")
        if date_parsed:
            try:
                published_at = datetime(*date_parsed[:6], tzinfo=timezone.utc)
            except (ValueError, TypeError):
                pass

        return RawItem(
            title=entry.get("title", "") or "",
            link=entry.get("link", "") or "",
            description=entry.get("description", "") or "",
            pub_date=entry.get(date_field, "") or "",
            published_at=published_at,
        )
