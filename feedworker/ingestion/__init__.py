"""
FeedWorker Ingestion Module
==========================

Remote feed fetching and parsing.
"""

from .feed_fetcher import FeedFetcher

__all__ = ["FeedFetcher"]
