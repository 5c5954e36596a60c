"""
FeedWorker - Background RSS Ingestion
====================================

Periodically fetches subscribed RSS/Atom feeds and stores new posts,
deduplicated per feed, in SQLite.
"""

__version__ = "0.1.0"
__author__ = "FeedWorker Team"
