"""
FeedWorker Scheduler Module
==========================

The long-running ingestion loop.
"""

from .feed_worker import CycleResult, FeedOutcome, FeedWorker

__all__ = ["FeedWorker", "CycleResult", "FeedOutcome"]
