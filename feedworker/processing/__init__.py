"""
FeedWorker Processing Module
===========================

Normalization and persistence of fetched feed documents.
"""

from .batch_processor import FeedBatchProcessor, IngestionStats, parse_pub_date

__all__ = ["FeedBatchProcessor", "IngestionStats", "parse_pub_date"]
