"""
FeedWorker Utilities
===================

Logging, exceptions, validation and clock helpers.
"""
