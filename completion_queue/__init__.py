"""
Completion Queue

An asynchronous front for a chat completion API: bounded-concurrency admission,
retries with exponential backoff, a hard per-job timeout, webhook notification
of terminal results, and time-based eviction of stale records.
"""

__version__ = "1.0.0"
