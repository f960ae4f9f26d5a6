"""
Store module.
Contains the in-memory job record store and its models.
"""

from completion_queue.store.models import JobFailure, JobRecord
from completion_queue.store.repository import DuplicateJobError, JobStore

__all__ = [
    "JobStore",
    "JobRecord",
    "JobFailure",
    "DuplicateJobError",
]
