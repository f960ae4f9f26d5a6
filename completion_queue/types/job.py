"""
Job-related type definitions for internal use.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from completion_queue.constants import JobStatus

# The downstream call: takes a job payload and returns the downstream result.
Downstream = Callable[[dict[str, Any]], Awaitable[Any]]

# Runs one admitted job to completion.
JobRunner = Callable[[str], Awaitable[None]]


@dataclass(frozen=True)
class QueueStats:
    """
    Advisory snapshot of the admission queue.
    Values may change between two reads.
    """

    waiting: int
    in_flight: int


@dataclass(frozen=True)
class SubmitReceipt:
    """
    Returned to the submitter once a job has been accepted.
    Contains the assigned id and the queue state right after admission.
    """

    job_id: str
    status: JobStatus
    queue_position: int
    active_requests: int
