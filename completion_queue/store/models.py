"""
In-memory job record models.
Defines the job record and the structured failure attached to errored jobs.
"""

from dataclasses import dataclass
from typing import Any

from completion_queue.constants import FailureKind, JobStatus


@dataclass(frozen=True)
class JobFailure:
    """
    Failure detail recorded on a job that ended in ERROR.

    Serialized as the ``error`` object of status responses and webhook events.
    """

    message: str
    kind: FailureKind
    attempts: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "type": self.kind.value,
            "attempts": self.attempts,
        }


@dataclass
class JobRecord:
    """
    Job record representing one submitted completion request.

    This is the authoritative source of truth for job state.

    Key constraints:
    - id, payload, callback_url and created_at never change after creation
    - exactly one of result/failure is set, and only once status is terminal
    - status never leaves a terminal state
    """

    id: str
    payload: dict[str, Any]
    created_at: float
    callback_url: str | None = None
    status: JobStatus = JobStatus.PENDING
    result: Any = None
    failure: JobFailure | None = None
    attempts: int = 0
    started_at: float | None = None
    finished_at: float | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def duration_seconds(self) -> float | None:
        """Seconds between the start of processing and the terminal transition."""
        if self.started_at is None or self.finished_at is None:
            return None
        return self.finished_at - self.started_at
