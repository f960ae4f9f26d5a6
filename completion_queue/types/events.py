"""
Event type definitions for webhook notifications.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel

from completion_queue.constants import (
    EVENT_JOB_COMPLETED,
    EVENT_JOB_FAILED,
    JobStatus,
)
from completion_queue.store.models import JobRecord


class JobEvent(BaseModel):
    """
    Event emitted when a job reaches a terminal state.
    Delivered as the JSON body of the job's callback request.
    """

    event_type: str
    job_id: str
    status: JobStatus
    timestamp: datetime
    result: Any = None
    error: dict[str, Any] | None = None

    @classmethod
    def job_completed(cls, job_id: str, result: Any) -> "JobEvent":
        """Create a job completed event."""
        return cls(
            event_type=EVENT_JOB_COMPLETED,
            job_id=job_id,
            status=JobStatus.COMPLETED,
            timestamp=datetime.now(timezone.utc),
            result=result,
        )

    @classmethod
    def job_failed(cls, job_id: str, error: dict[str, Any]) -> "JobEvent":
        """Create a job failed event."""
        return cls(
            event_type=EVENT_JOB_FAILED,
            job_id=job_id,
            status=JobStatus.ERROR,
            timestamp=datetime.now(timezone.utc),
            error=error,
        )

    @classmethod
    def from_record(cls, record: JobRecord) -> "JobEvent":
        """
        Build the event matching a finalized record.

        Raises:
            ValueError: If the record is not terminal.
        """
        if record.status == JobStatus.COMPLETED:
            return cls.job_completed(record.id, record.result)
        if record.status == JobStatus.ERROR and record.failure is not None:
            return cls.job_failed(record.id, record.failure.to_dict())
        raise ValueError(f"Job {record.id} is not terminal (status: {record.status})")

    def to_payload(self) -> dict[str, Any]:
        """Serialize the event as a JSON-compatible dict."""
        return self.model_dump(mode="json", exclude_none=True)
