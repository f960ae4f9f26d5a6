"""
In-memory job store.
Implements the data access patterns for the job lifecycle.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from completion_queue.constants import JobStatus
from completion_queue.store.models import JobFailure, JobRecord

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class DuplicateJobError(Exception):
    """Raised when a job id is submitted twice."""

    def __init__(self, job_id: str):
        super().__init__(f"Job already exists: {job_id}")
        self.job_id = job_id


class JobStore:
    """
    Process-local store of job records.

    Implements atomic operations for:
    - Job creation with unique ids
    - Status transitions (pending -> processing -> terminal)
    - Compare-and-set finalization so a job is finalized at most once
    - Time-based eviction

    Every method holds one lock for its whole body and never awaits,
    so callers on any task or thread observe consistent records.
    Readers get copies; only the methods below mutate stored records.
    """

    def __init__(self, clock: Clock | None = None):
        """
        Initialize the store.

        Args:
            clock: Returns the current time in epoch seconds. Defaults to time.time.
        """
        self._clock = clock or time.time
        self._records: dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def now(self) -> float:
        return self._clock()

    def create(
        self,
        job_id: str,
        payload: dict[str, Any],
        callback_url: str | None = None,
    ) -> JobRecord:
        """
        Create a new PENDING job record.

        Args:
            job_id: Unique job identifier.
            payload: The validated job input.
            callback_url: Optional webhook URL notified on completion.

        Returns:
            A copy of the stored record.

        Raises:
            DuplicateJobError: If the id is already present.
        """
        with self._lock:
            if job_id in self._records:
                raise DuplicateJobError(job_id)
            record = JobRecord(
                id=job_id,
                payload=payload,
                callback_url=callback_url,
                created_at=self._clock(),
            )
            self._records[job_id] = record
            return replace(record)

    def get(self, job_id: str) -> JobRecord | None:
        """
        Get a snapshot of a job record.

        Returns:
            A copy of the record, or None if unknown or evicted.
        """
        with self._lock:
            record = self._records.get(job_id)
            return replace(record) if record is not None else None

    def mark_processing(self, job_id: str) -> JobRecord | None:
        """
        Transition a PENDING job to PROCESSING.

        Returns:
            A copy of the updated record, or None if the job is gone or not pending.
        """
        with self._lock:
            record = self._records.get(job_id)
            if record is None or record.status != JobStatus.PENDING:
                return None
            record.status = JobStatus.PROCESSING
            record.started_at = self._clock()
            return replace(record)

    def record_attempt(self, job_id: str) -> int:
        """
        Count a new downstream attempt for a job that is still running.

        Returns:
            The attempt number (1-based), or 0 if the job is terminal or gone.
        """
        with self._lock:
            record = self._records.get(job_id)
            if record is None or record.is_terminal:
                return 0
            record.attempts += 1
            return record.attempts

    def is_active(self, job_id: str) -> bool:
        """Check whether the job exists and has not reached a terminal state."""
        with self._lock:
            record = self._records.get(job_id)
            return record is not None and not record.is_terminal

    def complete(self, job_id: str, result: Any) -> JobRecord | None:
        """
        Finalize a job as COMPLETED if it is still PROCESSING.

        Returns:
            A copy of the finalized record, or None if the job was never
            started, was already finalized or was evicted.
        """
        with self._lock:
            record = self._finalizable(job_id)
            if record is None:
                return None
            record.status = JobStatus.COMPLETED
            record.result = result
            record.finished_at = self._clock()
            return replace(record)

    def fail(self, job_id: str, failure: JobFailure) -> JobRecord | None:
        """
        Finalize a job as ERROR if it is still PROCESSING.

        Returns:
            A copy of the finalized record, or None if the job was never
            started, was already finalized or was evicted.
        """
        with self._lock:
            record = self._finalizable(job_id)
            if record is None:
                return None
            record.status = JobStatus.ERROR
            record.failure = failure
            record.finished_at = self._clock()
            return replace(record)

    def _finalizable(self, job_id: str) -> JobRecord | None:
        record = self._records.get(job_id)
        if record is None or record.status != JobStatus.PROCESSING:
            return None
        return record

    def evict_older_than(self, cutoff: float) -> list[str]:
        """
        Delete every record created before the cutoff, regardless of status.

        Args:
            cutoff: Epoch seconds; records with created_at < cutoff are removed.

        Returns:
            The evicted job ids.
        """
        with self._lock:
            expired = [
                job_id
                for job_id, record in self._records.items()
                if record.created_at < cutoff
            ]
            for job_id in expired:
                del self._records[job_id]

        if expired:
            logger.debug("Evicted job records", extra={"count": len(expired)})
        return expired

    def count_by_status(self) -> dict[str, int]:
        """Get the number of records in each status."""
        with self._lock:
            counts = {status.value: 0 for status in JobStatus}
            for record in self._records.values():
                counts[record.status.value] += 1
            return counts

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._records
