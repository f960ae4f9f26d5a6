"""
Bounded-concurrency admission queue.

Jobs are admitted into a fixed number of in-flight slots in strict arrival
order. Each admitted job runs as its own asyncio task; when the task
finishes, its slot is released and the head of the waiting line is promoted.
"""

import asyncio
import logging
from collections import deque

from completion_queue.config import get_settings
from completion_queue.observability.metrics import get_metrics
from completion_queue.types.job import JobRunner, QueueStats

logger = logging.getLogger(__name__)


class AdmissionQueue:
    """
    FIFO waiting line plus a bounded in-flight set.

    Invariants:
    - len(in_flight) <= max_concurrent
    - a job id is in at most one of {waiting, in_flight}, and in neither
      once its run has finished

    Submission and drain both run under one asyncio.Lock, so a freed slot is
    never claimed twice and never left empty while jobs are waiting.
    """

    def __init__(
        self,
        runner: JobRunner,
        max_concurrent: int | None = None,
    ):
        """
        Initialize the queue.

        Args:
            runner: Coroutine function that runs one job to a terminal state.
            max_concurrent: In-flight slot count. Defaults to settings.
        """
        settings = get_settings()

        self.max_concurrent = max_concurrent or settings.max_concurrent_requests
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self._runner = runner
        self._waiting: deque[str] = deque()
        self._in_flight: set[str] = set()
        self._tasks: dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()
        self._metrics = get_metrics()

    async def submit(self, job_id: str) -> None:
        """
        Enqueue a job for execution.

        Starts the job right away when a slot is free, otherwise appends it
        to the waiting line. Never waits for the job itself.

        Raises:
            ValueError: If the job is already waiting or in flight.
        """
        async with self._lock:
            if job_id in self._in_flight or job_id in self._waiting:
                raise ValueError(f"Job already queued: {job_id}")

            if not self._waiting and len(self._in_flight) < self.max_concurrent:
                self._admit(job_id)
            else:
                self._waiting.append(job_id)
                logger.info(
                    "Job waiting for a slot",
                    extra={"job_id": job_id, "position": len(self._waiting)},
                )

            self._publish_stats()

    async def on_job_terminal(self, job_id: str) -> None:
        """
        Release a job's slot and promote waiting jobs into free slots.

        Called once per admitted job after its run has finished.
        """
        async with self._lock:
            self._in_flight.discard(job_id)
            self._tasks.pop(job_id, None)

            while self._waiting and len(self._in_flight) < self.max_concurrent:
                self._admit(self._waiting.popleft())

            self._publish_stats()

    def _admit(self, job_id: str) -> None:
        """Move a job into the in-flight set and start it. Caller holds the lock."""
        self._in_flight.add(job_id)
        self._tasks[job_id] = asyncio.create_task(
            self._run(job_id),
            name=f"job-{job_id}",
        )
        logger.debug(
            "Job admitted",
            extra={"job_id": job_id, "in_flight": len(self._in_flight)},
        )

    async def _run(self, job_id: str) -> None:
        try:
            await self._runner(job_id)
        except Exception:
            logger.exception("Job runner crashed", extra={"job_id": job_id})
        finally:
            await self.on_job_terminal(job_id)

    def stats(self) -> QueueStats:
        """Get an advisory snapshot of (waiting, in_flight)."""
        return QueueStats(waiting=len(self._waiting), in_flight=len(self._in_flight))

    def position(self, job_id: str) -> int:
        """
        Get a job's 1-based position in the waiting line.

        Returns:
            The position, or 0 if the job is not waiting.
        """
        try:
            return self._waiting.index(job_id) + 1
        except ValueError:
            return 0

    def _publish_stats(self) -> None:
        self._metrics.update_queue(len(self._waiting), len(self._in_flight))

    async def aclose(self) -> None:
        """
        Cancel running jobs and forget waiting ones.

        In-flight work is dropped; this is only meant for process shutdown.
        """
        async with self._lock:
            self._waiting.clear()
            tasks = list(self._tasks.values())

        for task in tasks:
            task.cancel()
        if tasks:
            logger.info(f"Cancelled {len(tasks)} in-flight jobs")
            await asyncio.gather(*tasks, return_exceptions=True)
