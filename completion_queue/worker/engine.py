"""
Completion engine.

Owns the job store, admission queue, retrying executor, notifier and reaper
for one process, and exposes the operations the HTTP layer needs.
"""

import asyncio
import logging
from typing import Any
from uuid import uuid4

from completion_queue.config import Settings, get_settings
from completion_queue.constants import SPAN_SUBMIT_JOB, JobStatus
from completion_queue.notifier import WebhookNotifier
from completion_queue.observability.metrics import get_metrics
from completion_queue.observability.tracing import get_tracer
from completion_queue.reaper import Reaper
from completion_queue.store import JobRecord, JobStore
from completion_queue.types.job import Downstream, QueueStats, SubmitReceipt
from completion_queue.worker.admission import AdmissionQueue
from completion_queue.worker.executor import RetryingExecutor

logger = logging.getLogger(__name__)


class CompletionEngine:
    """
    Job admission, execution and lifecycle tracking for completion requests.

    Example:
        engine = CompletionEngine(client.complete)
        await engine.start()
        receipt = await engine.submit({"messages": [...]})
        record = engine.get(receipt.job_id)
    """

    def __init__(
        self,
        downstream: Downstream,
        settings: Settings | None = None,
        store: JobStore | None = None,
        notifier: WebhookNotifier | None = None,
    ):
        """
        Initialize the engine.

        Args:
            downstream: Coroutine function performing one downstream call.
            settings: Settings to use. Defaults to the cached environment settings.
            store: Job store. A fresh one is created if not provided.
            notifier: Webhook notifier. A fresh one is created if not provided.
        """
        settings = settings or get_settings()

        self.store = store or JobStore()
        self.notifier = notifier or WebhookNotifier(timeout=settings.webhook_timeout_seconds)
        self.executor = RetryingExecutor(
            store=self.store,
            downstream=downstream,
            notifier=self.notifier,
            max_attempts=settings.max_attempts,
            backoff_base=settings.backoff_base_seconds,
            job_timeout=settings.job_timeout_seconds,
        )
        self.queue = AdmissionQueue(
            runner=self.executor.run,
            max_concurrent=settings.max_concurrent_requests,
        )
        self.reaper = Reaper(
            store=self.store,
            interval_seconds=settings.reaper_interval_seconds,
            retention_seconds=settings.retention_seconds,
        )

        self._reaper_task: asyncio.Task | None = None
        self._metrics = get_metrics()

    async def start(self) -> None:
        """Start background maintenance (the reaper)."""
        if self._reaper_task is None:
            self.reaper.reset()
            self._reaper_task = asyncio.create_task(self.reaper.start(), name="reaper")
            logger.info(
                "Completion engine started",
                extra={"max_concurrent": self.queue.max_concurrent},
            )

    @property
    def running(self) -> bool:
        """Whether background maintenance is running."""
        return self._reaper_task is not None and not self._reaper_task.done()

    async def submit(
        self,
        payload: dict[str, Any],
        callback_url: str | None = None,
    ) -> SubmitReceipt:
        """
        Accept a job and hand it to the admission queue.

        Returns as soon as the job is admitted or waiting; never waits for
        the job to finish.

        Args:
            payload: Validated downstream payload.
            callback_url: Optional webhook notified once the job is terminal.

        Returns:
            SubmitReceipt with the new job id and the queue state.
        """
        job_id = uuid4().hex

        with get_tracer().start_as_current_span(SPAN_SUBMIT_JOB) as span:
            span.set_attribute("job_id", job_id)

            self.store.create(job_id, payload, callback_url=callback_url)
            await self.queue.submit(job_id)

        self._metrics.record_job_submitted()
        stats = self.queue.stats()

        logger.info(
            "Job submitted",
            extra={
                "job_id": job_id,
                "waiting": stats.waiting,
                "in_flight": stats.in_flight,
                "has_callback": callback_url is not None,
            },
        )

        return SubmitReceipt(
            job_id=job_id,
            status=JobStatus.PENDING,
            queue_position=stats.waiting,
            active_requests=stats.in_flight,
        )

    def get(self, job_id: str) -> JobRecord | None:
        """
        Get a snapshot of a job.

        Returns:
            The job record, or None if the id is unknown or was evicted.
        """
        return self.store.get(job_id)

    def stats(self) -> QueueStats:
        """Get the admission queue snapshot."""
        return self.queue.stats()

    def position(self, job_id: str) -> int:
        """Get a job's 1-based position in the waiting line (0 if not waiting)."""
        return self.queue.position(job_id)

    async def close(self) -> None:
        """
        Stop the reaper, drop in-flight work and flush webhook deliveries.
        """
        await self.reaper.stop()
        if self._reaper_task is not None:
            await self._reaper_task
            self._reaper_task = None

        await self.queue.aclose()
        await self.executor.aclose()
        await self.notifier.aclose()

        logger.info("Completion engine stopped")
