"""
Retrying executor for completion jobs.

Drives a single job through the downstream call with bounded retries,
exponential backoff and a hard wall-clock timeout, and records the
terminal outcome in the job store.
"""

import asyncio
import logging
import time
from typing import Any

from completion_queue.config import get_settings
from completion_queue.constants import (
    DEFAULT_FAILURE_MESSAGE,
    SPAN_DOWNSTREAM_ATTEMPT,
    SPAN_EXECUTE_JOB,
    FailureKind,
)
from completion_queue.notifier import WebhookNotifier
from completion_queue.observability.logging import bind_context
from completion_queue.observability.metrics import get_metrics
from completion_queue.observability.tracing import get_tracer
from completion_queue.store import JobFailure, JobRecord, JobStore
from completion_queue.types.events import JobEvent
from completion_queue.types.job import Downstream
from completion_queue.worker.downstream import classify_failure

logger = logging.getLogger(__name__)


class RetryingExecutor:
    """
    Executes admitted jobs.

    Handles the full lifecycle of one job:
    1. Transition to PROCESSING
    2. Call the downstream API, retrying failed attempts with backoff
    3. Finalize as COMPLETED or ERROR and notify the callback, exactly once

    The attempt loop races a hard timeout. Both paths finalize through the
    store's compare-and-set, so whichever finishes first wins and the other
    outcome is discarded.
    """

    def __init__(
        self,
        store: JobStore,
        downstream: Downstream,
        notifier: WebhookNotifier | None = None,
        max_attempts: int | None = None,
        backoff_base: float | None = None,
        job_timeout: float | None = None,
    ):
        """
        Initialize the executor.

        Args:
            store: The job store.
            downstream: Coroutine function performing one downstream call.
            notifier: Webhook notifier for jobs with a callback URL.
            max_attempts: Maximum downstream attempts per job.
            backoff_base: Seconds to wait after the first failed attempt;
                doubled after each further failure.
            job_timeout: Wall-clock budget in seconds for the whole attempt sequence.
        """
        settings = get_settings()

        self.max_attempts = max_attempts or settings.max_attempts
        self.backoff_base = (
            backoff_base if backoff_base is not None else settings.backoff_base_seconds
        )
        self.job_timeout = job_timeout or settings.job_timeout_seconds

        self._store = store
        self._downstream = downstream
        self._notifier = notifier
        self._abandoned: set[asyncio.Task] = set()
        self._metrics = get_metrics()

    def backoff_delay(self, attempt_index: int) -> float:
        """Seconds to wait after the failed attempt with the given 0-based index."""
        return self.backoff_base * (2**attempt_index)

    async def run(self, job_id: str) -> None:
        """
        Run one job to a terminal state.

        Returns once the job is terminal (or was already gone); the caller
        then releases the job's concurrency slot.
        """
        bind_context(job_id=job_id)

        record = self._store.mark_processing(job_id)
        if record is None:
            logger.warning("Job is not pending, skipping execution")
            return

        with get_tracer().start_as_current_span(SPAN_EXECUTE_JOB) as span:
            span.set_attribute("job_id", job_id)

            attempts = asyncio.create_task(
                self._attempt_loop(record),
                name=f"attempts-{job_id}",
            )
            try:
                await asyncio.wait_for(asyncio.shield(attempts), timeout=self.job_timeout)
            except asyncio.TimeoutError:
                self._abandon(attempts)
                made = self._attempts_made(job_id)
                logger.warning(
                    "Job timed out",
                    extra={"timeout_seconds": self.job_timeout, "attempts": made},
                )
                self._fail(
                    job_id,
                    JobFailure(
                        message=f"Request timed out after {self.job_timeout:g} seconds",
                        kind=FailureKind.TIMEOUT,
                        attempts=made,
                    ),
                )
            except asyncio.CancelledError:
                attempts.cancel()
                raise
            except Exception as e:
                logger.exception("Exception executing job")
                self._fail(
                    job_id,
                    JobFailure(
                        message=f"Executor exception: {str(e)}",
                        kind=FailureKind.INTERNAL,
                        attempts=self._attempts_made(job_id),
                    ),
                )

    def _attempts_made(self, job_id: str) -> int:
        snapshot = self._store.get(job_id)
        return snapshot.attempts if snapshot is not None else 0

    async def _attempt_loop(self, record: JobRecord) -> None:
        """
        Attempt the downstream call up to max_attempts times.

        Stops without starting another attempt as soon as the job has been
        finalized elsewhere (timeout) or evicted.
        """
        job_id = record.id
        last_error: Exception | None = None
        attempt = 0

        for attempt_index in range(self.max_attempts):
            attempt = self._store.record_attempt(job_id)
            if attempt == 0:
                return

            try:
                with get_tracer().start_as_current_span(SPAN_DOWNSTREAM_ATTEMPT) as span:
                    span.set_attribute("job_id", job_id)
                    span.set_attribute("attempt", attempt)
                    result = await self._downstream(record.payload)
            except Exception as e:
                last_error = e
                kind = classify_failure(e)
                self._metrics.record_attempt(kind.value)
                logger.warning(
                    f"Downstream error (attempt {attempt}/{self.max_attempts}): {e}",
                    extra={"attempt": attempt, "kind": kind.value},
                )

                if attempt_index + 1 < self.max_attempts:
                    await asyncio.sleep(self.backoff_delay(attempt_index))
                    if not self._store.is_active(job_id):
                        return
                continue

            self._metrics.record_attempt("success")
            self._complete(job_id, result)
            return

        self._fail(
            job_id,
            JobFailure(
                message=str(last_error) or DEFAULT_FAILURE_MESSAGE,
                kind=classify_failure(last_error),
                attempts=attempt,
            ),
        )

    def _complete(self, job_id: str, result: Any) -> None:
        finalized = self._store.complete(job_id, result)
        if finalized is None:
            logger.debug("Discarding late result for finalized job")
            return

        logger.info(
            "Job completed successfully",
            extra={"attempts": finalized.attempts, "duration": _fmt(finalized.duration_seconds)},
        )
        self._on_finalized(finalized, kind="none")

    def _fail(self, job_id: str, failure: JobFailure) -> None:
        finalized = self._store.fail(job_id, failure)
        if finalized is None:
            logger.debug("Discarding late failure for finalized job")
            return

        logger.warning(
            "Job failed",
            extra={
                "error": failure.message,
                "kind": failure.kind.value,
                "attempts": failure.attempts,
            },
        )
        self._on_finalized(finalized, kind=failure.kind.value)

    def _on_finalized(self, record: JobRecord, kind: str) -> None:
        """Record metrics and notify the callback for the winning terminal transition."""
        self._metrics.record_job_completed(
            status=record.status.value,
            kind=kind,
            duration_seconds=record.duration_seconds,
        )

        if record.callback_url and self._notifier is not None:
            self._notifier.dispatch(record.callback_url, JobEvent.from_record(record))

    def _abandon(self, task: asyncio.Task) -> None:
        """
        Keep a timed-out attempt loop alive until its in-progress call returns.

        The loop will not start another attempt; whatever it produces loses
        the finalize race and is dropped.
        """
        self._abandoned.add(task)
        task.add_done_callback(self._abandoned.discard)

    @property
    def abandoned(self) -> int:
        return len(self._abandoned)

    async def aclose(self) -> None:
        """Cancel attempt loops abandoned by timed-out jobs."""
        tasks = list(self._abandoned)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


def _fmt(seconds: float | None) -> str | None:
    return f"{seconds:.2f}s" if seconds is not None else None
