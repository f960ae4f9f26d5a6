"""
Integration tests for the completion engine.
"""

import asyncio
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio

from completion_queue.config import Settings
from completion_queue.constants import FailureKind, JobStatus
from completion_queue.notifier import WebhookNotifier
from completion_queue.worker.downstream import DownstreamTransportError
from completion_queue.worker.engine import CompletionEngine
from tests.helpers import GatedDownstream, ScriptedDownstream, wait_for_terminal, wait_until


class TestCompletionEngine:
    """Integration tests for job admission and lifecycle through the engine."""

    @pytest.fixture
    def downstream(self) -> GatedDownstream:
        return GatedDownstream()

    @pytest_asyncio.fixture
    async def engine(
        self,
        downstream: GatedDownstream,
        test_settings: Settings,
        notifier: WebhookNotifier,
    ) -> AsyncGenerator[CompletionEngine, None]:
        engine = CompletionEngine(downstream, settings=test_settings, notifier=notifier)
        await engine.start()
        yield engine
        await engine.close()

    @pytest.mark.asyncio
    async def test_third_job_waits_for_a_slot(
        self,
        engine: CompletionEngine,
        downstream: GatedDownstream,
    ):
        """Test the third of three jobs waits until one of the first two finishes."""
        first = await engine.submit({"tag": "one"})
        second = await engine.submit({"tag": "two"})
        third = await engine.submit({"tag": "three"})

        assert first.queue_position == 0
        assert first.active_requests == 1
        assert second.queue_position == 0
        assert second.active_requests == 2
        assert third.queue_position == 1
        assert third.active_requests == 2
        assert third.status == JobStatus.PENDING

        await wait_until(lambda: len(downstream.started) == 2)
        await asyncio.sleep(0.02)
        assert "three" not in downstream.started
        assert engine.get(third.job_id).status == JobStatus.PENDING
        assert engine.position(third.job_id) == 1

        downstream.release("one")

        await wait_until(lambda: "three" in downstream.started)
        record = await wait_for_terminal(engine, first.job_id)
        assert record.status == JobStatus.COMPLETED
        assert record.result == {"tag": "one"}
        assert engine.get(third.job_id).status == JobStatus.PROCESSING

        downstream.release("two")
        downstream.release("three")
        await wait_for_terminal(engine, second.job_id)
        await wait_for_terminal(engine, third.job_id)

        await wait_until(lambda: engine.stats().in_flight == 0)
        assert downstream.max_active == 2

    @pytest.mark.asyncio
    async def test_fifo_admission(
        self,
        engine: CompletionEngine,
        downstream: GatedDownstream,
    ):
        """Test waiting jobs start in submission order."""
        tags = ["a", "b", "c", "d", "e"]
        for tag in tags:
            await engine.submit({"tag": tag})

        for tag in tags:
            await wait_until(lambda: tag in downstream.started)
            downstream.release(tag)

        await wait_until(lambda: engine.stats().in_flight == 0)
        assert downstream.started == tags
        assert downstream.max_active <= 2

    @pytest.mark.asyncio
    async def test_callback_delivered_once(
        self,
        engine: CompletionEngine,
        downstream: GatedDownstream,
        notifier: WebhookNotifier,
        webhook_requests: list[dict[str, Any]],
    ):
        """Test a job with a callback URL produces exactly one delivery."""
        receipt = await engine.submit(
            {"tag": "hooked"},
            callback_url="https://hooks.example.com/jobs",
        )
        downstream.release("hooked")

        await wait_for_terminal(engine, receipt.job_id)
        await notifier.join()

        assert len(webhook_requests) == 1
        body = webhook_requests[0]["body"]
        assert body["job_id"] == receipt.job_id
        assert body["event_type"] == "job.completed"
        assert body["result"] == {"tag": "hooked"}

    @pytest.mark.asyncio
    async def test_close_drops_running_work(
        self,
        test_settings: Settings,
        notifier: WebhookNotifier,
    ):
        """Test close returns while jobs are still blocked downstream."""
        downstream = GatedDownstream()
        engine = CompletionEngine(downstream, settings=test_settings, notifier=notifier)
        await engine.start()
        assert engine.running

        for tag in ("x", "y", "z"):
            await engine.submit({"tag": tag})
        await wait_until(lambda: len(downstream.started) == 2)

        await asyncio.wait_for(engine.close(), timeout=1)

        assert not engine.running
        assert engine.stats().in_flight == 0
        assert engine.stats().waiting == 0


class TestCompletionEngineFailures:
    """Integration tests for failing jobs through the engine."""

    @pytest.mark.asyncio
    async def test_retries_then_error(
        self,
        test_settings: Settings,
        notifier: WebhookNotifier,
        webhook_requests: list[dict[str, Any]],
    ):
        """Test a job failing every attempt ends in ERROR and frees its slot."""
        downstream = ScriptedDownstream(default=DownstreamTransportError("connection refused"))
        engine = CompletionEngine(downstream, settings=test_settings, notifier=notifier)

        receipt = await engine.submit(
            {"tag": "broken"},
            callback_url="https://hooks.example.com/jobs",
        )
        record = await wait_for_terminal(engine, receipt.job_id)
        await notifier.join()

        assert record.status == JobStatus.ERROR
        assert record.failure.kind == FailureKind.TRANSPORT
        assert record.failure.attempts == test_settings.max_attempts
        assert len(downstream.calls) == test_settings.max_attempts
        await wait_until(lambda: engine.stats().in_flight == 0)

        assert len(webhook_requests) == 1
        assert webhook_requests[0]["body"]["event_type"] == "job.failed"
        assert webhook_requests[0]["body"]["error"]["type"] == "transport"

        await engine.close()

    @pytest.mark.asyncio
    async def test_timeout_frees_slot_for_waiting_job(
        self,
        test_settings: Settings,
        notifier: WebhookNotifier,
    ):
        """Test a hung job times out and lets the next job run."""
        settings = test_settings.model_copy(
            update={"max_concurrent_requests": 1, "job_timeout_seconds": 0.1}
        )
        never = asyncio.Event()

        async def hang(payload: dict[str, Any]) -> Any:
            await never.wait()

        downstream = ScriptedDownstream(hang, {"ok": True})
        engine = CompletionEngine(downstream, settings=settings, notifier=notifier)

        hung = await engine.submit({"tag": "hung"})
        queued = await engine.submit({"tag": "queued"})
        assert queued.queue_position == 1

        hung_record = await wait_for_terminal(engine, hung.job_id)
        queued_record = await wait_for_terminal(engine, queued.job_id)

        assert hung_record.status == JobStatus.ERROR
        assert hung_record.failure.kind == FailureKind.TIMEOUT
        assert queued_record.status == JobStatus.COMPLETED
        assert queued_record.result == {"ok": True}

        await engine.close()

    @pytest.mark.asyncio
    async def test_restart_after_close(
        self,
        test_settings: Settings,
        notifier: WebhookNotifier,
    ):
        """Test the engine can be started again after a close."""
        engine = CompletionEngine(ScriptedDownstream(), settings=test_settings, notifier=notifier)

        await engine.start()
        await engine.close()
        await engine.start()

        await asyncio.sleep(0.05)
        assert engine.running

        await asyncio.wait_for(engine.close(), timeout=1)
        assert not engine.running
