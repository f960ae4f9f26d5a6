"""
Test doubles and polling helpers shared by the test suite.
"""

import asyncio
from collections.abc import Callable
from typing import Any

from completion_queue.constants import JobStatus
from completion_queue.store import JobRecord
from completion_queue.worker.engine import CompletionEngine


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedDownstream:
    """
    Downstream call that plays back a script of outcomes.

    Each call consumes the next outcome: exceptions are raised, coroutine
    functions are awaited with the payload, anything else is returned.
    Once the script is exhausted, ``default`` is used.
    """

    def __init__(self, *outcomes: Any, default: Any = None):
        self.outcomes = list(outcomes)
        self.default = default
        self.calls: list[dict[str, Any]] = []

    async def __call__(self, payload: dict[str, Any]) -> Any:
        self.calls.append(payload)
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return await outcome(payload)
        return outcome


class GatedDownstream:
    """
    Downstream call that blocks each job until the test releases it.

    Jobs are identified by ``payload["tag"]``. Tracks how many calls are
    running at once.
    """

    def __init__(self):
        self.started: list[str] = []
        self.active = 0
        self.max_active = 0
        self._gates: dict[str, asyncio.Event] = {}

    def _gate(self, tag: str) -> asyncio.Event:
        return self._gates.setdefault(tag, asyncio.Event())

    async def __call__(self, payload: dict[str, Any]) -> Any:
        tag = payload["tag"]
        self.started.append(tag)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await self._gate(tag).wait()
        finally:
            self.active -= 1
        return {"tag": tag}

    def release(self, tag: str) -> None:
        self._gate(tag).set()


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll until the predicate holds or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(0.005)


async def wait_for_terminal(
    engine: CompletionEngine,
    job_id: str,
    timeout: float = 2.0,
) -> JobRecord:
    """Poll the engine until the job is terminal and return its record."""

    def is_terminal() -> bool:
        record = engine.get(job_id)
        return record is not None and record.status in (JobStatus.COMPLETED, JobStatus.ERROR)

    await wait_until(is_terminal, timeout=timeout)
    return engine.get(job_id)
