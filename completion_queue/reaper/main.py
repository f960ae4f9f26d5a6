"""
Record reaper for evicting stale job records.

The reaper runs periodically and deletes every job record older than the
retention window, whatever its status. A caller polling an evicted job gets
a normal "not found".
"""

import asyncio
import logging

from completion_queue.config import get_settings
from completion_queue.observability.metrics import get_metrics
from completion_queue.store import JobStore

logger = logging.getLogger(__name__)


class Reaper:
    """
    Time-based evictor for the job store.

    Runs periodically to:
    1. Compute the cutoff (now - retention window)
    2. Delete every record created before it
    3. Record metrics for monitoring
    """

    def __init__(
        self,
        store: JobStore,
        interval_seconds: float | None = None,
        retention_seconds: float | None = None,
    ):
        """
        Initialize the reaper.

        Args:
            store: The job store to sweep. Its clock defines "now".
            interval_seconds: Seconds between reaper runs.
            retention_seconds: Age after which records are evicted.
        """
        settings = get_settings()
        self.interval = interval_seconds or settings.reaper_interval_seconds
        self.retention = retention_seconds or settings.retention_seconds
        self._store = store
        self._stop_event = asyncio.Event()
        self._metrics = get_metrics()

    async def start(self) -> None:
        """
        Run sweeps every interval until stop() is called.

        A stop issued before the loop first runs ends it without sweeping.
        Call reset() before starting again after a stop.
        """
        logger.info(
            f"Reaper starting with interval {self.interval}s",
            extra={"retention_seconds": self.retention},
        )
        while not self._stop_event.is_set():
            try:
                evicted = self.run_once()

                if evicted > 0:
                    logger.info(f"Evicted {evicted} expired job records")

            except Exception as e:
                logger.exception(f"Error in reaper loop: {e}")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Reaper stopped")

    async def stop(self) -> None:
        """Stop the reaper."""
        logger.info("Reaper stopping")
        self._stop_event.set()

    def reset(self) -> None:
        """Clear a previous stop so the loop can be started again."""
        self._stop_event = asyncio.Event()

    def run_once(self) -> int:
        """
        Run one sweep (also used by tests).

        Returns:
            Number of records evicted.
        """
        cutoff = self._store.now() - self.retention
        evicted = self._store.evict_older_than(cutoff)
        if evicted:
            self._metrics.record_evicted(len(evicted))
        return len(evicted)
