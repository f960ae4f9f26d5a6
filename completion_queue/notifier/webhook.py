"""
Best-effort webhook delivery of terminal job events.
"""

import asyncio
import logging

import httpx

from completion_queue.config import get_settings
from completion_queue.constants import SPAN_NOTIFY
from completion_queue.observability.metrics import get_metrics
from completion_queue.observability.tracing import get_tracer
from completion_queue.types.events import JobEvent

logger = logging.getLogger(__name__)


class WebhookNotifier:
    """
    Fire-and-forget webhook notifier.

    Each event is POSTed once as JSON. Network errors and non-success
    responses are logged and dropped: they never touch the job record and
    are never retried.
    """

    def __init__(
        self,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the notifier.

        Args:
            timeout: Per-delivery timeout in seconds. Defaults to settings.
            client: Optional preconfigured httpx client (used by tests).
        """
        settings = get_settings()
        timeout = timeout if timeout is not None else settings.webhook_timeout_seconds

        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._pending: set[asyncio.Task] = set()
        self._metrics = get_metrics()

    async def notify(self, callback_url: str, event: JobEvent) -> bool:
        """
        Deliver one event.

        Args:
            callback_url: The webhook URL.
            event: The terminal job event.

        Returns:
            True if the endpoint answered with a success status.
        """
        with get_tracer().start_as_current_span(SPAN_NOTIFY) as span:
            span.set_attribute("job_id", event.job_id)
            span.set_attribute("event_type", event.event_type)

            try:
                response = await self._client.post(callback_url, json=event.to_payload())
            except Exception as e:
                logger.warning(
                    f"Webhook delivery failed: {e}",
                    extra={"job_id": event.job_id, "callback_url": callback_url},
                )
                self._metrics.record_webhook_delivery("transport_error")
                return False

            if not response.is_success:
                logger.warning(
                    "Webhook endpoint rejected event",
                    extra={
                        "job_id": event.job_id,
                        "callback_url": callback_url,
                        "status_code": response.status_code,
                    },
                )
                self._metrics.record_webhook_delivery("rejected")
                return False

        logger.info(
            "Webhook delivered",
            extra={"job_id": event.job_id, "event_type": event.event_type},
        )
        self._metrics.record_webhook_delivery("delivered")
        return True

    def dispatch(self, callback_url: str, event: JobEvent) -> asyncio.Task:
        """
        Schedule delivery in the background and return immediately.

        Returns:
            The delivery task.
        """
        task = asyncio.create_task(
            self.notify(callback_url, event),
            name=f"webhook-{event.job_id}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def join(self) -> None:
        """Wait for all scheduled deliveries to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        """Flush pending deliveries and close the HTTP client."""
        await self.join()
        await self._client.aclose()
