"""
Prometheus metrics collection.
"""

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,
)

from completion_queue.constants import (
    METRIC_QUEUE_WAITING,
    METRIC_QUEUE_IN_FLIGHT,
    METRIC_JOBS_SUBMITTED,
    METRIC_JOBS_COMPLETED,
    METRIC_JOB_DURATION,
    METRIC_JOB_ATTEMPTS,
    METRIC_WEBHOOK_DELIVERIES,
    METRIC_JOBS_EVICTED,
    METRIC_API_REQUESTS,
    METRIC_API_LATENCY,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the completion queue.

    Collects metrics for:
    - Waiting and in-flight jobs
    - Job submissions and terminal outcomes
    - Job execution duration and downstream attempts
    - Webhook deliveries
    - Evicted records
    - API requests
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_waiting = Gauge(
            METRIC_QUEUE_WAITING,
            "Number of jobs waiting for a concurrency slot",
            registry=self._registry,
        )

        self.queue_in_flight = Gauge(
            METRIC_QUEUE_IN_FLIGHT,
            "Number of jobs holding a concurrency slot",
            registry=self._registry,
        )

        self.jobs_submitted = Counter(
            METRIC_JOBS_SUBMITTED,
            "Total number of jobs submitted",
            registry=self._registry,
        )

        # Terminal outcomes (status, failure kind)
        self.jobs_completed = Counter(
            METRIC_JOBS_COMPLETED,
            "Total number of jobs that reached a terminal state",
            ["status", "kind"],
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Job processing duration in seconds",
            ["status"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
            registry=self._registry,
        )

        self.job_attempts = Counter(
            METRIC_JOB_ATTEMPTS,
            "Total number of downstream attempts",
            ["outcome"],
            registry=self._registry,
        )

        self.webhook_deliveries = Counter(
            METRIC_WEBHOOK_DELIVERIES,
            "Total number of webhook delivery attempts",
            ["outcome"],
            registry=self._registry,
        )

        self.jobs_evicted = Counter(
            METRIC_JOBS_EVICTED,
            "Total number of job records evicted by the reaper",
            registry=self._registry,
        )

        # API requests counter
        self.api_requests = Counter(
            METRIC_API_REQUESTS,
            "Total number of API requests",
            ["method", "endpoint", "status"],
            registry=self._registry,
        )

        # API latency histogram
        self.api_latency = Histogram(
            METRIC_API_LATENCY,
            "API request latency in seconds",
            ["method", "endpoint"],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
            registry=self._registry,
        )

    def record_job_submitted(self) -> None:
        """Record a job submission."""
        self.jobs_submitted.inc()

    def record_job_completed(
        self,
        status: str,
        kind: str,
        duration_seconds: float | None,
    ) -> None:
        """Record a terminal transition."""
        self.jobs_completed.labels(status=status, kind=kind).inc()
        if duration_seconds is not None:
            self.job_duration.labels(status=status).observe(duration_seconds)

    def record_attempt(self, outcome: str) -> None:
        """Record a downstream attempt outcome (success or failure kind)."""
        self.job_attempts.labels(outcome=outcome).inc()

    def record_webhook_delivery(self, outcome: str) -> None:
        """Record a webhook delivery outcome."""
        self.webhook_deliveries.labels(outcome=outcome).inc()

    def record_evicted(self, count: int) -> None:
        """Record evicted records."""
        self.jobs_evicted.inc(count)

    def update_queue(self, waiting: int, in_flight: int) -> None:
        """Update the admission queue gauges."""
        self.queue_waiting.set(waiting)
        self.queue_in_flight.set(in_flight)

    def record_api_request(
        self,
        method: str,
        endpoint: str,
        status: int,
        duration_seconds: float,
    ) -> None:
        """Record an API request."""
        self.api_requests.labels(
            method=method,
            endpoint=endpoint,
            status=str(status),
        ).inc()
        self.api_latency.labels(method=method, endpoint=endpoint).observe(
            duration_seconds
        )

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
