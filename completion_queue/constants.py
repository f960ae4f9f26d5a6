"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class JobStatus(StrEnum):
    """
    Job lifecycle states.

    State transitions:
    - PENDING -> PROCESSING (executor begins the downstream call)
    - PROCESSING -> COMPLETED (downstream call succeeded)
    - PROCESSING -> ERROR (attempts exhausted, timeout, or internal failure)

    COMPLETED and ERROR are terminal.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.ERROR)


class FailureKind(StrEnum):
    """Failure taxonomy recorded on errored jobs and API error bodies."""

    VALIDATION = "validation_error"
    NOT_FOUND = "request_not_found"
    TRANSPORT = "transport"
    DOWNSTREAM_REJECTED = "downstream_rejected"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


# Default values
DEFAULT_MAX_CONCURRENT = 2
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE_SECONDS = 1.0
DEFAULT_JOB_TIMEOUT_SECONDS = 300.0
DEFAULT_RETENTION_SECONDS = 3600.0
DEFAULT_REAPER_INTERVAL_SECONDS = 300.0

DEFAULT_FAILURE_MESSAGE = "An error occurred while processing your request"

# API constants
API_V1_PREFIX = "/v1"
COMPLETIONS_PATH = "/chat/completions"

# Metrics names
METRIC_QUEUE_WAITING = "completion_queue_waiting"
METRIC_QUEUE_IN_FLIGHT = "completion_queue_in_flight"
METRIC_JOBS_SUBMITTED = "jobs_submitted_total"
METRIC_JOBS_COMPLETED = "jobs_completed_total"
METRIC_JOB_DURATION = "job_duration_seconds"
METRIC_JOB_ATTEMPTS = "job_attempts_total"
METRIC_WEBHOOK_DELIVERIES = "webhook_deliveries_total"
METRIC_JOBS_EVICTED = "jobs_evicted_total"
METRIC_API_REQUESTS = "api_requests_total"
METRIC_API_LATENCY = "api_request_latency_seconds"

# Trace span names
SPAN_SUBMIT_JOB = "submit_job"
SPAN_EXECUTE_JOB = "execute_job"
SPAN_DOWNSTREAM_ATTEMPT = "downstream_attempt"
SPAN_NOTIFY = "notify_webhook"

# Webhook event types
EVENT_JOB_COMPLETED = "job.completed"
EVENT_JOB_FAILED = "job.failed"
