"""
Type definitions for the completion queue.
Contains input/output type definitions for all functions, grouped by module.
"""

from completion_queue.types.api import (
    ChatCompletionRequest,
    ChatMessage,
    CompletionStatusResponse,
    CreateCompletionRequest,
    CreateCompletionResponse,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
)
from completion_queue.types.events import JobEvent
from completion_queue.types.job import (
    Downstream,
    JobRunner,
    QueueStats,
    SubmitReceipt,
)

__all__ = [
    # API types
    "ChatMessage",
    "ChatCompletionRequest",
    "CreateCompletionRequest",
    "CreateCompletionResponse",
    "CompletionStatusResponse",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    # Job types
    "Downstream",
    "JobRunner",
    "QueueStats",
    "SubmitReceipt",
    # Event types
    "JobEvent",
]
