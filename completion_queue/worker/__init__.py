"""
Worker module.
Contains the admission queue, retrying executor and downstream client.
"""

from completion_queue.worker.admission import AdmissionQueue
from completion_queue.worker.downstream import (
    ChatCompletionClient,
    DownstreamError,
    DownstreamRejectedError,
    DownstreamTransportError,
)
from completion_queue.worker.engine import CompletionEngine
from completion_queue.worker.executor import RetryingExecutor

__all__ = [
    "AdmissionQueue",
    "RetryingExecutor",
    "CompletionEngine",
    "ChatCompletionClient",
    "DownstreamError",
    "DownstreamRejectedError",
    "DownstreamTransportError",
]
