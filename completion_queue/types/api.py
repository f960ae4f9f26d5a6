"""
API request and response type definitions.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, HttpUrl

from completion_queue.constants import JobStatus


class ChatMessage(BaseModel):
    """A single chat message."""

    role: Literal["system", "user", "assistant", "function"]
    content: str
    name: str | None = None
    function_call: dict[str, Any] | None = None


class ChatCompletionRequest(BaseModel):
    """Chat completion parameters forwarded to the downstream API."""

    model: str = Field(default="gpt-3.5-turbo", description="Model name")
    messages: list[ChatMessage] = Field(..., min_length=1)
    temperature: float = Field(default=0.7, ge=0, le=2)
    max_tokens: int | None = Field(default=None, gt=0)
    stream: bool | None = None
    presence_penalty: float | None = Field(default=None, ge=-2, le=2)
    frequency_penalty: float | None = Field(default=None, ge=-2, le=2)
    top_p: float | None = Field(default=None, ge=0, le=1)
    stop: str | list[str] | None = None
    functions: list[dict[str, Any]] | None = None
    function_call: str | dict[str, Any] | None = None


class CreateCompletionRequest(ChatCompletionRequest):
    """Request body for submitting a chat completion job."""

    callback_url: HttpUrl | None = Field(
        default=None,
        description="Webhook notified once with the final result or error",
    )

    def to_payload(self) -> dict[str, Any]:
        """Get the downstream payload (everything except the callback)."""
        return self.model_dump(exclude={"callback_url"}, exclude_none=True)


class CreateCompletionResponse(BaseModel):
    """Response body after submitting a job."""

    request_id: str
    status: JobStatus
    queue_position: int
    active_requests: int


class CompletionStatusResponse(BaseModel):
    """Status of a submitted job, with the result or error once terminal."""

    status: JobStatus
    response: Any = None
    error: dict[str, Any] | None = None
    queue_position: int
    active_requests: int


class ErrorDetail(BaseModel):
    """Error detail."""

    message: str
    type: str
    details: list[dict[str, Any]] | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    active_requests: int
    queued_requests: int
    jobs: dict[str, int]
    timestamp: datetime
