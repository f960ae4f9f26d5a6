"""
Chat completion job routes.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from completion_queue.api.auth import require_api_key
from completion_queue.api.dependencies import Engine
from completion_queue.constants import (
    API_V1_PREFIX,
    COMPLETIONS_PATH,
    FailureKind,
    JobStatus,
)
from completion_queue.store import JobRecord
from completion_queue.types.api import (
    CompletionStatusResponse,
    CreateCompletionRequest,
    CreateCompletionResponse,
    ErrorDetail,
    ErrorResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix=f"{API_V1_PREFIX}{COMPLETIONS_PATH}",
    tags=["Completions"],
    dependencies=[Depends(require_api_key)],
)


def _status_body(record: JobRecord, queue_position: int, active_requests: int) -> dict[str, Any]:
    """Build the poll response body for a job record."""
    body: dict[str, Any] = {"status": record.status.value}

    if record.status == JobStatus.COMPLETED:
        body["response"] = record.result
    elif record.status == JobStatus.ERROR and record.failure is not None:
        body["error"] = record.failure.to_dict()

    body["queue_position"] = queue_position
    body["active_requests"] = active_requests
    return body


@router.post(
    "",
    response_model=CreateCompletionResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit a chat completion",
    description="Queue a chat completion request and return its id immediately.",
    responses={400: {"model": ErrorResponse}},
)
async def create_completion(
    request: CreateCompletionRequest,
    engine: Engine,
) -> CreateCompletionResponse:
    """
    Submit a chat completion job.

    The request is validated, stored as PENDING and handed to the
    admission queue; the caller polls for the result or waits for the
    callback.

    Args:
        request: Chat completion parameters plus an optional callback URL.
        engine: The completion engine.

    Returns:
        CreateCompletionResponse with the request id and queue information.
    """
    callback_url = str(request.callback_url) if request.callback_url else None

    receipt = await engine.submit(request.to_payload(), callback_url=callback_url)

    return CreateCompletionResponse(
        request_id=receipt.job_id,
        status=receipt.status,
        queue_position=receipt.queue_position,
        active_requests=receipt.active_requests,
    )


@router.get(
    "/{request_id}",
    response_model=CompletionStatusResponse,
    summary="Get completion status",
    description="Get the status of a submitted request, with the response or error once finished.",
    responses={404: {"model": ErrorResponse}, 500: {"model": CompletionStatusResponse}},
)
async def get_completion(request_id: str, engine: Engine) -> JSONResponse:
    """
    Get a job's status.

    Completed jobs return 200 with the downstream response, failed jobs
    return 500 with the recorded error, unknown or evicted ids return 404.

    Args:
        request_id: The id returned at submission.
        engine: The completion engine.

    Returns:
        JSON status body.
    """
    record = engine.get(request_id)

    if record is None:
        error = ErrorResponse(
            error=ErrorDetail(
                message="Request not found",
                type=FailureKind.NOT_FOUND.value,
            )
        )
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=error.model_dump(exclude_none=True),
        )

    active_requests = engine.stats().in_flight

    if record.status == JobStatus.COMPLETED:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=_status_body(record, 0, active_requests),
        )

    if record.status == JobStatus.ERROR:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_status_body(record, 0, active_requests),
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=_status_body(record, engine.position(request_id), active_requests),
    )
