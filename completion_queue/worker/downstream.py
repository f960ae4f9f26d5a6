"""
Downstream chat completion client and failure taxonomy.

The executor treats the downstream call as an opaque coroutine
``complete(payload) -> result``. This module provides the default
implementation for an OpenAI-compatible ``/chat/completions`` endpoint and
the exceptions the executor uses to classify failed attempts.
"""

import logging
from typing import Any

import httpx

from completion_queue.config import get_settings
from completion_queue.constants import COMPLETIONS_PATH, FailureKind

logger = logging.getLogger(__name__)


class DownstreamError(Exception):
    """Base class for failed downstream calls."""

    kind: FailureKind = FailureKind.INTERNAL


class DownstreamTransportError(DownstreamError):
    """The downstream API could not be reached or the connection failed."""

    kind = FailureKind.TRANSPORT


class DownstreamRejectedError(DownstreamError):
    """The downstream API answered with an error (bad payload, rate limit, ...)."""

    kind = FailureKind.DOWNSTREAM_REJECTED

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_type: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type


def classify_failure(exc: BaseException) -> FailureKind:
    """Map an exception raised by a downstream attempt to a failure kind."""
    if isinstance(exc, DownstreamError):
        return exc.kind
    if isinstance(exc, httpx.TransportError):
        return FailureKind.TRANSPORT
    return FailureKind.INTERNAL


class ChatCompletionClient:
    """
    Client for an OpenAI-compatible chat completion API.

    Usable directly as the executor's downstream callable via ``complete``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: API base URL, e.g. ``https://api.openai.com/v1``.
            api_key: Bearer token sent with every request.
            timeout: Per-request timeout in seconds.
            client: Optional preconfigured httpx client (used by tests).
        """
        settings = get_settings()

        self.base_url = (base_url or settings.downstream_base_url).rstrip("/")
        api_key = api_key if api_key is not None else settings.downstream_api_key
        timeout = timeout if timeout is not None else settings.downstream_timeout_seconds

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = headers

    async def complete(self, payload: dict[str, Any]) -> Any:
        """
        Run one chat completion.

        Args:
            payload: The chat completion request body.

        Returns:
            The decoded JSON response.

        Raises:
            DownstreamTransportError: On connection, protocol or timeout errors.
            DownstreamRejectedError: On a non-success HTTP response.
        """
        url = f"{self.base_url}{COMPLETIONS_PATH}"

        try:
            response = await self._client.post(url, json=payload, headers=self._headers)
        except httpx.TransportError as e:
            raise DownstreamTransportError(
                f"Downstream request failed: {str(e) or type(e).__name__}"
            ) from e

        if not response.is_success:
            message, error_type = _parse_error(response)
            raise DownstreamRejectedError(
                message,
                status_code=response.status_code,
                error_type=error_type,
            )

        try:
            return response.json()
        except ValueError as e:
            raise DownstreamRejectedError(
                "Downstream returned a non-JSON response",
                status_code=response.status_code,
            ) from e

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


def _parse_error(response: httpx.Response) -> tuple[str, str | None]:
    """Extract ``error.message`` and ``error.type`` from an error response."""
    fallback = f"HTTP {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return fallback, None

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or fallback), error.get("type")
    if isinstance(error, str):
        return error, None
    return fallback, None
