"""
Request metrics middleware.
"""

import time
from collections.abc import Callable

from fastapi import Request

from completion_queue.observability.metrics import get_metrics

# Paths that are not worth counting
SKIPPED_PATHS = {"/metrics", "/live", "/docs", "/openapi.json"}


def _endpoint_label(request: Request) -> str:
    """Use the route template so per-request ids do not explode label cardinality."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


def create_metrics_middleware() -> Callable:
    """
    Create request metrics middleware for FastAPI.

    Returns:
        The middleware function.
    """

    async def metrics_middleware(request: Request, call_next: Callable):
        """Middleware recording request counts and latency."""
        if request.url.path in SKIPPED_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)

        get_metrics().record_api_request(
            method=request.method,
            endpoint=_endpoint_label(request),
            status=response.status_code,
            duration_seconds=time.perf_counter() - start,
        )
        return response

    return metrics_middleware
