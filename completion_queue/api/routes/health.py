"""
Health check routes.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import Response

from completion_queue import __version__
from completion_queue.api.dependencies import Engine
from completion_queue.observability.metrics import get_metrics
from completion_queue.types.api import HealthResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the API and report queue occupancy.",
)
async def health_check(engine: Engine) -> HealthResponse:
    """
    Perform a health check.

    Args:
        engine: The completion engine.

    Returns:
        HealthResponse with service status.
    """
    stats = engine.stats()

    return HealthResponse(
        status="ok",
        version=__version__,
        active_requests=stats.in_flight,
        queued_requests=stats.waiting,
        jobs=engine.store.count_by_status(),
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the service is ready to receive traffic.",
)
async def readiness_check(engine: Engine) -> dict:
    """
    Kubernetes readiness probe endpoint.

    Returns:
        Ready status.
    """
    return {"ready": engine.running}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
    """
    Kubernetes liveness probe endpoint.

    Returns:
        Alive status.
    """
    return {"alive": True}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics.",
)
async def metrics() -> Response:
    """
    Expose Prometheus metrics.

    Returns:
        Prometheus-formatted metrics.
    """
    metrics_collector = get_metrics()
    return Response(
        content=metrics_collector.get_metrics(),
        media_type=metrics_collector.get_content_type(),
    )
