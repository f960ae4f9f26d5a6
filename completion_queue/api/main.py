"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from completion_queue import __version__
from completion_queue.api.middleware import create_metrics_middleware
from completion_queue.api.routes import completions_router, health_router
from completion_queue.config import get_settings
from completion_queue.constants import FailureKind
from completion_queue.observability.logging import setup_logging
from completion_queue.observability.metrics import setup_metrics
from completion_queue.observability.tracing import instrument_fastapi, setup_tracing
from completion_queue.types.api import ErrorDetail, ErrorResponse
from completion_queue.worker.downstream import ChatCompletionClient
from completion_queue.worker.engine import CompletionEngine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    setup_logging()
    setup_metrics()
    setup_tracing()

    client: ChatCompletionClient | None = None
    if getattr(app.state, "engine", None) is None:
        client = ChatCompletionClient()
        app.state.engine = CompletionEngine(client.complete)

    await app.state.engine.start()
    logger.info("Application started")

    yield

    # Shutdown
    await app.state.engine.close()
    if client is not None:
        await client.aclose()
    logger.info("Application shutdown")


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Report invalid request bodies as 400 with the validation details."""
    error = ErrorResponse(
        error=ErrorDetail(
            message="Invalid request body",
            type=FailureKind.VALIDATION.value,
            details=jsonable_encoder(exc.errors()),
        )
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error.model_dump(exclude_none=True),
    )


def create_app(engine: CompletionEngine | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        engine: Engine to serve. When omitted, the lifespan builds one that
            talks to the configured downstream API.

    Returns:
        FastAPI: The configured application instance.
    """
    app = FastAPI(
        title="Completion Queue API",
        description="Asynchronous chat completions with bounded concurrency and retries",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.engine = engine

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(
        BaseHTTPMiddleware,
        dispatch=create_metrics_middleware(),
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Include routers
    app.include_router(health_router)
    app.include_router(completions_router)

    # Instrument with OpenTelemetry
    instrument_fastapi(app)

    return app


def run() -> None:
    """Run the API server."""
    settings = get_settings()
    app = create_app()

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
