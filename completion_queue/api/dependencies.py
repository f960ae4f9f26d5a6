"""
FastAPI dependencies shared by the routes.
"""

from typing import Annotated

from fastapi import Depends, Request

from completion_queue.worker.engine import CompletionEngine


def get_engine(request: Request) -> CompletionEngine:
    """Get the completion engine attached to the application."""
    return request.app.state.engine


Engine = Annotated[CompletionEngine, Depends(get_engine)]
