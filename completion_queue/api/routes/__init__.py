"""
API routes module.
"""

from completion_queue.api.routes.completions import router as completions_router
from completion_queue.api.routes.health import router as health_router

__all__ = ["completions_router", "health_router"]
