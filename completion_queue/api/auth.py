"""
API key authentication.
"""

import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from completion_queue.config import get_settings

# Security scheme; missing credentials are handled below so auth can be optional
security = HTTPBearer(auto_error=False)


def validate_api_key(api_key: str | None, expected: str | None) -> bool:
    """
    Validate a presented API key.

    Args:
        api_key: The key sent by the client.
        expected: The configured key. No key configured means auth is disabled.

    Returns:
        True if the request is allowed.
    """
    if not expected:
        return True
    if not api_key:
        return False
    return secrets.compare_digest(api_key.encode(), expected.encode())


async def require_api_key(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> None:
    """
    FastAPI dependency enforcing the configured API key.

    Raises:
        HTTPException: If a key is configured and the request does not carry it.
    """
    settings = get_settings()
    presented = credentials.credentials if credentials is not None else None

    if not validate_api_key(presented, settings.api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "Bearer"},
        )
