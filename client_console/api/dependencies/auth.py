"""Authentication dependencies for API endpoints."""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from client_console.core.config import settings
from client_console.core.security import Actor, decode_access_token

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Actor:
    """
    Resolve the bearer token to the signed-in actor.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    actor = decode_access_token(credentials.credentials if credentials else None)
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor


async def get_current_admin(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """
    Require the super-admin role.

    Raises:
        HTTPException: 403 for any other role
    """
    if actor.role != settings.ADMIN_ROLE:
        logger.warning(f"Actor {actor.id} with role {actor.role!r} denied console access")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Super admin access required",
        )
    return actor


def get_websocket_admin(token: Optional[str]) -> Optional[Actor]:
    """Resolve a live-session token; None unless it belongs to a super admin."""
    actor = decode_access_token(token)
    if actor is None or actor.role != settings.ADMIN_ROLE:
        return None
    return actor
