"""Access token handling and the current-actor lookup used for audit fields."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol
from uuid import UUID

from jose import JWTError, jwt
from pydantic import BaseModel

from client_console.core.config import settings

logger = logging.getLogger(__name__)


class Actor(BaseModel):
    """Authenticated console user."""

    id: UUID
    email: str
    role: str


class AuthContext(Protocol):
    """Source of the currently authenticated actor."""

    async def get_user(self) -> Optional[Actor]:
        """Return the current actor, or None when nobody is signed in."""
        ...


class StaticAuthContext:
    """AuthContext bound to an already-resolved actor (or to nobody)."""

    def __init__(self, actor: Optional[Actor]) -> None:
        self._actor = actor

    async def get_user(self) -> Optional[Actor]:
        return self._actor


def create_access_token(actor: Actor, expires_delta: timedelta | None = None) -> str:
    """Create a signed access token for an actor."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    claims = {
        "sub": str(actor.id),
        "email": actor.email,
        "role": actor.role,
        "exp": expire,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str | None) -> Optional[Actor]:
    """
    Resolve a bearer token to an actor.

    Returns None for a missing, expired, tampered or malformed token so callers
    can treat "no actor" uniformly.
    """
    if not token:
        return None

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        subject = payload.get("sub")
        if subject is None:
            return None
        return Actor(
            id=UUID(subject),
            email=payload.get("email", ""),
            role=payload.get("role", ""),
        )
    except (JWTError, ValueError) as e:
        logger.warning(f"Rejected access token: {e}")
        return None
