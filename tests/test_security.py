"""Tests for access tokens and the auth dependencies."""

from datetime import timedelta
from uuid import uuid4

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from client_console.api.dependencies.auth import (
    get_current_actor,
    get_current_admin,
    get_websocket_admin,
)
from client_console.core.config import settings
from client_console.core.security import (
    Actor,
    StaticAuthContext,
    create_access_token,
    decode_access_token,
)


def bearer(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def test_token_roundtrip(admin_actor):
    token = create_access_token(admin_actor)

    assert decode_access_token(token) == admin_actor


def test_expired_token_is_rejected(admin_actor):
    token = create_access_token(admin_actor, expires_delta=timedelta(seconds=-5))

    assert decode_access_token(token) is None


def test_forged_and_missing_tokens_are_rejected(admin_actor):
    forged = jwt.encode(
        {"sub": str(admin_actor.id), "role": admin_actor.role},
        "not-the-server-secret",
        algorithm=settings.JWT_ALGORITHM,
    )

    assert decode_access_token(forged) is None
    assert decode_access_token("not-a-jwt") is None
    assert decode_access_token(None) is None
    assert decode_access_token("") is None


@pytest.mark.asyncio
async def test_static_auth_context():
    actor = Actor(id=uuid4(), email="a@b.co", role="super_admin")

    assert await StaticAuthContext(actor).get_user() == actor
    assert await StaticAuthContext(None).get_user() is None


@pytest.mark.asyncio
async def test_missing_credentials_are_401():
    with pytest.raises(HTTPException) as exc_info:
        await get_current_actor(None)

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_non_admin_role_is_403():
    viewer = Actor(id=uuid4(), email="viewer@console.test", role="viewer")
    actor = await get_current_actor(bearer(create_access_token(viewer)))

    with pytest.raises(HTTPException) as exc_info:
        await get_current_admin(actor)

    assert exc_info.value.status_code == 403


def test_websocket_admin_requires_admin_role(admin_actor):
    viewer = Actor(id=uuid4(), email="viewer@console.test", role="viewer")

    assert get_websocket_admin(create_access_token(admin_actor)) == admin_actor
    assert get_websocket_admin(create_access_token(viewer)) is None
    assert get_websocket_admin(None) is None
