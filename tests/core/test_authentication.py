"""Tests for token handling and role checks."""

import uuid
from datetime import timedelta

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from threatgraph.core.authentication import (
    create_access_token,
    get_current_user,
    is_writer,
    verify_token,
)
from threatgraph.core.schemas import AuthenticatedUser, UserRole
from threatgraph.core.settings import get_settings


def test_create_access_token_claims():
    """Test JWT token creation."""
    user_id = uuid.uuid4()
    token = create_access_token(user_id, "alice", UserRole.ANALYST)

    settings = get_settings()
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])

    assert payload["sub"] == str(user_id)
    assert payload["name"] == "alice"
    assert payload["role"] == "analyst"
    assert "exp" in payload


def test_verify_token_expired():
    """Test token verification with an expired token."""
    token = create_access_token(
        uuid.uuid4(), "alice", UserRole.VIEWER, expires_delta=timedelta(minutes=-1)
    )
    with pytest.raises(HTTPException) as exc_info:
        _ = verify_token(token)
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_get_current_user_from_bearer():
    user_id = uuid.uuid4()
    token = create_access_token(user_id, "alice", UserRole.ADMIN)
    credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

    user = await get_current_user(credentials=credentials, access_token=None)

    assert user == AuthenticatedUser(user_id=user_id, name="alice", role=UserRole.ADMIN)


@pytest.mark.asyncio
async def test_get_current_user_rejects_unknown_role():
    settings = get_settings()
    token = jwt.encode(
        {"sub": str(uuid.uuid4()), "role": "superuser"},
        settings.secret_key,
        algorithm=settings.algorithm,
    )
    with pytest.raises(HTTPException) as exc_info:
        _ = await get_current_user(credentials=None, access_token=token)
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_get_current_user_without_token():
    with pytest.raises(HTTPException) as exc_info:
        _ = await get_current_user(credentials=None, access_token=None)
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_writer_role_check():
    viewer = AuthenticatedUser(user_id=uuid.uuid4(), name="v", role=UserRole.VIEWER)
    analyst = AuthenticatedUser(user_id=uuid.uuid4(), name="a", role=UserRole.ANALYST)

    assert await is_writer(user=analyst) == analyst
    with pytest.raises(HTTPException) as exc_info:
        _ = await is_writer(user=viewer)
    assert exc_info.value.status_code == 403
