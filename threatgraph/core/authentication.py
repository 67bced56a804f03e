"""Authentication utilities for JWT token validation and actor resolution."""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from uuid import UUID

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from threatgraph.core.schemas import AuthenticatedUser, UserRole
from threatgraph.core.settings import get_settings

bearer_scheme = HTTPBearer(auto_error=False)


def verify_token(token: str) -> dict[str, str | int]:
    """Verify and decode a JWT token."""
    settings = get_settings()

    try:
        payload = jwt.decode(
            token, settings.secret_key, algorithms=[settings.algorithm]
        )
        return payload
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


def create_access_token(
    user_id: UUID,
    name: str,
    role: UserRole,
    expires_delta: timedelta = timedelta(minutes=30),
) -> str:
    """Create a JWT access token for an actor."""
    settings = get_settings()
    to_encode = {
        "sub": str(user_id),
        "name": name,
        "role": role.value,
        "exp": datetime.now(UTC) + expires_delta,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    access_token: str | None = Cookie(None, alias="access_token"),
) -> AuthenticatedUser:
    """Resolve the calling actor from a bearer token or the access_token cookie.

    Raises:
        HTTPException 401 if not authenticated or token is invalid
    """
    token = credentials.credentials if credentials else access_token
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_token(token)
    user_id = payload.get("sub")
    role_str = payload.get("role")
    if user_id is None or role_str is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing required user or role information",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return AuthenticatedUser(
            user_id=UUID(str(user_id)),
            name=str(payload.get("name") or user_id),
            role=UserRole(role_str),
        )
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user or role format in token",
            headers={"WWW-Authenticate": "Bearer"},
        )


# A dependency factory
def require_roles(
    allowed_roles: list[UserRole],
) -> Callable[..., Awaitable[AuthenticatedUser]]:
    """Factory for a dependency that checks the actor has an allowed role."""

    async def role_checker(
        user: AuthenticatedUser = Depends(get_current_user),
    ) -> AuthenticatedUser:
        if user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return role_checker


is_writer = require_roles([UserRole.ADMIN, UserRole.ANALYST])
is_any_user = require_roles([UserRole.ADMIN, UserRole.ANALYST, UserRole.VIEWER])
