"""Bearer-token authentication for the progression endpoints."""

from __future__ import annotations

import jwt
import structlog
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from commitquest.auth.jwt import verify_token
from commitquest.database import get_session
from commitquest.db.models import User

_bearer = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the token's ``sub`` to a User and bind its id to the log context."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(str(e)) from e

    user = await db.get(User, int(payload["sub"]))
    if user is None:
        raise _unauthorized("User not found")
    structlog.contextvars.bind_contextvars(user_id=user.id)
    return user
