"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with JWT authentication.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from backend.app.core.jwt import decode_access_token
from backend.app.core.token_revocation import is_token_revoked, are_user_tokens_revoked
from backend.app.core.exceptions import (
    AuthenticationError, TokenRevokedError, InsufficientPermissionsError
)
from backend.app.db.session import get_db
from backend.app.models.user import User

# HTTP Bearer security scheme; missing credentials are reported as 401 below
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    FastAPI dependency for JWT authentication.

    Checks, in order:
    1. A bearer token is present and its signature/expiry are valid
    2. The token itself has not been revoked (logout)
    3. The user's tokens have not all been revoked (blocked by admin)
    4. The user still exists and is active

    Returns:
        Decoded token payload (sub, user_id, role, jti)

    Raises:
        AuthenticationError / TokenRevokedError: 401
        InsufficientPermissionsError: 403 for inactive accounts
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    if await is_token_revoked(payload.get("jti")):
        raise TokenRevokedError()

    if await are_user_tokens_revoked(user_id):
        raise TokenRevokedError("User access has been revoked")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise InsufficientPermissionsError("User account is inactive")

    return payload
