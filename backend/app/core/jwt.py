"""
JWT token utilities for authentication.

Tokens carry the caller identity used by every protected endpoint:
``sub`` (username), ``user_id``, ``role`` and ``jti`` (unique token id).
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from backend.app.core.config import settings


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Claims to encode (expected: sub, user_id, role)
        expires_delta: Optional custom lifetime, defaults to settings

    Returns:
        Encoded JWT token string

    Example payload:
        {
            "sub": "courier_jane",
            "user_id": 7,
            "role": "courier",
            "jti": "4f1c...",
            "exp": 1234567890
        }
    """
    to_encode = data.copy()
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({
        "exp": datetime.now(timezone.utc) + lifetime,
        "jti": uuid.uuid4().hex,
    })
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a JWT access token.

    Returns:
        Decoded payload if signature and expiry are valid, None otherwise
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
