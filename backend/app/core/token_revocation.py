"""
Token Revocation using Redis.

Two lists are kept:
- individual tokens revoked on logout (keyed by the token's ``jti``)
- a per-user flag set when an admin blocks the account

Both entries expire after the maximum token lifetime, since any token
older than that is rejected on expiry anyway.
"""

import logging
from backend.app.core.config import settings
from backend.app.core.redis_client import current_client

logger = logging.getLogger("teleport.auth")

TOKEN_BLACKLIST_PREFIX = "blacklist:token:"
USER_TOKENS_PREFIX = "user:tokens:"


def _ttl_seconds() -> int:
    return settings.access_token_expire_minutes * 60


def _user_key(user_id: int) -> str:
    return f"{USER_TOKENS_PREFIX}{user_id}:revoked"


async def revoke_token(jti: str, user_id: int) -> bool:
    """
    Revoke a single token (logout).

    Returns:
        True if stored, False if Redis was unavailable
    """
    try:
        await current_client().set(f"{TOKEN_BLACKLIST_PREFIX}{jti}", str(user_id), ex=_ttl_seconds())
        return True
    except Exception as exc:
        logger.error("Error revoking token for user %s: %s", user_id, exc)
        return False


async def is_token_revoked(jti: str) -> bool:
    """Check whether a token id was revoked. Fails open when Redis is down."""
    if not jti:
        return False
    try:
        return await current_client().exists(f"{TOKEN_BLACKLIST_PREFIX}{jti}") > 0
    except Exception as exc:
        logger.warning("Token revocation check skipped: %s", exc)
        return False


async def revoke_all_user_tokens(user_id: int) -> bool:
    """Flag every token of a user as revoked (used when blocking)."""
    try:
        await current_client().set(_user_key(user_id), "1", ex=_ttl_seconds())
        return True
    except Exception as exc:
        logger.error("Error revoking all tokens for user %s: %s", user_id, exc)
        return False


async def are_user_tokens_revoked(user_id: int) -> bool:
    """Check the per-user revocation flag. Fails open when Redis is down."""
    try:
        return await current_client().exists(_user_key(user_id)) > 0
    except Exception as exc:
        logger.warning("User revocation check skipped for %s: %s", user_id, exc)
        return False


async def clear_user_token_revocation(user_id: int) -> bool:
    """Clear the per-user flag (used when unblocking)."""
    try:
        await current_client().delete(_user_key(user_id))
        return True
    except Exception as exc:
        logger.error("Error clearing token revocation for user %s: %s", user_id, exc)
        return False
