"""
Password hashing helpers (bcrypt).
"""

import logging

import bcrypt

logger = logging.getLogger("teleport.security")

BCRYPT_ROUNDS = 12
# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:MAX_PASSWORD_BYTES]


def get_password_hash(password: str) -> str:
    """Hash a plaintext password for storage."""
    hashed = bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plaintext password against its stored hash."""
    try:
        return bcrypt.checkpw(_encode(plain_password), hashed_password.encode("utf-8"))
    except ValueError as exc:
        logger.error("Password verification failed: %s", exc)
        return False
