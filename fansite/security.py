"""
Password hashing and the static admin bearer token.
"""

from __future__ import annotations

import hmac
from typing import Optional

import bcrypt

BCRYPT_ROUNDS = 10
BEARER_PREFIX = "Bearer "


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):].strip() or None


def is_admin_token(authorization: Optional[str], admin_token: str) -> bool:
    """
    Compare the bearer token against the configured sentinel.

    There is a single shared token for all admins; it is not signed or tied
    to a user.
    """
    token = bearer_token(authorization)
    if token is None:
        return False
    return hmac.compare_digest(token.encode("utf-8"), admin_token.encode("utf-8"))
