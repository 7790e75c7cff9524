"""
Security primitives — password hashing, single-use tokens, and JWT access tokens.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import settings

TOKEN_BYTES = 32


class PasswordHasher:
    """One-way bcrypt hashing with constant-time verification."""

    def __init__(self, rounds: int = settings.BCRYPT_ROUNDS):
        self._context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds
        )

    def hash(self, secret: str) -> str:
        return self._context.hash(secret)

    def verify(self, secret: str, hashed: Optional[str]) -> bool:
        if not secret or not hashed:
            return False
        try:
            return self._context.verify(secret, hashed)
        except ValueError:
            # Malformed or foreign hash format.
            return False


def issue_token() -> str:
    """
    Return a fresh URL-safe token (32 random bytes, 43 characters).

    Pure generator: uniqueness is enforced by the store's unique
    constraints, so a collision is handled by calling this again.
    """
    return secrets.token_urlsafe(TOKEN_BYTES)


def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    """Create a signed JWT with an expiry claim."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[int]:
    """Return the account id carried by ``token``, or None when invalid/expired."""
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        return int(payload.get("sub", 0)) or None
    except (JWTError, ValueError, TypeError):
        return None
