"""Real-time media session codes and short-lived access tokens."""

from datetime import datetime, timedelta, timezone
from typing import Protocol

from jose import jwt

from app.config import settings
from app.services.security import issue_token


class MediaTokenProvider(Protocol):
    def issue(self, session_code: str, account_id: int) -> str:
        ...


def new_session_code() -> str:
    """Opaque room identifier shared by both call participants."""
    return issue_token()


class SignedMediaTokenProvider:
    """Issues HS256 tokens granting one account access to one media session."""

    def __init__(
        self,
        app_id: str = settings.MEDIA_APP_ID,
        secret: str = settings.SECRET_KEY,
        ttl_seconds: int = settings.MEDIA_TOKEN_TTL_SECONDS,
    ):
        self.app_id = app_id
        self.secret = secret
        self.ttl_seconds = ttl_seconds

    def issue(self, session_code: str, account_id: int) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "iss": self.app_id,
            "sub": str(account_id),
            "room": session_code,
            "iat": now,
            "exp": now + timedelta(seconds=self.ttl_seconds),
        }
        return jwt.encode(claims, self.secret, algorithm=settings.ALGORITHM)
