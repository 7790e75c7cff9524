"""
Dependency wiring for the FastAPI app.

Collaborators are built per request and injected; tests override
``get_mailer``, ``get_push_sender`` and ``get_db`` through
``app.dependency_overrides``.
"""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.errors import NotAuthenticated
from app.models.user import User
from app.services.account_store import AccountStore
from app.services.credentials import CredentialManager
from app.services.mailer import MailSender, SmtpMailSender
from app.services.media import MediaTokenProvider, SignedMediaTokenProvider
from app.services.push import DeliveryTracker, FcmPushSender, NotificationDispatcher, PushSender
from app.services.security import PasswordHasher, decode_access_token

COOKIE_KEY = "access_token"


def get_hasher() -> PasswordHasher:
    return PasswordHasher()


def get_mailer() -> MailSender:
    return SmtpMailSender()


def get_push_sender() -> PushSender:
    return FcmPushSender()


def get_media_tokens() -> MediaTokenProvider:
    return SignedMediaTokenProvider()


def get_account_store(db: AsyncSession = Depends(get_db)) -> AccountStore:
    return AccountStore(db)


def get_credential_manager(
    store: AccountStore = Depends(get_account_store),
    hasher: PasswordHasher = Depends(get_hasher),
    mailer: MailSender = Depends(get_mailer),
) -> CredentialManager:
    return CredentialManager(store, hasher, mailer)


def get_dispatcher(
    db: AsyncSession = Depends(get_db),
    sender: PushSender = Depends(get_push_sender),
) -> NotificationDispatcher:
    return NotificationDispatcher(DeliveryTracker(db), sender)


def _request_token(request: Request) -> Optional[str]:
    """Bearer header for the mobile client, cookie for browser pages."""
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip()
    return request.cookies.get(COOKIE_KEY)


async def get_current_user(
    request: Request,
    store: AccountStore = Depends(get_account_store),
) -> Optional[User]:
    """
    Decode the JWT and return the User.
    Returns None when no valid token is present.
    """
    token = _request_token(request)
    if not token:
        return None
    user_id = decode_access_token(token)
    if not user_id:
        return None
    return await store.find_by_id(user_id)


async def require_user(current_user: Optional[User] = Depends(get_current_user)) -> User:
    if current_user is None:
        raise NotAuthenticated()
    return current_user
