"""
Credential lifecycle — registration, login, activation, password change
and password recovery.

Every state change is a single conditional UPDATE issued through
``AccountStore``; nothing is read, modified and written back. Activation
and forgot-password keys are single-use: they are cleared in the same
statement that consumes them, so a replayed key matches no row and is
reported exactly like a key that was never issued.
"""

import logging
from typing import Awaitable, Callable

from app.config import settings
from app.errors import (
    DuplicateTokenError,
    InvalidCredentials,
    Mismatch,
    MissingField,
    NoOpChange,
    NotActivated,
    NotFound,
    TokenAllocationExhausted,
)
from app.models.user import User
from app.services.account_store import AccountStore
from app.services.mailer import MailSender, reset_password_email, verification_email
from app.services.security import PasswordHasher, issue_token

logger = logging.getLogger(__name__)


class CredentialManager:
    def __init__(
        self,
        store: AccountStore,
        hasher: PasswordHasher,
        mailer: MailSender,
        token_issuer: Callable[[], str] = issue_token,
        max_token_attempts: int = settings.TOKEN_ALLOCATION_RETRIES,
    ):
        self.store = store
        self.hasher = hasher
        self.mailer = mailer
        self.issue_token = token_issuer
        self.max_token_attempts = max_token_attempts

    # ── Helpers ──

    async def _with_fresh_token(self, write: Callable[[str], Awaitable]):
        """
        Call ``write(token)`` with freshly issued tokens until it commits
        without a uniqueness collision. Returns ``(token, result)``.
        """
        for attempt in range(1, self.max_token_attempts + 1):
            token = self.issue_token()
            try:
                return token, await write(token)
            except DuplicateTokenError:
                logger.warning(
                    f"Token collision on attempt {attempt}/{self.max_token_attempts}, regenerating"
                )
        raise TokenAllocationExhausted()

    async def _send_mail(self, recipient_email: str, subject: str, html_body: str) -> None:
        """Fire-and-forget: a mail failure never fails the triggering operation."""
        try:
            await self.mailer.send(recipient_email, subject, html_body)
        except Exception:
            logger.exception(f"Failed to send '{subject}' email to {recipient_email}")

    # ── Registration & activation ──

    async def register(self, name: str, email: str, password: str) -> User:
        """Create an inactive account and mail its activation link."""
        if not email:
            raise MissingField("email", "Email ID must be provided")
        if not password:
            raise MissingField("password", "Password must be provided")

        password_hash = self.hasher.hash(password)

        async def create(key: str) -> User:
            return await self.store.create(
                name=name,
                email=email,
                password_hash=password_hash,
                activation_key=key,
                active=False,
            )

        activation_key, user = await self._with_fresh_token(create)
        logger.info(f"Registered account {user.id}")

        subject, html = verification_email(user.name, activation_key)
        await self._send_mail(user.email, subject, html)
        return user

    async def activate(self, activation_key: str) -> None:
        """Consume an activation key. Unknown and already-used keys both raise NotFound."""
        if not activation_key:
            raise MissingField("key", "Activation key must be provided")
        changed = await self.store.update(
            {"active": True, "activation_key": None},
            activation_key=activation_key,
        )
        if not changed:
            raise NotFound("Invalid or expired activation key")
        logger.info("Account activated")

    # ── Authentication ──

    async def authenticate(self, email: str, password: str) -> User:
        """
        Verify login credentials.

        The activation check runs after the password check, so an inactive
        account with a wrong password reports ``InvalidCredentials`` and only
        a correct password reveals ``NotActivated``.
        """
        if not email:
            raise MissingField("email", "Email ID must be provided for login")
        if not password:
            raise MissingField("password", "Password must be provided for login")

        user = await self.store.find_by_email(email)
        if user is None:
            raise NotFound(f"No user associated with {email}")

        if not self.hasher.verify(password, user.password_hash):
            raise InvalidCredentials("Incorrect Email ID or password")

        if not user.active:
            raise NotActivated("User not activated")

        return user

    async def register_push_address(self, account_id: int, fcm_token: str) -> None:
        """Replace the account's single registered push address."""
        if not fcm_token:
            raise MissingField("fcmToken")
        if not await self.store.update_by_id(account_id, {"fcm_token": fcm_token}):
            raise NotFound("No user found")

    # ── Password change ──

    async def change_password(
        self, account_id: int, old_password: str, new_password: str
    ) -> None:
        if not old_password:
            raise MissingField("oldPassword", "Current Password must be provided")
        if not new_password:
            raise MissingField("newPassword", "New Password must be provided")

        user = await self.store.find_by_id(account_id)
        if user is None:
            raise NotFound("No user found")

        current_hash = user.password_hash
        if not self.hasher.verify(old_password, current_hash):
            raise InvalidCredentials("Current Password does not match")
        # Compared against the hash as it is before the change.
        if self.hasher.verify(new_password, current_hash):
            raise NoOpChange("New Password cannot be same as Current Password")

        changed = await self.store.update_by_id(
            account_id,
            {"password_hash": self.hasher.hash(new_password)},
            password_hash=current_hash,
        )
        if not changed:
            # Password changed concurrently since it was verified.
            raise InvalidCredentials("Current Password does not match")
        logger.info(f"Password changed for account {account_id}")

    # ── Password recovery ──

    async def request_password_reset(self, email: str) -> None:
        """
        Issue a new forgot-password key and mail the reset link.

        Re-requesting overwrites the previous key, invalidating its link.
        """
        if not email:
            raise MissingField("email", "Email ID is required")

        user = await self.store.find_by_email(email)
        if user is None:
            raise NotFound(f"No user associated with {email}")
        account_id, recipient, name = user.id, user.email, user.name

        async def store_key(key: str) -> bool:
            return await self.store.update_by_id(account_id, {"forgot_password_key": key})

        key, stored = await self._with_fresh_token(store_key)
        if not stored:
            raise NotFound(f"No user associated with {email}")
        logger.info(f"Password reset requested for account {account_id}")

        subject, html = reset_password_email(name, key)
        await self._send_mail(recipient, subject, html)

    async def reset_password(
        self, token: str, new_password: str, confirm_password: str
    ) -> None:
        """Consume a forgot-password key and set a new password."""
        if not new_password:
            raise MissingField("newPassword", "New Password must be provided")
        if not confirm_password:
            raise MissingField("confirmPassword", "Confirm Password must be provided")
        if new_password != confirm_password:
            raise Mismatch("New Password and Confirm Password does not match")

        user = await self.store.find_by_forgot_password_key(token) if token else None
        if user is None:
            raise NotFound("No user found")

        if self.hasher.verify(new_password, user.password_hash):
            raise NoOpChange("New Password cannot be same as Current Password")

        changed = await self.store.update_by_id(
            user.id,
            {"password_hash": self.hasher.hash(new_password), "forgot_password_key": None},
            forgot_password_key=token,
        )
        if not changed:
            # Key consumed or replaced concurrently.
            raise NotFound("No user found")
        logger.info(f"Password reset completed for account {user.id}")

