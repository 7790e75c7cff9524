"""
Account store — the only module that reads or writes ``users`` rows.

Performs no business logic. Writes are single statements committed
immediately; a unique-constraint violation on a token column is
reported as ``DuplicateTokenError`` so the caller can retry with a
fresh token.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import DuplicateTokenError, EmailTaken
from app.models.user import User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find_one(self, *criteria) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(*criteria).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_by_id(self, account_id: int) -> Optional[User]:
        return await self._find_one(User.id == account_id)

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self._find_one(User.email == normalize_email(email))

    async def find_by_activation_key(self, key: str) -> Optional[User]:
        return await self._find_one(User.activation_key == key)

    async def find_by_forgot_password_key(self, key: str) -> Optional[User]:
        return await self._find_one(User.forgot_password_key == key)

    async def create(self, **values: Any) -> User:
        """Insert a new account. Raises ``EmailTaken`` or ``DuplicateTokenError``."""
        values["email"] = normalize_email(values["email"])
        user = User(**values)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if await self.find_by_email(values["email"]) is not None:
                raise EmailTaken()
            raise DuplicateTokenError()
        await self.db.refresh(user)
        return user

    async def update(self, values: dict, **conditions: Any) -> int:
        """
        Apply ``values`` to every row matching all ``conditions`` in one
        UPDATE statement and return the number of rows changed.
        """
        stmt = (
            update(User)
            .where(*(getattr(User, column) == value for column, value in conditions.items()))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateTokenError()
        return result.rowcount

    async def update_by_id(self, account_id: int, values: dict, **conditions: Any) -> bool:
        """Conditional update of a single account; False when nothing matched."""
        return await self.update(values, id=account_id, **conditions) == 1
