"""User model — accounts, credentials and the device push address."""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class RoleEnum(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    # ── Identity ──
    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    name: Mapped[Optional[str]] = mapped_column(String(50))
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[RoleEnum] = mapped_column(Enum(RoleEnum), default=RoleEnum.USER)

    # ── Single-use keys (NULL once consumed) ──
    activation_key: Mapped[Optional[str]] = mapped_column(
        String(64), unique=True, index=True
    )
    active: Mapped[bool] = mapped_column(Boolean, default=False)
    forgot_password_key: Mapped[Optional[str]] = mapped_column(
        String(64), unique=True, index=True
    )

    # ── Push ──
    # At most one registered device per account.
    fcm_token: Mapped[Optional[str]] = mapped_column(String(512))

    # ── Timestamps ──
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
