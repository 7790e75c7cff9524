"""Account Pydantic schemas — registration, login, password flows, profile output."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.models.user import RoleEnum

# bcrypt ignores everything past the first 72 bytes of a secret.
PASSWORD_MAX_BYTES = 72


def _check_password_bytes(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    return value


class CamelModel(BaseModel):
    """Accepts the mobile client's camelCase keys as well as field names."""

    model_config = ConfigDict(populate_by_name=True)


class UserCreate(BaseModel):
    """Fields submitted on registration."""
    name: str = Field(max_length=50)
    email: EmailStr
    password: str = Field(min_length=6)

    password_bytes = field_validator("password")(_check_password_bytes)


class UserLogin(CamelModel):
    """Fields submitted on login; ``fcmToken`` registers the device for push."""
    email: EmailStr
    password: str = Field(min_length=6)
    fcm_token: Optional[str] = Field(default=None, alias="fcmToken")

    password_bytes = field_validator("password")(_check_password_bytes)


class ChangePassword(CamelModel):
    old_password: Optional[str] = Field(default=None, alias="oldPassword")
    new_password: Optional[str] = Field(default=None, alias="newPassword")

    password_bytes = field_validator("old_password", "new_password")(_check_password_bytes)


class ForgotPassword(BaseModel):
    email: Optional[EmailStr] = None


class ResetPassword(CamelModel):
    new_password: Optional[str] = Field(default=None, alias="newPassword")
    confirm_password: Optional[str] = Field(default=None, alias="confirmPassword")

    password_bytes = field_validator("new_password", "confirm_password")(_check_password_bytes)


class PushAddressUpdate(CamelModel):
    fcm_token: str = Field(alias="fcmToken", min_length=1, max_length=512)


class UserOut(BaseModel):
    """Public account representation; never exposes the hash or keys."""
    id: int
    name: Optional[str] = None
    email: str
    role: RoleEnum
    active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class StatusOut(BaseModel):
    status: str = "success"
