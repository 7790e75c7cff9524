"""
Authentication router — email/password accounts + JWT.

Endpoints:
    POST /api/auth/register          → create an inactive account, mail activation link
    GET  /api/auth/verify-email-id   → consume activation key
    POST /api/auth/login             → verify credentials, issue JWT
    POST /api/auth/change-password  → change password (authenticated)
    POST /api/auth/forgot-password  → issue forgot-password key, mail reset link
    POST /api/auth/reset-password   → consume forgot-password key
    GET  /api/auth/logout            → clear JWT cookie
"""

from urllib.parse import quote_plus

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import RedirectResponse

from app.config import settings
from app.dependencies import COOKIE_KEY, get_credential_manager, require_user
from app.errors import MissingField, NotFound
from app.models.user import User
from app.schemas.user import (
    ChangePassword,
    ForgotPassword,
    ResetPassword,
    StatusOut,
    Token,
    UserCreate,
    UserLogin,
    UserOut,
)
from app.services.credentials import CredentialManager
from app.services.security import create_access_token

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _set_auth_cookie(response: Response, token: str) -> Response:
    """Attach the JWT cookie to a response."""
    response.set_cookie(
        key=COOKIE_KEY,
        value=token,
        httponly=True,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        samesite="lax",
    )
    return response


def _status_redirect(message: str) -> RedirectResponse:
    return RedirectResponse(
        url=f"/status?status={quote_plus(message)}",
        status_code=status.HTTP_303_SEE_OTHER,
    )


# ═══════════════════════════════════════════════════════════════
#  Registration & activation
# ═══════════════════════════════════════════════════════════════

@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(
    payload: UserCreate,
    credentials: CredentialManager = Depends(get_credential_manager),
):
    """Create an account; it stays inactive until the emailed key is used."""
    return await credentials.register(payload.name, payload.email, payload.password)


@router.get("/verify-email-id")
async def verify_email_id(
    key: str = "",
    credentials: CredentialManager = Depends(get_credential_manager),
):
    """Target of the activation link; shows the outcome on the status page."""
    try:
        await credentials.activate(key)
    except (MissingField, NotFound):
        return _status_redirect("Invalid or already used activation link")
    return _status_redirect("Email ID verified successfully")


# ═══════════════════════════════════════════════════════════════
#  Login
# ═══════════════════════════════════════════════════════════════

@router.post("/login", response_model=Token)
async def login(
    payload: UserLogin,
    response: Response,
    credentials: CredentialManager = Depends(get_credential_manager),
):
    user = await credentials.authenticate(payload.email, payload.password)
    if payload.fcm_token:
        await credentials.register_push_address(user.id, payload.fcm_token)

    token = create_access_token({"sub": str(user.id)})
    _set_auth_cookie(response, token)
    return Token(access_token=token, user=UserOut.model_validate(user))


@router.get("/logout")
async def logout():
    """Clear the auth cookie and redirect to the status page."""
    response = _status_redirect("Logged out successfully")
    response.delete_cookie(key=COOKIE_KEY)
    return response


# ═══════════════════════════════════════════════════════════════
#  Passwords
# ═══════════════════════════════════════════════════════════════

@router.post("/change-password", response_model=StatusOut)
async def change_password(
    payload: ChangePassword,
    current_user: User = Depends(require_user),
    credentials: CredentialManager = Depends(get_credential_manager),
):
    await credentials.change_password(
        current_user.id, payload.old_password, payload.new_password
    )
    return StatusOut()


@router.post("/forgot-password", response_model=StatusOut)
async def forgot_password(
    payload: ForgotPassword,
    credentials: CredentialManager = Depends(get_credential_manager),
):
    await credentials.request_password_reset(payload.email)
    return StatusOut()


@router.post("/reset-password", response_model=StatusOut)
async def reset_password(
    payload: ResetPassword,
    key: str = "",
    credentials: CredentialManager = Depends(get_credential_manager),
):
    await credentials.reset_password(key, payload.new_password, payload.confirm_password)
    return StatusOut()
