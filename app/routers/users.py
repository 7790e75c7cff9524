"""Users router – own profile and push address."""

from fastapi import APIRouter, Depends

from app.dependencies import get_credential_manager, require_user
from app.models.user import User
from app.schemas.user import PushAddressUpdate, StatusOut, UserOut
from app.services.credentials import CredentialManager

router = APIRouter(prefix="/api/user", tags=["users"])


@router.get("/me", response_model=UserOut)
async def read_me(current_user: User = Depends(require_user)):
    """Return the authenticated user's profile."""
    return current_user


@router.put("/fcm-token", response_model=StatusOut)
async def update_push_address(
    payload: PushAddressUpdate,
    current_user: User = Depends(require_user),
    credentials: CredentialManager = Depends(get_credential_manager),
):
    """Register this device as the account's only push address."""
    await credentials.register_push_address(current_user.id, payload.fcm_token)
    return StatusOut()
