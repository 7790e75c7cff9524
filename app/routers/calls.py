"""RTC router — start a call and ring the receiver's device."""

from fastapi import APIRouter, Depends, Query, status

from app.dependencies import get_account_store, get_dispatcher, get_media_tokens, require_user
from app.errors import MissingField, NotFound
from app.models.notification import NotificationType
from app.models.user import User
from app.schemas.message import CallInvite, CallSession, MediaTokenOut, PushNotificationOut
from app.services.account_store import AccountStore
from app.services.media import MediaTokenProvider, new_session_code
from app.services.push import NotificationDispatcher, draft_notification

router = APIRouter(prefix="/api/rtc", tags=["rtc"])


@router.post("/call", response_model=CallSession, status_code=status.HTTP_201_CREATED)
async def start_call(
    payload: CallInvite,
    current_user: User = Depends(require_user),
    store: AccountStore = Depends(get_account_store),
    media_tokens: MediaTokenProvider = Depends(get_media_tokens),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """
    Open a media session and send the receiver a call invitation.

    The caller gets its own media token; the receiver's travels in the push.
    A failed push is recorded on the notification, the call still starts.
    """
    receiver = await store.find_by_id(payload.receiver_id)
    if receiver is None:
        raise NotFound("Receiver not found")

    session_code = new_session_code()
    draft = draft_notification(
        NotificationType.CALL,
        current_user,
        receiver,
        session_code=session_code,
        media_token=media_tokens.issue(session_code, receiver.id),
    )
    notification = await dispatcher.dispatch(draft)

    return CallSession(
        vision_code=session_code,
        agora_token=media_tokens.issue(session_code, current_user.id),
        notification=PushNotificationOut.model_validate(notification),
    )


@router.get("/token", response_model=MediaTokenOut)
async def media_token(
    vision_code: str = Query("", alias="visionCode"),
    current_user: User = Depends(require_user),
    media_tokens: MediaTokenProvider = Depends(get_media_tokens),
):
    """Re-issue a media token for rejoining an existing session."""
    if not vision_code:
        raise MissingField("visionCode")
    return MediaTokenOut(
        vision_code=vision_code,
        agora_token=media_tokens.issue(vision_code, current_user.id),
    )
