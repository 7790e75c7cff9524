"""Messages router — store a chat message and push it to the receiver."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_account_store, get_dispatcher, require_user
from app.errors import MissingPushAddress, NotFound
from app.models.message import Message
from app.models.notification import NotificationType
from app.models.user import User
from app.schemas.message import MessageCreate, MessageOut, MessageSent, PushNotificationOut
from app.services.account_store import AccountStore
from app.services.push import NotificationDispatcher, draft_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/msg", tags=["messages"])


@router.post("/send", response_model=MessageSent, status_code=status.HTTP_201_CREATED)
async def send_message(
    payload: MessageCreate,
    current_user: User = Depends(require_user),
    store: AccountStore = Depends(get_account_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    db: AsyncSession = Depends(get_db),
):
    receiver = await store.find_by_id(payload.receiver_id)
    if receiver is None:
        raise NotFound("Receiver not found")

    message = Message(
        sender_id=current_user.id,
        receiver_id=receiver.id,
        text=payload.text,
    )
    db.add(message)
    await db.commit()
    await db.refresh(message)

    try:
        draft = draft_notification(
            NotificationType.MESSAGE, current_user, receiver, message=message
        )
    except MissingPushAddress:
        # Receiver has no device; the stored message is all they get.
        logger.info(f"Message {message.id} stored without push, receiver {receiver.id} has no device")
        return MessageSent(message=MessageOut.model_validate(message))

    notification = await dispatcher.dispatch(draft)
    return MessageSent(
        message=MessageOut.model_validate(message),
        notification=PushNotificationOut.model_validate(notification),
    )
