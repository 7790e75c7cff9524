"""
Push notifications — drafting call-invite and message signals, recording
their delivery outcome, and handing them to FCM.

A draft is an immutable value. Once recorded it becomes a
``PushNotification`` row whose ``delivery_state`` moves from ``pending``
to ``sent`` or ``failed`` exactly once.
"""

import logging
from typing import Optional, Protocol

import httpx
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.errors import (
    InvalidTransition,
    InvalidType,
    MissingField,
    MissingPushAddress,
    MissingSignalingData,
    NotFound,
    PushDeliveryError,
)
from app.models.notification import DeliveryState, NotificationType, PushNotification
from app.models.user import User

logger = logging.getLogger(__name__)

CALL_INVITATION_BODY = "Incoming call invitation"
FCM_SEND_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"

_TYPE_ALIASES = {"call-invite": NotificationType.CALL}


class MessagePayload(Protocol):
    id: int
    last_message: str


# ═══════════════════════════════════════════════════════════════
#  Draft
# ═══════════════════════════════════════════════════════════════

class NotificationDraft(BaseModel):
    """Everything needed to deliver one signal to one device."""

    model_config = ConfigDict(frozen=True)

    type: NotificationType
    sender_id: int
    receiver_id: int
    push_address: str
    title: str
    body: str
    session_code: str = ""
    media_token: str = ""
    message_id: Optional[int] = None
    delivery_state: DeliveryState = DeliveryState.PENDING

    def to_push_payload(self) -> dict:
        """FCM v1 message; data values must all be strings."""
        return {
            "message": {
                "token": self.push_address,
                "data": {
                    "title": self.title,
                    "body": self.body,
                    "type": self.type.value,
                    "senderId": str(self.sender_id),
                    "receiverId": str(self.receiver_id),
                    "visionCode": self.session_code,
                    "agoraToken": self.media_token,
                    "msgId": "" if self.message_id is None else str(self.message_id),
                },
            }
        }


def _coerce_type(type_) -> NotificationType:
    if isinstance(type_, NotificationType):
        return type_
    if type_ in _TYPE_ALIASES:
        return _TYPE_ALIASES[type_]
    try:
        return NotificationType(type_)
    except ValueError:
        raise InvalidType(f"Unknown notification type: {type_!r}")


def draft_notification(
    type_,
    sender: User,
    receiver: User,
    session_code: str = "",
    media_token: str = "",
    message: Optional[MessagePayload] = None,
) -> NotificationDraft:
    """
    Build the draft for a call invitation or a chat message.

    Pure construction, no I/O. Raises ``InvalidType``,
    ``MissingPushAddress``, ``MissingSignalingData`` or ``MissingField``.
    """
    kind = _coerce_type(type_)

    if not receiver.fcm_token:
        raise MissingPushAddress(f"User {receiver.id} has no registered device")

    if kind is NotificationType.CALL:
        if not session_code or not media_token:
            raise MissingSignalingData()
        return NotificationDraft(
            type=kind,
            sender_id=sender.id,
            receiver_id=receiver.id,
            push_address=receiver.fcm_token,
            title=sender.name or "",
            body=CALL_INVITATION_BODY,
            session_code=session_code,
            media_token=media_token,
        )

    if message is None:
        raise MissingField("message", "A message is required for message notifications")
    return NotificationDraft(
        type=kind,
        sender_id=sender.id,
        receiver_id=receiver.id,
        push_address=receiver.fcm_token,
        title=sender.name or "",
        body=message.last_message,
        message_id=message.id,
    )


# ═══════════════════════════════════════════════════════════════
#  Delivery tracking
# ═══════════════════════════════════════════════════════════════

class DeliveryTracker:
    """Persists drafts and records each one's delivery outcome once."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(self, draft: NotificationDraft) -> PushNotification:
        notification = PushNotification(
            **draft.model_dump(exclude={"delivery_state"}),
            delivery_state=DeliveryState.PENDING,
        )
        self.db.add(notification)
        await self.db.commit()
        await self.db.refresh(notification)
        return notification

    async def get(self, notification_id: int) -> PushNotification:
        result = await self.db.execute(
            select(PushNotification)
            .where(PushNotification.id == notification_id)
            .execution_options(populate_existing=True)
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFound("Notification not found")
        return notification

    async def _settle(
        self, notification_id: int, state: DeliveryState, error: Optional[str] = None
    ) -> PushNotification:
        # Check-and-set: only a pending row can move.
        await self.db.execute(
            update(PushNotification)
            .where(
                PushNotification.id == notification_id,
                PushNotification.delivery_state == DeliveryState.PENDING,
            )
            .values(delivery_state=state, delivery_error=error)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        notification = await self.get(notification_id)
        if notification.delivery_state != state:
            raise InvalidTransition(
                f"Notification {notification_id} already {notification.delivery_state.value}"
            )
        return notification

    async def mark_sent(self, notification_id: int) -> PushNotification:
        return await self._settle(notification_id, DeliveryState.SENT)

    async def mark_failed(self, notification_id: int, error: str) -> PushNotification:
        return await self._settle(notification_id, DeliveryState.FAILED, error or "unknown error")


# ═══════════════════════════════════════════════════════════════
#  Sending
# ═══════════════════════════════════════════════════════════════

class PushSender(Protocol):
    async def send(self, push_address: str, payload: dict) -> None:
        """Deliver one payload. Raises ``PushDeliveryError`` on failure."""
        ...


class FcmPushSender:
    """FCM HTTP v1 client. Logs instead of sending when credentials are unset."""

    def __init__(
        self,
        project_id: str = settings.FCM_PROJECT_ID,
        access_token: str = settings.FCM_ACCESS_TOKEN,
        timeout: float = 10.0,
    ):
        self.project_id = project_id
        self.access_token = access_token
        self.timeout = timeout

    @property
    def simulated(self) -> bool:
        return not self.project_id or not self.access_token

    async def send(self, push_address: str, payload: dict) -> None:
        data = payload.get("message", {}).get("data", {})
        if self.simulated:
            logger.info(f"Simulated push ({data.get('type')}) to receiver {data.get('receiverId')}")
            return

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    FCM_SEND_URL.format(project_id=self.project_id),
                    json=payload,
                    headers={"Authorization": f"Bearer {self.access_token}"},
                )
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise PushDeliveryError(str(e)) from e
        logger.info(f"Push ({data.get('type')}) delivered to receiver {data.get('receiverId')}")


class NotificationDispatcher:
    """Records a draft, sends it, and records the outcome."""

    def __init__(self, tracker: DeliveryTracker, sender: PushSender):
        self.tracker = tracker
        self.sender = sender

    async def dispatch(self, draft: NotificationDraft) -> PushNotification:
        notification = await self.tracker.record(draft)
        try:
            await self.sender.send(draft.push_address, draft.to_push_payload())
        except Exception as e:
            # Delivery failures are recorded, never raised to the caller.
            logger.error(f"Push notification {notification.id} failed: {e}")
            return await self.tracker.mark_failed(notification.id, str(e))
        return await self.tracker.mark_sent(notification.id)
