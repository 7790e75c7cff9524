"""Message and call-signaling Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.notification import DeliveryState, NotificationType


class MessageCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    receiver_id: int = Field(alias="receiverId")
    text: str = Field(min_length=1, max_length=256)


class MessageOut(BaseModel):
    id: int
    sender_id: int
    receiver_id: int
    text: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PushNotificationOut(BaseModel):
    id: int
    type: NotificationType
    sender_id: int
    receiver_id: int
    title: str
    body: str
    message_id: Optional[int] = None
    delivery_state: DeliveryState
    delivery_error: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class MessageSent(BaseModel):
    message: MessageOut
    notification: Optional[PushNotificationOut] = None


class CallInvite(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    receiver_id: int = Field(alias="receiverId")


class CallSession(BaseModel):
    """Signaling data returned to the caller so it can join the session."""
    vision_code: str = Field(serialization_alias="visionCode")
    agora_token: str = Field(serialization_alias="agoraToken")
    notification: PushNotificationOut


class MediaTokenOut(BaseModel):
    vision_code: str = Field(serialization_alias="visionCode")
    agora_token: str = Field(serialization_alias="agoraToken")
