import uuid
from datetime import datetime

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from orders_api.schemas.order import CamelModel


class NotificationResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: uuid.UUID
    user_to: str
    sender_username: str
    sender_picture: str
    receiver_username: str
    receiver_picture: str
    message: str
    order_id: str
    is_read: bool
    created_at: datetime


class MarkAsReadRequest(CamelModel):
    notification_id: uuid.UUID


class NotificationEnvelope(CamelModel):
    message: str
    notification: NotificationResponse


class NotificationListEnvelope(CamelModel):
    message: str
    notifications: list[NotificationResponse] = Field(default_factory=list)
