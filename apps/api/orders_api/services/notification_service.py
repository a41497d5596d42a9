import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from orders_api.errors import NotFoundError
from orders_api.models.notification import OrderNotification
from orders_api.models.order import Order
from orders_api.observability import metrics_store
from orders_api.schemas.notification import NotificationResponse
from orders_api.schemas.order import OrderResponse
from orders_api.services.notification_hub import ORDER_NOTIFICATION_EVENT, LiveEmitterProtocol


class NotificationService:
    """Persist order notifications and push them to live subscribers."""

    def __init__(self, db: Session, live_emitter: LiveEmitterProtocol) -> None:
        self.db = db
        self.live_emitter = live_emitter

    def persist_and_push(self, order: Order, user_to: str, message: str) -> OrderNotification:
        notification = OrderNotification(
            user_to=user_to,
            sender_username=order.seller_username,
            sender_picture=order.seller_image or "",
            receiver_username=order.buyer_username,
            receiver_picture=order.buyer_image or "",
            message=message,
            order_id=order.order_id,
        )
        # the session is shared with the committed order write and must stay usable
        try:
            self.db.add(notification)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(notification)
        metrics_store.increment("notifications_created_total")

        self.live_emitter.emit(
            ORDER_NOTIFICATION_EVENT,
            OrderResponse.from_order(order).model_dump(mode="json", by_alias=True),
            NotificationResponse.model_validate(notification).model_dump(
                mode="json", by_alias=True
            ),
        )
        return notification

    def list_for_user(self, user_to: str) -> list[OrderNotification]:
        return list(
            self.db.scalars(
                select(OrderNotification)
                .where(OrderNotification.user_to == user_to)
                .order_by(OrderNotification.created_at.desc())
            )
        )

    def mark_as_read(self, notification_id: uuid.UUID) -> OrderNotification:
        notification = self.db.get(OrderNotification, notification_id)
        if notification is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        notification.is_read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification
