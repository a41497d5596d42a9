import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from orders_api.db.base import Base
from orders_api.models.order import now_utc


class OrderNotification(Base):
    __tablename__ = "order_notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_to: Mapped[str] = mapped_column(String(255), nullable=False, index=True, default="")
    sender_username: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    sender_picture: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    receiver_username: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    receiver_picture: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    order_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc
    )
