import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Enum, Float, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from orders_api.db.base import Base


class OrderStatus(str, enum.Enum):
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    PROCESSING = "PROCESSING"
    DELIVERED = "DELIVERED"
    COMPLETED = "Completed"
    CANCELLED = "CANCELLED"


EMPTY_EXTENSION: dict = {"originalDate": "", "newDate": "", "days": 0, "reason": ""}


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    invoice_id: Mapped[str] = mapped_column(String(64), nullable=False)

    gig_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    gig_cover_image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    gig_main_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    gig_basic_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    gig_basic_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    seller_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    seller_username: Mapped[str] = mapped_column(String(255), nullable=False)
    seller_image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    seller_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    buyer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    buyer_username: Mapped[str] = mapped_column(String(255), nullable=False)
    buyer_image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    buyer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    offer: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    service_fee: Mapped[float] = mapped_column(Float, nullable=False)
    requirements: Mapped[str] = mapped_column(Text, nullable=False, default="")

    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        nullable=False,
        default=OrderStatus.AWAITING_PAYMENT,
    )
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cancelled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    delivered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    date_ordered: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc
    )

    tx_ref: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    transaction_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    gateway_status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payment_fee: Mapped[float | None] = mapped_column(Float, nullable=True)
    payment_intent: Mapped[str | None] = mapped_column(String(255), nullable=True)

    request_extension: Mapped[dict] = mapped_column(
        JSON, nullable=False, default=lambda: dict(EMPTY_EXTENSION)
    )
    delivered_work: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    events: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    buyer_review: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    seller_review: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc, onupdate=now_utc
    )

    @property
    def total_amount(self) -> float:
        return self.price + self.service_fee
