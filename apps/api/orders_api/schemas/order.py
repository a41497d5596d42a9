from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from orders_api.models.order import Order, OrderStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OfferSnapshot(CamelModel):
    gig_title: str = Field(min_length=1, max_length=255)
    price: float = Field(gt=0)
    description: str = ""
    delivery_in_days: int = Field(ge=0)
    old_delivery_date: str = ""
    new_delivery_date: str = ""
    accepted: bool = False
    cancelled: bool = False
    reason: str | None = None


class OrderCreate(CamelModel):
    order_id: str | None = Field(default=None, max_length=64)
    invoice_id: str | None = Field(default=None, max_length=64)

    offer: OfferSnapshot
    gig_id: str | None = None
    gig_cover_image: str | None = None
    gig_main_title: str | None = None
    gig_basic_title: str | None = None
    gig_basic_description: str | None = None

    seller_id: str = Field(min_length=1, max_length=64)
    seller_username: str = Field(min_length=1, max_length=255)
    seller_image: str | None = None
    seller_email: str | None = None

    buyer_id: str = Field(min_length=1, max_length=64)
    buyer_username: str = Field(min_length=1, max_length=255)
    buyer_image: str | None = None
    buyer_email: str | None = None

    quantity: int = Field(default=1, ge=1)
    price: float = Field(gt=0)
    requirements: str = ""

    @field_validator("order_id", "invoice_id", "seller_username", "buyer_username")
    @classmethod
    def strip_strings(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return value.strip()


class DeliveredWork(CamelModel):
    message: str = ""
    file: str | None = None
    file_type: str | None = None
    file_size: int | None = Field(default=None, ge=0)
    file_name: str | None = None


class DeliverOrderRequest(DeliveredWork):
    pass


class ExtensionProposal(CamelModel):
    original_date: str = ""
    new_date: str = ""
    days: int = 0
    reason: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.new_date and not self.days


class ExtensionRequest(CamelModel):
    original_date: str = Field(min_length=1)
    new_date: str = Field(min_length=1)
    days: int = Field(ge=1)
    reason: str = Field(min_length=1)


class ExtensionDecisionRequest(CamelModel):
    original_date: str = ""
    new_date: str = ""
    days: int = Field(default=0, ge=0)
    reason: str = ""
    delivery_date_update: datetime | None = None


class OrderStatsMessage(CamelModel):
    seller_id: str | None = None
    buyer_id: str | None = None
    ongoing_jobs: int | None = None
    completed_jobs: int | None = None
    total_earnings: float | None = None
    purchased_gigs: str | None = None


class CancelOrderRequest(CamelModel):
    order_data: OrderStatsMessage = Field(default_factory=OrderStatsMessage)


class ReviewMessage(CamelModel):
    type: Literal["buyer-review", "seller-review"]
    order_id: str = Field(min_length=1)
    rating: int = Field(ge=0, le=5)
    review: str = ""
    created_at: datetime | None = None


class PaymentDetails(CamelModel):
    tx_ref: str
    transaction_id: str | None = None
    gateway_status: str | None = None
    payment_method: str | None = None
    fee: float | None = None


class OrderResponse(CamelModel):
    order_id: str
    invoice_id: str
    offer: dict
    gig_id: str | None
    gig_cover_image: str | None
    gig_main_title: str | None
    gig_basic_title: str | None
    gig_basic_description: str | None
    seller_id: str
    seller_username: str
    seller_image: str | None
    seller_email: str | None
    buyer_id: str
    buyer_username: str
    buyer_image: str | None
    buyer_email: str | None
    status: OrderStatus
    quantity: int
    price: float
    service_fee: float
    requirements: str
    approved: bool
    cancelled: bool
    delivered: bool
    approved_at: datetime | None
    date_ordered: datetime
    payment: PaymentDetails
    payment_intent: str | None
    request_extension: ExtensionProposal
    delivered_work: list[DeliveredWork]
    events: dict
    buyer_review: dict | None
    seller_review: dict | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            order_id=order.order_id,
            invoice_id=order.invoice_id,
            offer=dict(order.offer or {}),
            gig_id=order.gig_id,
            gig_cover_image=order.gig_cover_image,
            gig_main_title=order.gig_main_title,
            gig_basic_title=order.gig_basic_title,
            gig_basic_description=order.gig_basic_description,
            seller_id=order.seller_id,
            seller_username=order.seller_username,
            seller_image=order.seller_image,
            seller_email=order.seller_email,
            buyer_id=order.buyer_id,
            buyer_username=order.buyer_username,
            buyer_image=order.buyer_image,
            buyer_email=order.buyer_email,
            status=order.status,
            quantity=order.quantity,
            price=order.price,
            service_fee=order.service_fee,
            requirements=order.requirements,
            approved=order.approved,
            cancelled=order.cancelled,
            delivered=order.delivered,
            approved_at=order.approved_at,
            date_ordered=order.date_ordered,
            payment=PaymentDetails(
                tx_ref=order.tx_ref,
                transaction_id=order.transaction_id,
                gateway_status=order.gateway_status,
                payment_method=order.payment_method,
                fee=order.payment_fee,
            ),
            payment_intent=order.payment_intent,
            request_extension=ExtensionProposal.model_validate(order.request_extension or {}),
            delivered_work=[
                DeliveredWork.model_validate(item) for item in order.delivered_work or []
            ],
            events=dict(order.events or {}),
            buyer_review=order.buyer_review,
            seller_review=order.seller_review,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderEnvelope(CamelModel):
    message: str
    order: OrderResponse


class OrderCreatedEnvelope(OrderEnvelope):
    tx_ref: str


class OrderListEnvelope(CamelModel):
    message: str
    orders: list[OrderResponse]


class MessageEnvelope(CamelModel):
    message: str
