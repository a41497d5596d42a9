from orders_api.schemas.notification import (
    MarkAsReadRequest,
    NotificationEnvelope,
    NotificationListEnvelope,
    NotificationResponse,
)
from orders_api.schemas.order import (
    CancelOrderRequest,
    DeliveredWork,
    DeliverOrderRequest,
    ExtensionDecisionRequest,
    ExtensionProposal,
    ExtensionRequest,
    MessageEnvelope,
    OfferSnapshot,
    OrderCreate,
    OrderCreatedEnvelope,
    OrderEnvelope,
    OrderListEnvelope,
    OrderResponse,
    OrderStatsMessage,
    PaymentDetails,
    ReviewMessage,
)

__all__ = [
    "CancelOrderRequest",
    "DeliveredWork",
    "DeliverOrderRequest",
    "ExtensionDecisionRequest",
    "ExtensionProposal",
    "ExtensionRequest",
    "MarkAsReadRequest",
    "MessageEnvelope",
    "NotificationEnvelope",
    "NotificationListEnvelope",
    "NotificationResponse",
    "OfferSnapshot",
    "OrderCreate",
    "OrderCreatedEnvelope",
    "OrderEnvelope",
    "OrderListEnvelope",
    "OrderResponse",
    "OrderStatsMessage",
    "PaymentDetails",
    "ReviewMessage",
]
