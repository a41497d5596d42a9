from typing import Literal

from fastapi import APIRouter, Depends, status

from orders_api.dependencies import get_lifecycle_engine
from orders_api.observability import observe_timing
from orders_api.schemas.order import (
    CancelOrderRequest,
    DeliverOrderRequest,
    ExtensionDecisionRequest,
    ExtensionRequest,
    OrderCreate,
    OrderCreatedEnvelope,
    OrderEnvelope,
    OrderListEnvelope,
    OrderResponse,
    OrderStatsMessage,
)
from orders_api.services.lifecycle_engine import OrderLifecycleEngine

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


@router.post(
    "",
    response_model=OrderCreatedEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create order awaiting payment",
)
def create_order_endpoint(
    payload: OrderCreate,
    engine: OrderLifecycleEngine = Depends(get_lifecycle_engine),
) -> OrderCreatedEnvelope:
    order, tx_ref = engine.create_order(payload)
    return OrderCreatedEnvelope(
        message="Order created successfully",
        order=OrderResponse.from_order(order),
        tx_ref=tx_ref,
    )


@router.get("/seller/{seller_id}", response_model=OrderListEnvelope, summary="Seller orders")
def seller_orders_endpoint(
    seller_id: str,
    engine: OrderLifecycleEngine = Depends(get_lifecycle_engine),
) -> OrderListEnvelope:
    orders = engine.list_seller_orders(seller_id)
    return OrderListEnvelope(
        message="Seller orders", orders=[OrderResponse.from_order(order) for order in orders]
    )


@router.get("/buyer/{buyer_id}", response_model=OrderListEnvelope, summary="Buyer orders")
def buyer_orders_endpoint(
    buyer_id: str,
    engine: OrderLifecycleEngine = Depends(get_lifecycle_engine),
) -> OrderListEnvelope:
    orders = engine.list_buyer_orders(buyer_id)
    return OrderListEnvelope(
        message="Buyer orders", orders=[OrderResponse.from_order(order) for order in orders]
    )


@router.get("/{order_id}", response_model=OrderEnvelope, summary="Get order by id")
def get_order_endpoint(
    order_id: str,
    engine: OrderLifecycleEngine = Depends(get_lifecycle_engine),
) -> OrderEnvelope:
    return OrderEnvelope(
        message="Order fetched successfully",
        order=OrderResponse.from_order(engine.get_order(order_id)),
    )


@router.put(
    "/verify/{transaction_id}/{tx_ref}",
    response_model=OrderEnvelope,
    summary="Verify payment with the gateway",
)
def verify_payment_endpoint(
    transaction_id: str,
    tx_ref: str,
    engine: OrderLifecycleEngine = Depends(get_lifecycle_engine),
) -> OrderEnvelope:
    with observe_timing("payment_verification_seconds"):
        order = engine.verify_payment(transaction_id, tx_ref)
    return OrderEnvelope(
        message="Payment verification successful. Order status updated to PROCESSING.",
        order=OrderResponse.from_order(order),
    )


@router.put("/cancel/{order_id}", response_model=OrderEnvelope, summary="Cancel and refund")
def cancel_order_endpoint(
    order_id: str,
    payload: CancelOrderRequest,
    engine: OrderLifecycleEngine = Depends(get_lifecycle_engine),
) -> OrderEnvelope:
    order = engine.cancel_order(order_id, payload.order_data)
    return OrderEnvelope(
        message="Order cancelled successfully", order=OrderResponse.from_order(order)
    )


@router.put(
    "/extension/{order_id}",
    response_model=OrderEnvelope,
    summary="Request a delivery date extension",
)
def request_extension_endpoint(
    order_id: str,
    payload: ExtensionRequest,
    engine: OrderLifecycleEngine = Depends(get_lifecycle_engine),
) -> OrderEnvelope:
    order = engine.request_extension(order_id, payload)
    return OrderEnvelope(
        message="Delivery extension requested successfully",
        order=OrderResponse.from_order(order),
    )


@router.put(
    "/gig/{decision}/{order_id}",
    response_model=OrderEnvelope,
    summary="Approve or reject a delivery date extension",
)
def extension_decision_endpoint(
    decision: Literal["approve", "reject"],
    order_id: str,
    payload: ExtensionDecisionRequest,
    engine: OrderLifecycleEngine = Depends(get_lifecycle_engine),
) -> OrderEnvelope:
    if decision == "approve":
        order = engine.approve_extension(order_id, payload)
    else:
        order = engine.reject_extension(order_id)
    return OrderEnvelope(
        message=f"Delivery date extension {decision}d successfully",
        order=OrderResponse.from_order(order),
    )


@router.put(
    "/deliver-order/{order_id}",
    response_model=OrderEnvelope,
    summary="Deliver work for an order",
)
def deliver_order_endpoint(
    order_id: str,
    payload: DeliverOrderRequest,
    engine: OrderLifecycleEngine = Depends(get_lifecycle_engine),
) -> OrderEnvelope:
    with observe_timing("order_delivery_seconds"):
        order = engine.deliver_order(order_id, payload)
    return OrderEnvelope(
        message="Order delivered successfully", order=OrderResponse.from_order(order)
    )


@router.put(
    "/approve-order/{order_id}",
    response_model=OrderEnvelope,
    summary="Approve delivered work",
)
def approve_order_endpoint(
    order_id: str,
    payload: OrderStatsMessage,
    engine: OrderLifecycleEngine = Depends(get_lifecycle_engine),
) -> OrderEnvelope:
    order = engine.approve_order(order_id, payload)
    return OrderEnvelope(
        message="Order approved successfully", order=OrderResponse.from_order(order)
    )
