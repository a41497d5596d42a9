"""Order lifecycle: creation, payment verification, delivery, extensions, completion.

Every state change goes through a conditional update on the store, and every
notification or outbound event is scheduled on a ``FanOut`` that is flushed
only after that update has committed.
"""

import logging
import secrets
import string
import time
from datetime import datetime
from typing import Any

from orders_api.config import order_url, settings
from orders_api.errors import ConflictError, NotFoundError, UpstreamError, ValidationError
from orders_api.integrations.errors import IntegrationError
from orders_api.integrations.event_publisher import EventPublisherProtocol
from orders_api.integrations.file_upload import FileUploadProtocol
from orders_api.integrations.payment_gateway import PaymentGatewayProtocol
from orders_api.models.order import EMPTY_EXTENSION, Order, OrderStatus, now_utc
from orders_api.observability import log_event, metrics_store
from orders_api.schemas.order import (
    DeliverOrderRequest,
    ExtensionDecisionRequest,
    ExtensionProposal,
    ExtensionRequest,
    OrderCreate,
    OrderStatsMessage,
    ReviewMessage,
)
from orders_api.services.order_store import OrderFilter, OrderStoreError, OrderStoreProtocol
from orders_api.services.pricing import (
    amounts_match,
    compute_refund_amount,
    compute_service_fee,
)
from orders_api.services.side_effects import FanOut, NotifierProtocol
from orders_api.services.state_machine import ensure_valid_transition

GATEWAY_SUCCESS_STATUS = "successful"

_ID_ALPHABET = string.ascii_uppercase + string.digits


def _generate_token(length: int) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def generate_order_id() -> str:
    return f"ORD-{_generate_token(10)}"


def generate_invoice_id() -> str:
    return f"INV-{_generate_token(10)}"


def generate_tx_ref(order_id: str) -> str:
    return f"{order_id}-{time.time_ns() // 1_000_000}-{_generate_token(6)}"


def _format_amount(value: float) -> str:
    return f"{value:.2f}"


def _stamp(
    events: dict[str, Any] | None, key: str, when: datetime, overwrite: bool = False
) -> dict:
    stamped = dict(events or {})
    if overwrite or not stamped.get(key):
        stamped[key] = when.isoformat()
    return stamped


class OrderLifecycleEngine:
    def __init__(
        self,
        store: OrderStoreProtocol,
        publisher: EventPublisherProtocol,
        notifier: NotifierProtocol,
        gateway: PaymentGatewayProtocol,
        uploader: FileUploadProtocol,
    ) -> None:
        self.store = store
        self.publisher = publisher
        self.notifier = notifier
        self.gateway = gateway
        self.uploader = uploader

    # reads

    def get_order(self, order_id: str) -> Order:
        order = self.store.find_by_order_id(order_id)
        if order is None:
            raise NotFoundError(f"Order with ID {order_id} not found")
        return order

    def list_seller_orders(self, seller_id: str) -> list[Order]:
        return self.store.find_by_seller_id(seller_id)

    def list_buyer_orders(self, buyer_id: str) -> list[Order]:
        return self.store.find_by_buyer_id(buyer_id)

    # creation

    def create_order(self, payload: OrderCreate) -> tuple[Order, str]:
        order_id = payload.order_id or generate_order_id()
        tx_ref = generate_tx_ref(order_id)
        now = now_utc()

        events = _stamp(None, "placeOrder", now)
        if payload.requirements.strip():
            events = _stamp(events, "requirements", now)

        order = Order(
            order_id=order_id,
            invoice_id=payload.invoice_id or generate_invoice_id(),
            offer=payload.offer.model_dump(by_alias=True),
            gig_id=payload.gig_id,
            gig_cover_image=payload.gig_cover_image,
            gig_main_title=payload.gig_main_title,
            gig_basic_title=payload.gig_basic_title,
            gig_basic_description=payload.gig_basic_description,
            seller_id=payload.seller_id,
            seller_username=payload.seller_username,
            seller_image=payload.seller_image,
            seller_email=payload.seller_email,
            buyer_id=payload.buyer_id,
            buyer_username=payload.buyer_username,
            buyer_image=payload.buyer_image,
            buyer_email=payload.buyer_email,
            quantity=payload.quantity,
            price=payload.price,
            service_fee=compute_service_fee(payload.price),
            requirements=payload.requirements,
            status=OrderStatus.AWAITING_PAYMENT,
            approved=False,
            cancelled=False,
            delivered=False,
            date_ordered=now,
            tx_ref=tx_ref,
            payment_intent=None,
            request_extension=dict(EMPTY_EXTENSION),
            delivered_work=[],
            events=events,
        )

        try:
            stored = self.store.insert(order)
        except OrderStoreError as err:
            log_event(
                "order creation failed", order_id=order_id, level=logging.ERROR, exc_info=True
            )
            raise ValidationError("Failed to create order.", code="ORDER_CREATE_FAILED") from err

        metrics_store.increment("orders_created_total")
        log_event("order created", order_id=order_id, tx_ref=tx_ref)
        return stored, tx_ref

    # payment

    def verify_payment(self, transaction_id: str, tx_ref: str) -> Order:
        if not transaction_id or not tx_ref:
            raise ValidationError("Transaction ID and reference are required for verification.")

        order = self.store.find_by_tx_ref(tx_ref)
        if order is None:
            raise NotFoundError("Order not found for the provided transaction reference.")

        if order.status != OrderStatus.AWAITING_PAYMENT:
            metrics_store.increment("payment_verification_rejected_total")
            raise ConflictError(
                "Order status is not valid for verification. "
                f"Current status: {order.status.value}",
                code="ORDER_ALREADY_PROCESSED",
            )
        ensure_valid_transition(order.status, OrderStatus.PROCESSING)

        expected_total = order.total_amount

        try:
            transaction = self.gateway.verify_transaction(transaction_id)
        except IntegrationError as err:
            metrics_store.increment("payment_verification_rejected_total")
            log_event(
                f"payment gateway verification failed: {err}",
                order_id=order.order_id,
                tx_ref=tx_ref,
                level=logging.WARNING,
            )
            raise UpstreamError(
                f"Payment verification failed: {err.message}", code="PAYMENT_GATEWAY_ERROR"
            ) from err

        if transaction.status != GATEWAY_SUCCESS_STATUS:
            metrics_store.increment("payment_verification_rejected_total")
            raise ValidationError(
                f"Payment not successful. Current status: {transaction.status}",
                code="PAYMENT_NOT_SUCCESSFUL",
            )
        if transaction.tx_ref != tx_ref:
            metrics_store.increment("payment_verification_rejected_total")
            raise ValidationError(
                "Payment reference does not match this order.",
                code="PAYMENT_REFERENCE_MISMATCH",
            )
        if not amounts_match(expected_total, transaction.amount):
            metrics_store.increment("payment_verification_rejected_total")
            raise ValidationError(
                f"Payment amount mismatch. Expected: {expected_total}, "
                f"Received: {transaction.amount}",
                code="PAYMENT_AMOUNT_MISMATCH",
            )

        updated = self.store.conditional_update(
            OrderFilter(tx_ref=tx_ref, status=OrderStatus.AWAITING_PAYMENT),
            {
                "status": OrderStatus.PROCESSING,
                "transaction_id": transaction.id,
                "gateway_status": transaction.status,
                "payment_method": transaction.payment_type,
                "payment_fee": transaction.app_fee,
                "events": _stamp(order.events, "orderStarted", now_utc()),
            },
        )
        if updated is None:
            metrics_store.increment("payment_verification_conflict_total")
            raise ConflictError(
                "Order verification failed due to concurrent modification. Please retry.",
                code="CONCURRENT_MODIFICATION",
                retryable=True,
            )

        metrics_store.increment("payment_verification_ok_total")
        log_event("payment verified", order_id=updated.order_id, tx_ref=tx_ref)

        total = updated.total_amount
        fan_out = FanOut(updated.order_id)
        fan_out.publish(
            self.publisher,
            settings.seller_updates_exchange,
            settings.seller_updates_routing_key,
            {"sellerId": updated.seller_id, "ongoingJobs": 1, "type": "create-order"},
            "Update seller data after payment confirmation",
        )
        fan_out.publish(
            self.publisher,
            settings.order_email_exchange,
            settings.order_email_routing_key,
            {
                "orderId": updated.order_id,
                "invoiceId": updated.invoice_id,
                "orderDue": f"{updated.offer.get('newDeliveryDate', '')}",
                "amount": _format_amount(updated.price),
                "buyerUsername": updated.buyer_username.lower(),
                "sellerUsername": updated.seller_username.lower(),
                "title": updated.offer.get("gigTitle", ""),
                "description": updated.offer.get("description", ""),
                "requirements": updated.requirements,
                "serviceFee": _format_amount(updated.service_fee),
                "total": _format_amount(total),
                "orderUrl": order_url(updated.order_id),
                "template": "orderPlaced",
            },
            "Send order placed email after payment confirmation",
        )
        fan_out.notify(
            self.notifier, updated, updated.seller_username, "placed an order for your gig."
        )
        fan_out.flush()
        return updated

    # cancellation

    def cancel_order(self, order_id: str, data: OrderStatsMessage) -> Order:
        order = self.get_order(order_id)
        if order.status == OrderStatus.CANCELLED:
            raise ConflictError(
                "Order is already cancelled and cannot be processed.",
                code="ORDER_ALREADY_CANCELLED",
            )
        ensure_valid_transition(order.status, OrderStatus.CANCELLED)

        updated = self._apply(order, {"status": OrderStatus.CANCELLED, "cancelled": True})
        log_event("order cancelled", order_id=order_id)

        # the CAS above admits exactly one canceller, so at most one refund is issued
        self._refund(updated)

        fan_out = FanOut(order_id)
        fan_out.publish(
            self.publisher,
            settings.seller_updates_exchange,
            settings.seller_updates_routing_key,
            {"type": "cancel-order", "sellerId": data.seller_id or updated.seller_id},
            "Update seller data after order cancellation",
        )
        fan_out.publish(
            self.publisher,
            settings.buyer_updates_exchange,
            settings.buyer_updates_routing_key,
            {
                "type": "cancel-order",
                "buyerId": data.buyer_id or updated.buyer_id,
                "purchasedGigs": data.purchased_gigs,
            },
            "Update buyer data after order cancellation",
        )
        fan_out.notify(
            self.notifier, updated, updated.seller_username, "Your order has been cancelled."
        )
        fan_out.flush()
        return updated

    def _refund(self, order: Order) -> None:
        if not order.transaction_id:
            log_event(
                "no transaction recorded, no refund required", order_id=order.order_id
            )
            return

        amount = compute_refund_amount(order.price)
        try:
            self.gateway.refund(order.transaction_id, amount)
        except Exception:
            metrics_store.increment("refunds_failed_total")
            log_event(
                f"refund of {amount} failed for transaction {order.transaction_id}",
                order_id=order.order_id,
                level=logging.ERROR,
                exc_info=True,
            )
            return

        metrics_store.increment("refunds_requested_total")
        log_event(f"refund of {amount} requested", order_id=order.order_id)

    # delivery

    def deliver_order(self, order_id: str, work: DeliverOrderRequest) -> Order:
        order = self.get_order(order_id)
        ensure_valid_transition(order.status, OrderStatus.DELIVERED)

        file_reference = work.file
        if work.file:
            public_id = f"{secrets.token_hex(20)}.zip" if work.file_type == "zip" else None
            try:
                result = self.uploader.upload(work.file, public_id)
            except IntegrationError as err:
                log_event(
                    f"delivery upload failed: {err}", order_id=order_id, level=logging.WARNING
                )
                raise UpstreamError(
                    "File upload failed. Try again", code="FILE_UPLOAD_FAILED"
                ) from err
            file_reference = result.secure_url

        artifact = {
            "message": work.message,
            "file": file_reference,
            "fileType": work.file_type,
            "fileSize": work.file_size,
            "fileName": work.file_name,
        }
        updated = self._apply(
            order,
            {
                "status": OrderStatus.DELIVERED,
                "delivered": True,
                "events": _stamp(order.events, "orderDelivered", now_utc()),
                "delivered_work": [*(order.delivered_work or []), artifact],
            },
        )
        log_event("order delivered", order_id=order_id)

        fan_out = FanOut(order_id)
        fan_out.publish(
            self.publisher,
            settings.order_email_exchange,
            settings.order_email_routing_key,
            {
                "orderId": order_id,
                "buyerUsername": updated.buyer_username.lower(),
                "sellerUsername": updated.seller_username.lower(),
                "title": updated.offer.get("gigTitle", ""),
                "description": updated.offer.get("description", ""),
                "orderUrl": order_url(order_id),
                "template": "orderDelivered",
            },
            "Order delivery message sent to notification service",
        )
        fan_out.notify(
            self.notifier, updated, updated.buyer_username, "Your order has been delivered."
        )
        fan_out.flush()
        return updated

    # delivery date extension

    def request_extension(self, order_id: str, proposal: ExtensionRequest) -> Order:
        order = self.get_order(order_id)
        pending = ExtensionProposal(**proposal.model_dump())
        updated = self._apply(order, {"request_extension": pending.model_dump(by_alias=True)})
        log_event("delivery extension requested", order_id=order_id)

        fan_out = FanOut(order_id)
        fan_out.publish(
            self.publisher,
            settings.order_email_exchange,
            settings.order_email_routing_key,
            {
                "buyerUsername": updated.buyer_username.lower(),
                "sellerUsername": updated.seller_username.lower(),
                "originalDate": proposal.original_date,
                "newDate": proposal.new_date,
                "reason": proposal.reason,
                "orderUrl": order_url(order_id),
                "template": "orderExtension",
            },
            "Order extension request message sent to notification service",
        )
        fan_out.notify(
            self.notifier,
            updated,
            updated.buyer_username,
            "There is a delivery extension request for your order.",
        )
        fan_out.notify(
            self.notifier,
            updated,
            updated.seller_username,
            "Your delivery extension request has been sent to the buyer.",
        )
        fan_out.flush()
        return updated

    def approve_extension(self, order_id: str, decision: ExtensionDecisionRequest) -> Order:
        order = self.get_order(order_id)

        proposal = ExtensionProposal.model_validate(order.request_extension or {})
        if proposal.is_empty:
            proposal = ExtensionProposal(
                original_date=decision.original_date,
                new_date=decision.new_date,
                days=decision.days,
                reason=decision.reason,
            )
        if proposal.is_empty:
            raise ValidationError(
                "There is no pending delivery extension to approve.",
                code="NO_PENDING_EXTENSION",
            )

        offer = {
            **(order.offer or {}),
            "newDeliveryDate": proposal.new_date,
            "deliveryInDays": proposal.days,
            "reason": proposal.reason,
        }
        updated = self._apply(
            order,
            {
                "offer": offer,
                "events": _stamp(
                    order.events,
                    "deliveryDateUpdate",
                    decision.delivery_date_update or now_utc(),
                    overwrite=True,
                ),
                "request_extension": dict(EMPTY_EXTENSION),
            },
        )
        log_event("delivery extension approved", order_id=order_id)

        fan_out = self._extension_decision_fan_out(
            updated,
            subject="Delivery Date Extension Approved",
            header="Request Accepted",
            decision_type="Accepted",
            message="You can continue working on the order.",
        )
        fan_out.notify(
            self.notifier,
            updated,
            updated.buyer_username,
            "Your delivery date extension request has been approved.",
        )
        fan_out.notify(
            self.notifier,
            updated,
            updated.seller_username,
            "You have approved the delivery date extension request.",
        )
        fan_out.flush()
        return updated

    def reject_extension(self, order_id: str) -> Order:
        order = self.get_order(order_id)
        updated = self._apply(order, {"request_extension": dict(EMPTY_EXTENSION)})
        log_event("delivery extension rejected", order_id=order_id)

        fan_out = self._extension_decision_fan_out(
            updated,
            subject="Delivery Date Extension Rejected",
            header="Request Rejected",
            decision_type="Rejected",
            message=(
                "Please adhere to the original delivery date. "
                "Contact the Buyer for more information"
            ),
        )
        fan_out.notify(
            self.notifier,
            updated,
            updated.seller_username,
            "Your delivery date extension request has been rejected.",
        )
        fan_out.notify(
            self.notifier,
            updated,
            updated.buyer_username,
            "You have rejected the delivery date extension request.",
        )
        fan_out.flush()
        return updated

    def _extension_decision_fan_out(
        self, order: Order, *, subject: str, header: str, decision_type: str, message: str
    ) -> FanOut:
        return FanOut(order.order_id).publish(
            self.publisher,
            settings.order_email_exchange,
            settings.order_email_routing_key,
            {
                "subject": subject,
                "buyerUsername": order.buyer_username.lower(),
                "sellerUsername": order.seller_username.lower(),
                "header": header,
                "type": decision_type,
                "message": message,
                "orderUrl": order_url(order.order_id),
                "template": "orderExtensionApproval",
            },
            f"Order extension {decision_type.lower()} message sent to notification service",
        )

    # completion

    def approve_order(self, order_id: str, data: OrderStatsMessage) -> Order:
        order = self.get_order(order_id)
        ensure_valid_transition(order.status, OrderStatus.COMPLETED)

        now = now_utc()
        updated = self._apply(
            order,
            {"status": OrderStatus.COMPLETED, "approved": True, "approved_at": now},
        )
        log_event("order approved", order_id=order_id)

        seller_id = data.seller_id or updated.seller_id
        buyer_id = data.buyer_id or updated.buyer_id
        fan_out = FanOut(order_id)
        fan_out.publish(
            self.publisher,
            settings.seller_updates_exchange,
            settings.seller_updates_routing_key,
            {
                "sellerId": seller_id,
                "buyerId": buyer_id,
                "ongoingJobs": data.ongoing_jobs,
                "completedJobs": data.completed_jobs,
                "totalEarnings": data.total_earnings,
                "recentDelivery": now.isoformat(),
                "type": "approve-order",
            },
            "Update seller data after order approval",
        )
        fan_out.publish(
            self.publisher,
            settings.buyer_updates_exchange,
            settings.buyer_updates_routing_key,
            {"type": "purchased-gigs", "buyerId": buyer_id, "purchasedGigs": data.purchased_gigs},
            "Update buyer data after order approval",
        )
        fan_out.notify(
            self.notifier, updated, updated.seller_username, "Your order has been approved."
        )
        fan_out.flush()
        return updated

    # reviews

    def update_order_review(self, message: ReviewMessage) -> Order:
        order = self.get_order(message.order_id)
        created = message.created_at or now_utc()
        review = {
            "rating": message.rating,
            "review": message.review,
            "created": created.isoformat(),
        }

        if message.type == "buyer-review":
            patch = {
                "buyer_review": review,
                "events": _stamp(order.events, "buyerReview", created),
            }
        else:
            patch = {
                "seller_review": review,
                "events": _stamp(order.events, "sellerReview", created),
            }

        updated = self._apply(order, patch)
        metrics_store.increment("order_reviews_applied_total")
        log_event(f"{message.type} applied", order_id=order.order_id)
        return updated

    def _apply(self, order: Order, patch: dict[str, Any]) -> Order:
        updated = self.store.conditional_update(
            OrderFilter(order_id=order.order_id, status=order.status, version=order.version),
            patch,
        )
        if updated is None:
            metrics_store.increment("order_update_conflict_total")
            raise ConflictError(
                f"Order {order.order_id} was modified concurrently. Please retry.",
                code="CONCURRENT_MODIFICATION",
                retryable=True,
            )
        return updated
