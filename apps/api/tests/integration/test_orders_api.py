from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from orders_api.integrations.errors import IntegrationBadGatewayError, IntegrationTimeoutError
from orders_api.main import app
from orders_api.models.notification import OrderNotification
from orders_api.observability import metrics_store

EXTENSION_BODY = {
    "originalDate": "2026-10-22",
    "newDate": "2026-10-24",
    "days": 2,
    "reason": "Revisions",
}


def test_create_order_returns_camel_case_envelope(client, created_order, publisher):
    assert created_order["message"] == "Order created successfully"
    order = created_order["order"]
    assert order["status"] == "AWAITING_PAYMENT"
    assert order["serviceFee"] == 250
    assert order["sellerUsername"] == "Sally"
    assert order["payment"]["txRef"] == created_order["txRef"]
    assert order["requestExtension"] == {"originalDate": "", "newDate": "", "days": 0, "reason": ""}
    assert publisher.published == []


def test_create_order_validates_payload(client, order_payload):
    response = client.post("/api/v1/orders", json=order_payload(price=0))

    assert response.status_code == 422


def test_get_order_and_listings(client, created_order):
    order_id = created_order["order"]["orderId"]

    fetched = client.get(f"/api/v1/orders/{order_id}")
    seller = client.get("/api/v1/orders/seller/seller-1")
    buyer = client.get("/api/v1/orders/buyer/buyer-1")
    nobody = client.get("/api/v1/orders/buyer/buyer-404")

    assert fetched.status_code == 200
    assert fetched.json()["order"]["orderId"] == order_id
    assert [item["orderId"] for item in seller.json()["orders"]] == [order_id]
    assert [item["orderId"] for item in buyer.json()["orders"]] == [order_id]
    assert nobody.json()["orders"] == []


def test_unknown_order_is_404_with_error_detail(client):
    response = client.get("/api/v1/orders/ORD-MISSING")

    assert response.status_code == 404
    assert response.json() == {
        "detail": {
            "code": "NOT_FOUND",
            "message": "Order with ID ORD-MISSING not found",
            "retryable": False,
        }
    }


def test_verify_payment_endpoint(client, paid_order_json, publisher):
    assert paid_order_json["status"] == "PROCESSING"
    assert paid_order_json["payment"]["transactionId"] == "tx-http-1"
    assert publisher.payloads("user-seller")[0]["type"] == "create-order"
    assert metrics_store.snapshot().timings["payment_verification_seconds"]["count"] == 1


def test_verify_payment_twice_is_409(client, paid_order_json):
    tx_ref = paid_order_json["payment"]["txRef"]

    response = client.put(f"/api/v1/orders/verify/tx-http-1/{tx_ref}")

    assert response.status_code == 409
    assert response.json()["detail"]["retryable"] is False


def test_verify_amount_mismatch_is_400(client, gateway, created_order):
    gateway.add("tx-short", created_order["txRef"], 100)

    response = client.put(f"/api/v1/orders/verify/tx-short/{created_order['txRef']}")

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "PAYMENT_AMOUNT_MISMATCH"


def test_full_order_flow_over_http(client, paid_order_json, gateway):
    order_id = paid_order_json["orderId"]

    extension = client.put(
        f"/api/v1/orders/extension/{order_id}",
        json=EXTENSION_BODY,
    )
    assert extension.status_code == 200
    assert extension.json()["order"]["requestExtension"]["days"] == 2

    approved = client.put(f"/api/v1/orders/gig/approve/{order_id}", json={})
    assert approved.status_code == 200
    assert approved.json()["message"] == "Delivery date extension approved successfully"
    assert approved.json()["order"]["offer"]["newDeliveryDate"] == "2026-10-24"

    delivered = client.put(
        f"/api/v1/orders/deliver-order/{order_id}",
        json={"message": "All files attached", "fileName": "logo.png"},
    )
    assert delivered.status_code == 200
    assert delivered.json()["order"]["status"] == "DELIVERED"
    assert delivered.json()["order"]["deliveredWork"][0]["fileName"] == "logo.png"

    completed = client.put(
        f"/api/v1/orders/approve-order/{order_id}",
        json={"completedJobs": 1, "totalEarnings": 2500, "purchasedGigs": "gig-1"},
    )
    assert completed.status_code == 200
    assert completed.json()["message"] == "Order approved successfully"
    assert completed.json()["order"]["status"] == "Completed"

    cancel = client.put(f"/api/v1/orders/cancel/{order_id}", json={"orderData": {}})
    assert cancel.status_code == 409
    assert gateway.refunds == []


def test_reject_extension_over_http(client, paid_order_json):
    order_id = paid_order_json["orderId"]
    client.put(
        f"/api/v1/orders/extension/{order_id}",
        json=EXTENSION_BODY,
    )

    response = client.put(f"/api/v1/orders/gig/reject/{order_id}", json={})

    assert response.status_code == 200
    assert response.json()["message"] == "Delivery date extension rejected successfully"
    assert response.json()["order"]["requestExtension"]["newDate"] == ""


def test_unknown_extension_decision_is_422(client, paid_order_json):
    response = client.put(f"/api/v1/orders/gig/maybe/{paid_order_json['orderId']}", json={})

    assert response.status_code == 422


def test_cancel_refunds_and_reports(client, paid_order_json, gateway):
    response = client.put(
        f"/api/v1/orders/cancel/{paid_order_json['orderId']}",
        json={"orderData": {"purchasedGigs": "gig-1"}},
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Order cancelled successfully"
    assert response.json()["order"]["status"] == "CANCELLED"
    assert gateway.refunds == [("tx-http-1", 2375.0)]


def test_upload_failure_is_reported_as_400(client, paid_order_json, uploader):
    uploader.error = IntegrationTimeoutError("file_upload")

    response = client.put(
        f"/api/v1/orders/deliver-order/{paid_order_json['orderId']}",
        json={"message": "zip", "file": "data:application/zip;base64,UEsDBA==", "fileType": "zip"},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "File upload failed. Try again"


def test_notifications_are_listed_and_marked_read(client, paid_order_json):
    listed = client.get("/api/v1/orders/notification/Sally")

    assert listed.status_code == 200
    [notification] = listed.json()["notifications"]
    assert notification["message"] == "placed an order for your gig."
    assert notification["isRead"] is False

    marked = client.put(
        "/api/v1/orders/notification/mark-as-read", json={"notificationId": notification["id"]}
    )
    assert marked.status_code == 200
    assert marked.json()["notification"]["isRead"] is True


def test_live_notifications_reach_websocket_subscribers(client):
    hub = app.state.notification_hub

    with client.websocket_connect("/api/v1/orders/ws/notifications?user=Bob") as websocket:
        delivered = hub.emit(
            "order notification", {"orderId": "ORD-1"}, {"userTo": "Bob", "message": "hi"}
        )
        message = websocket.receive_json()

    assert delivered == 1
    assert message == {
        "event": "order notification",
        "order": {"orderId": "ORD-1"},
        "notification": {"userTo": "Bob", "message": "hi"},
    }


def test_request_id_header_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


def test_failed_notification_insert_does_not_fail_verification(
    client, gateway, created_order, publisher
):
    def _fail_insert(mapper, connection, target):
        raise OperationalError("INSERT INTO order_notifications", {}, Exception("disk full"))

    gateway.add("tx-http-2", created_order["txRef"], 2750)
    event.listen(OrderNotification, "before_insert", _fail_insert)
    try:
        response = client.put(f"/api/v1/orders/verify/tx-http-2/{created_order['txRef']}")
    finally:
        event.remove(OrderNotification, "before_insert", _fail_insert)

    assert response.status_code == 200
    assert response.json()["order"]["status"] == "PROCESSING"
    assert len(publisher.payloads("user-seller")) == 1
    assert metrics_store.snapshot().counters["side_effect_failures_total"] >= 1

    fetched = client.get(f"/api/v1/orders/{created_order['order']['orderId']}")
    assert fetched.json()["order"]["status"] == "PROCESSING"


def test_garbled_gateway_response_is_400(client, gateway, created_order):
    gateway.verify_error = IntegrationBadGatewayError("payment_gateway")

    response = client.put(f"/api/v1/orders/verify/tx-http-3/{created_order['txRef']}")

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "PAYMENT_GATEWAY_ERROR"
