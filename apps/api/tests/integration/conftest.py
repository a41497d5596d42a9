import pytest


@pytest.fixture
def created_order(client, order_payload):
    response = client.post("/api/v1/orders", json=order_payload())
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def paid_order_json(client, gateway, created_order):
    order = created_order["order"]
    gateway.add("tx-http-1", created_order["txRef"], order["price"] + order["serviceFee"])
    response = client.put(f"/api/v1/orders/verify/tx-http-1/{created_order['txRef']}")
    assert response.status_code == 200
    return response.json()["order"]
