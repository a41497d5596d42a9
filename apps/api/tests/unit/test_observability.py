import json
import logging

from orders_api.observability import (
    JsonFormatter,
    MetricsStore,
    metrics_store,
    observe_timing,
    set_request_id,
)


def test_metrics_store_snapshot_and_reset():
    store = MetricsStore()
    store.increment("refunds_requested_total")
    store.increment("refunds_requested_total", 2)
    store.observe("payment_verification_seconds", 0.2)
    store.observe("payment_verification_seconds", 0.4)

    snapshot = store.snapshot()

    assert snapshot.counters == {"refunds_requested_total": 3}
    timing = snapshot.timings["payment_verification_seconds"]
    assert timing["count"] == 2
    assert round(timing["avg_s"], 6) == 0.3
    assert timing["max_s"] == 0.4

    store.reset()
    assert store.snapshot().counters == {}


def test_observe_timing_records_duration():
    with observe_timing("order_delivery_seconds"):
        pass

    assert metrics_store.snapshot().timings["order_delivery_seconds"]["count"] == 1


def test_json_formatter_includes_order_context():
    set_request_id("req-1")
    record = logging.LogRecord(
        "marketplace.orders", logging.INFO, __file__, 1, "verified", None, None
    )
    record.order_id = "ORD-1"
    record.tx_ref = "ORD-1-1-ABCDEF"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "verified"
    assert payload["order_id"] == "ORD-1"
    assert payload["tx_ref"] == "ORD-1-1-ABCDEF"
    assert payload["request_id"] == "req-1"
    assert payload["level"] == "INFO"


def test_metrics_endpoint(client):
    metrics_store.increment("payment_verification_ok_total")

    response = client.get("/metrics")

    assert response.status_code == 200
    body = response.json()
    assert body["counters"]["payment_verification_ok_total"] == 1
    assert "timings" in body
