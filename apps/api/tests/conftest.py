import os
import threading

os.environ.setdefault("ORDERS_DATABASE_URL", "sqlite+pysqlite:///./test-orders.db")
os.environ.setdefault("ORDERS_TESTING", "true")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

import orders_api.models  # noqa: F401,E402
from orders_api.config import settings  # noqa: E402
from orders_api.db.base import Base  # noqa: E402
from orders_api.db.session import engine as app_engine  # noqa: E402
from orders_api.db.session import get_db  # noqa: E402
from orders_api.integrations.errors import IntegrationError  # noqa: E402
from orders_api.integrations.event_publisher import get_event_publisher  # noqa: E402
from orders_api.integrations.file_upload import UploadResult, get_file_uploader  # noqa: E402
from orders_api.integrations.payment_gateway import (  # noqa: E402
    GatewayTransaction,
    get_payment_gateway,
)
from orders_api.main import app  # noqa: E402
from orders_api.observability import metrics_store  # noqa: E402
from orders_api.schemas.order import OrderCreate  # noqa: E402
from orders_api.services.lifecycle_engine import OrderLifecycleEngine  # noqa: E402
from orders_api.services.notification_service import NotificationService  # noqa: E402
from orders_api.services.order_store import SqlOrderStore  # noqa: E402


class RecordingPublisher:
    def __init__(self) -> None:
        self.published: list[dict] = []
        self.fail_routing_keys: set[str] = set()

    def publish(self, exchange, routing_key, payload, description) -> None:
        if routing_key in self.fail_routing_keys:
            raise IntegrationError("events", "UNAVAILABLE", "broker down", retryable=True)
        self.published.append(
            {
                "exchange": exchange,
                "routing_key": routing_key,
                "payload": payload,
                "description": description,
            }
        )

    def payloads(self, routing_key: str) -> list[dict]:
        return [item["payload"] for item in self.published if item["routing_key"] == routing_key]


class FakeGateway:
    def __init__(self) -> None:
        self.transactions: dict[str, GatewayTransaction] = {}
        self.verify_calls: list[str] = []
        self.refunds: list[tuple[str, float]] = []
        self.verify_error: Exception | None = None
        self.refund_error: Exception | None = None
        self.on_verify = None

    def add(self, transaction_id: str, tx_ref: str, amount: float, status: str = "successful"):
        self.transactions[transaction_id] = GatewayTransaction(
            id=transaction_id,
            tx_ref=tx_ref,
            status=status,
            amount=amount,
            payment_type="card",
            app_fee=1.4,
            currency="USD",
        )

    def verify_transaction(self, transaction_id: str) -> GatewayTransaction:
        self.verify_calls.append(transaction_id)
        if self.on_verify is not None:
            self.on_verify(transaction_id)
        if self.verify_error is not None:
            raise self.verify_error
        return self.transactions[transaction_id]

    def refund(self, transaction_id: str, amount: float) -> None:
        if self.refund_error is not None:
            raise self.refund_error
        self.refunds.append((transaction_id, amount))


class FakeUploader:
    def __init__(self) -> None:
        self.uploads: list[tuple[str, str | None]] = []
        self.error: Exception | None = None

    def upload(self, file_data: str, public_id: str | None = None) -> UploadResult:
        if self.error is not None:
            raise self.error
        self.uploads.append((file_data, public_id))
        return UploadResult(
            public_id=public_id or "delivery-1",
            secure_url=f"https://files.example.test/{public_id or 'delivery-1'}",
        )


class RecordingEmitter:
    def __init__(self) -> None:
        self.emitted: list[dict] = []

    def emit(self, event, order, notification) -> int:
        self.emitted.append({"event": event, "order": order, "notification": notification})
        return 1


@pytest.fixture(scope="session", autouse=True)
def setup_test_schema():
    Base.metadata.drop_all(bind=app_engine)
    Base.metadata.create_all(bind=app_engine)
    yield
    Base.metadata.drop_all(bind=app_engine)


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=app_engine)
    Base.metadata.create_all(bind=app_engine)
    yield


@pytest.fixture(autouse=True)
def reset_metrics_store():
    metrics_store.reset()
    yield


@pytest.fixture(scope="session", autouse=True)
def enable_testing_mode():
    original = settings.testing
    settings.testing = True
    yield
    settings.testing = original


@pytest.fixture
def db_session():
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=app_engine)
    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def lifecycle(db_session, publisher, gateway, uploader, emitter):
    return OrderLifecycleEngine(
        store=SqlOrderStore(db_session),
        publisher=publisher,
        notifier=NotificationService(db_session, emitter),
        gateway=gateway,
        uploader=uploader,
    )


@pytest.fixture
def order_payload():
    def _payload(price: float = 2500, **overrides) -> dict:
        payload = {
            "offer": {
                "gigTitle": "I will design your logo",
                "price": price,
                "description": "Three concepts, two revisions",
                "deliveryInDays": 3,
                "oldDeliveryDate": "2026-10-20",
                "newDeliveryDate": "2026-10-22",
            },
            "gigId": "gig-1",
            "gigMainTitle": "Logo design",
            "gigBasicTitle": "Basic logo",
            "gigBasicDescription": "One logo",
            "sellerId": "seller-1",
            "sellerUsername": "Sally",
            "sellerImage": "https://img.example.test/sally.png",
            "sellerEmail": "sally@example.test",
            "buyerId": "buyer-1",
            "buyerUsername": "Bob",
            "buyerImage": "https://img.example.test/bob.png",
            "buyerEmail": "bob@example.test",
            "quantity": 1,
            "price": price,
            "requirements": "Blue and white palette",
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture
def paid_order(lifecycle, gateway, order_payload):
    """An order that has been created and verified, now PROCESSING."""
    order, tx_ref = lifecycle.create_order(OrderCreate.model_validate(order_payload()))
    gateway.add("tx-1", tx_ref, order.total_amount)
    return lifecycle.verify_payment("tx-1", tx_ref)


@pytest.fixture
def client(db_session, publisher, gateway, uploader):
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=app_engine)
    db_session_lock = threading.Lock()

    def override_get_db():
        if db_session_lock.acquire(blocking=False):
            try:
                yield db_session
            finally:
                db_session_lock.release()
            return

        db = testing_session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_event_publisher] = lambda: publisher
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_file_uploader] = lambda: uploader
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
