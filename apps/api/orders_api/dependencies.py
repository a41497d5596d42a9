from fastapi import Depends, Request
from sqlalchemy.orm import Session

from orders_api.db.session import get_db
from orders_api.integrations.event_publisher import EventPublisherProtocol, get_event_publisher
from orders_api.integrations.file_upload import FileUploadProtocol, get_file_uploader
from orders_api.integrations.payment_gateway import PaymentGatewayProtocol, get_payment_gateway
from orders_api.services.lifecycle_engine import OrderLifecycleEngine
from orders_api.services.notification_hub import LiveEmitterProtocol, NotificationHub
from orders_api.services.notification_service import NotificationService
from orders_api.services.order_store import SqlOrderStore


def get_live_hub(request: Request) -> LiveEmitterProtocol:
    return request.app.state.notification_hub


def get_notification_service(
    db: Session = Depends(get_db),
    hub: LiveEmitterProtocol = Depends(get_live_hub),
) -> NotificationService:
    return NotificationService(db, hub)


def get_lifecycle_engine(
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
    publisher: EventPublisherProtocol = Depends(get_event_publisher),
    gateway: PaymentGatewayProtocol = Depends(get_payment_gateway),
    uploader: FileUploadProtocol = Depends(get_file_uploader),
) -> OrderLifecycleEngine:
    return OrderLifecycleEngine(
        store=SqlOrderStore(db),
        publisher=publisher,
        notifier=notifier,
        gateway=gateway,
        uploader=uploader,
    )


def build_lifecycle_engine(
    db: Session, hub: LiveEmitterProtocol | None = None
) -> OrderLifecycleEngine:
    """Wire an engine outside a request, e.g. for the review consumer."""
    return OrderLifecycleEngine(
        store=SqlOrderStore(db),
        publisher=get_event_publisher(),
        notifier=NotificationService(db, hub or NotificationHub()),
        gateway=get_payment_gateway(),
        uploader=get_file_uploader(),
    )
