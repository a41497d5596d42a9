import asyncio

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from orders_api.dependencies import get_notification_service
from orders_api.observability import log_event
from orders_api.schemas.notification import (
    MarkAsReadRequest,
    NotificationEnvelope,
    NotificationListEnvelope,
    NotificationResponse,
)
from orders_api.services.notification_service import NotificationService

router = APIRouter(prefix="/api/v1/orders", tags=["notifications"])


@router.get(
    "/notification/{user_to}",
    response_model=NotificationListEnvelope,
    summary="Notifications for a user",
)
def list_notifications_endpoint(
    user_to: str,
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListEnvelope:
    notifications = service.list_for_user(user_to)
    return NotificationListEnvelope(
        message="Notifications",
        notifications=[NotificationResponse.model_validate(item) for item in notifications],
    )


@router.put(
    "/notification/mark-as-read",
    response_model=NotificationEnvelope,
    summary="Mark a notification as read",
)
def mark_as_read_endpoint(
    payload: MarkAsReadRequest,
    service: NotificationService = Depends(get_notification_service),
) -> NotificationEnvelope:
    notification = service.mark_as_read(payload.notification_id)
    return NotificationEnvelope(
        message="Notification updated successfully.",
        notification=NotificationResponse.model_validate(notification),
    )


@router.websocket("/ws/notifications")
async def notifications_socket(websocket: WebSocket, user: str | None = None) -> None:
    hub = websocket.app.state.notification_hub
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    # subscribe before accepting so nothing emitted after the handshake is missed
    token = hub.subscribe(
        lambda message: loop.call_soon_threadsafe(queue.put_nowait, message), user=user
    )
    await websocket.accept()
    log_event(f"live subscriber {token} connected for user={user or '*'}")

    async def forward() -> None:
        while True:
            message = await queue.get()
            await websocket.send_json(message)

    sender = asyncio.create_task(forward())
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        log_event(f"live subscriber {token} disconnected")
    finally:
        sender.cancel()
        hub.unsubscribe(token)
