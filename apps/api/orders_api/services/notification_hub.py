import itertools
import logging
from threading import Lock
from typing import Any, Callable, Protocol

from orders_api.observability import log_event

ORDER_NOTIFICATION_EVENT = "order notification"

Deliver = Callable[[dict[str, Any]], None]


class LiveEmitterProtocol(Protocol):
    def emit(self, event: str, order: dict[str, Any], notification: dict[str, Any]) -> int: ...


class NotificationHub:
    """Per-application registry of live notification subscribers.

    ``emit`` may be called from worker threads; each subscriber's ``deliver``
    callable is responsible for handing the message to its own event loop.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._ids = itertools.count(1)
        self._subscribers: dict[int, tuple[Deliver, str | None]] = {}

    def subscribe(self, deliver: Deliver, user: str | None = None) -> int:
        with self._lock:
            token = next(self._ids)
            self._subscribers[token] = (deliver, user)
            return token

    def unsubscribe(self, token: int) -> None:
        with self._lock:
            self._subscribers.pop(token, None)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def emit(self, event: str, order: dict[str, Any], notification: dict[str, Any]) -> int:
        message = {"event": event, "order": order, "notification": notification}
        with self._lock:
            targets = list(self._subscribers.items())

        delivered = 0
        for token, (deliver, user) in targets:
            if user is not None and user != notification.get("userTo"):
                continue
            try:
                deliver(message)
            except RuntimeError:
                # the subscriber's event loop is gone
                log_event(
                    f"dropping live subscriber {token}",
                    order_id=notification.get("orderId"),
                    level=logging.WARNING,
                )
                self.unsubscribe(token)
                continue
            delivered += 1
        return delivered
