import json
import logging
from typing import Any, Protocol

from orders_api.config import settings
from orders_api.integrations.redis_client import RedisClient, RedisQueue
from orders_api.observability import log_event


class EventPublisherProtocol(Protocol):
    def publish(
        self, exchange: str, routing_key: str, payload: dict[str, Any], description: str
    ) -> None: ...


def channel_name(exchange: str, routing_key: str) -> str:
    return f"{exchange}.{routing_key}"


class RedisEventPublisher:
    """Publish JSON payloads onto the Redis list named ``<exchange>.<routing_key>``."""

    def __init__(self, client: RedisClient) -> None:
        self._client = client

    def publish(
        self, exchange: str, routing_key: str, payload: dict[str, Any], description: str
    ) -> None:
        queue = RedisQueue(self._client, channel_name(exchange, routing_key))
        queue.push(json.dumps(payload, default=str))
        log_event(f"published {channel_name(exchange, routing_key)}: {description}")


class NoopEventPublisher:
    def publish(
        self, exchange: str, routing_key: str, payload: dict[str, Any], description: str
    ) -> None:
        log_event(
            f"event publisher not configured, dropped {channel_name(exchange, routing_key)}: "
            f"{description}",
            order_id=payload.get("orderId"),
            level=logging.WARNING,
        )


def get_event_publisher() -> EventPublisherProtocol:
    if not settings.redis_url.strip():
        return NoopEventPublisher()
    return RedisEventPublisher(
        RedisClient(settings.redis_url, socket_timeout_s=settings.redis_socket_timeout_s)
    )
