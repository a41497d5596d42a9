"""Review consumer: apply buyer/seller reviews published by the reviews service."""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Literal, Protocol

import pydantic

from orders_api.config import settings
from orders_api.errors import ConflictError, NotFoundError, ValidationError
from orders_api.integrations.redis_client import RedisClient, RedisProtocolError, RedisQueue
from orders_api.observability import configure_logging, log_event, metrics_store
from orders_api.schemas.order import ReviewMessage

Outcome = Literal["applied", "dropped", "requeued", "idle"]
ApplyReview = Callable[[ReviewMessage], object]


@dataclass(frozen=True)
class ReviewConsumerSettings:
    redis_url: str
    queue_name: str
    block_s: int
    socket_timeout_s: float
    error_backoff_s: float


@dataclass(frozen=True)
class ConsumeResult:
    outcome: Outcome
    order_id: str | None = None
    error: str | None = None


class ReviewQueue(Protocol):
    def reserve(self, block_s: int = 5) -> str | None: ...

    def ack(self, raw: str) -> None: ...

    def requeue(self, raw: str) -> None: ...

    def recover(self) -> int: ...


def load_settings(env: dict[str, str] | None = None) -> ReviewConsumerSettings:
    source = env if env is not None else os.environ
    redis_url = source.get(
        "ORDERS_REVIEW_CONSUMER_REDIS_URL", settings.redis_url or "redis://localhost:6379/0"
    ).strip()
    queue_name = source.get("ORDERS_REVIEW_CONSUMER_QUEUE", settings.review_queue_name).strip()
    block_s = int(source.get("ORDERS_REVIEW_CONSUMER_BLOCK_S", "5"))
    socket_timeout_s = float(source.get("ORDERS_REVIEW_CONSUMER_SOCKET_TIMEOUT_S", "2"))
    error_backoff_s = float(source.get("ORDERS_REVIEW_CONSUMER_ERROR_BACKOFF_S", "1"))

    if not redis_url:
        raise ValueError("ORDERS_REVIEW_CONSUMER_REDIS_URL must be set")
    if not queue_name:
        raise ValueError("ORDERS_REVIEW_CONSUMER_QUEUE must not be empty")
    if block_s < 1:
        raise ValueError("ORDERS_REVIEW_CONSUMER_BLOCK_S must be >= 1")
    if socket_timeout_s <= 0:
        raise ValueError("ORDERS_REVIEW_CONSUMER_SOCKET_TIMEOUT_S must be > 0")
    if error_backoff_s < 0:
        raise ValueError("ORDERS_REVIEW_CONSUMER_ERROR_BACKOFF_S must be >= 0")

    return ReviewConsumerSettings(
        redis_url=redis_url,
        queue_name=queue_name,
        block_s=block_s,
        socket_timeout_s=socket_timeout_s,
        error_backoff_s=error_backoff_s,
    )


def handle_message(raw: str, apply: ApplyReview) -> ConsumeResult:
    """Decode one queue message and apply it.

    Messages that can never succeed (bad JSON, unknown order, invalid review)
    are dropped; a lost race or an unexpected failure asks for a requeue.
    """
    try:
        message = ReviewMessage.model_validate(json.loads(raw))
    except (json.JSONDecodeError, pydantic.ValidationError) as err:
        metrics_store.increment("review_messages_dropped_total")
        log_event(f"dropping malformed review message: {err}", level=logging.ERROR)
        return ConsumeResult(outcome="dropped", error=type(err).__name__)

    try:
        apply(message)
    except (NotFoundError, ValidationError) as err:
        metrics_store.increment("review_messages_dropped_total")
        log_event(f"dropping review message: {err}", order_id=message.order_id, level=logging.ERROR)
        return ConsumeResult(outcome="dropped", order_id=message.order_id, error=err.code)
    except ConflictError as err:
        order_id = message.order_id
        if not err.retryable:
            metrics_store.increment("review_messages_dropped_total")
            log_event(f"dropping review message: {err}", order_id=order_id, level=logging.ERROR)
            return ConsumeResult(outcome="dropped", order_id=order_id, error=err.code)
        metrics_store.increment("review_messages_requeued_total")
        log_event(f"requeueing review message: {err}", order_id=order_id, level=logging.WARNING)
        return ConsumeResult(outcome="requeued", order_id=order_id, error=err.code)
    except Exception as err:
        metrics_store.increment("review_messages_requeued_total")
        log_event(
            "review message failed unexpectedly, requeueing",
            order_id=message.order_id,
            level=logging.ERROR,
            exc_info=True,
        )
        return ConsumeResult(
            outcome="requeued", order_id=message.order_id, error=type(err).__name__
        )

    metrics_store.increment("review_messages_applied_total")
    return ConsumeResult(outcome="applied", order_id=message.order_id)


def consume_once(queue: ReviewQueue, apply: ApplyReview, block_s: int = 5) -> ConsumeResult:
    raw = queue.reserve(block_s)
    if raw is None:
        return ConsumeResult(outcome="idle")

    result = handle_message(raw, apply)
    if result.outcome == "requeued":
        queue.requeue(raw)
    else:
        queue.ack(raw)
    return result


def apply_review(message: ReviewMessage) -> object:
    from orders_api.db.session import SessionLocal
    from orders_api.dependencies import build_lifecycle_engine

    with SessionLocal() as db:
        return build_lifecycle_engine(db).update_order_review(message)


def run_forever(
    settings: ReviewConsumerSettings,
    queue: ReviewQueue | None = None,
    apply: ApplyReview = apply_review,
    sleep: Callable[[float], None] = time.sleep,
    should_continue: Callable[[], bool] = lambda: True,
) -> None:
    review_queue = queue or RedisQueue(
        RedisClient(settings.redis_url, socket_timeout_s=settings.socket_timeout_s),
        settings.queue_name,
    )
    recovered = review_queue.recover()
    if recovered:
        log_event(f"recovered {recovered} in-flight review messages")

    while should_continue():
        try:
            consume_once(review_queue, apply, block_s=settings.block_s)
        except (OSError, RedisProtocolError) as err:
            log_event(f"review queue unavailable: {err}", level=logging.WARNING)
            sleep(settings.error_backoff_s)


if __name__ == "__main__":
    configure_logging()
    run_forever(load_settings())
