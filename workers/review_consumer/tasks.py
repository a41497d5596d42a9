"""Review consumer tasks."""

from __future__ import annotations

from orders_api.integrations.redis_client import RedisClient, RedisQueue
from workers.review_consumer.worker import (
    ApplyReview,
    ConsumeResult,
    ReviewConsumerSettings,
    apply_review,
    consume_once,
    load_settings,
)


def drain_reviews(
    settings: ReviewConsumerSettings | None = None,
    apply: ApplyReview = apply_review,
    limit: int = 100,
) -> list[ConsumeResult]:
    """Apply queued reviews until the queue is idle or ``limit`` is reached.

    Useful for cron-style scheduling instead of a long-running consumer.
    """
    resolved = settings or load_settings()
    queue = RedisQueue(
        RedisClient(resolved.redis_url, socket_timeout_s=resolved.socket_timeout_s),
        resolved.queue_name,
    )
    queue.recover()

    results: list[ConsumeResult] = []
    for _ in range(limit):
        result = consume_once(queue, apply, block_s=1)
        if result.outcome == "idle":
            break
        results.append(result)
    return results
