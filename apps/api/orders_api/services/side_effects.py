import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from orders_api.integrations.event_publisher import EventPublisherProtocol
from orders_api.models.order import Order
from orders_api.observability import log_event, metrics_store


class NotifierProtocol(Protocol):
    def persist_and_push(self, order: Order, user_to: str, message: str) -> Any: ...


@dataclass
class SideEffect:
    description: str
    run: Callable[[], Any]


@dataclass
class FanOut:
    """Side effects of one transition, run only after the state write has committed.

    Each effect is best effort: a failure is logged and counted, never retried,
    and never rolls back the transition that scheduled it.
    """

    order_id: str
    effects: list[SideEffect] = field(default_factory=list)
    flushed: bool = False

    def publish(
        self,
        publisher: EventPublisherProtocol,
        exchange: str,
        routing_key: str,
        payload: dict[str, Any],
        description: str,
    ) -> "FanOut":
        self.effects.append(
            SideEffect(
                description,
                lambda: publisher.publish(exchange, routing_key, payload, description),
            )
        )
        return self

    def notify(
        self, notifier: NotifierProtocol, order: Order, user_to: str, message: str
    ) -> "FanOut":
        self.effects.append(
            SideEffect(
                f"notify {user_to}: {message}",
                lambda: notifier.persist_and_push(order, user_to, message),
            )
        )
        return self

    def flush(self) -> int:
        if self.flushed:
            raise RuntimeError("side effects already flushed")
        self.flushed = True

        failures = 0
        for effect in self.effects:
            try:
                effect.run()
            except Exception:
                failures += 1
                metrics_store.increment("side_effect_failures_total")
                log_event(
                    f"side effect failed: {effect.description}",
                    order_id=self.order_id,
                    level=logging.ERROR,
                    exc_info=True,
                )
        return failures
