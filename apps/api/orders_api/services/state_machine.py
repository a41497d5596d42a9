from orders_api.errors import ConflictError
from orders_api.models.order import OrderStatus

ORDER_STATE_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.AWAITING_PAYMENT: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    # re-delivery appends another artifact
    OrderStatus.DELIVERED: {OrderStatus.DELIVERED, OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATES = frozenset(
    status for status, allowed in ORDER_STATE_TRANSITIONS.items() if not allowed
)


def can_transition(current: OrderStatus, next_status: OrderStatus) -> bool:
    return next_status in ORDER_STATE_TRANSITIONS.get(current, set())


def ensure_valid_transition(current: OrderStatus, next_status: OrderStatus) -> None:
    if not can_transition(current, next_status):
        raise ConflictError(
            f"Invalid state transition: {current.value} -> {next_status.value}",
            code="INVALID_TRANSITION",
        )