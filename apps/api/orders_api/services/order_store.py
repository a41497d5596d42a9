from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from orders_api.models.order import Order, OrderStatus, now_utc


class OrderStoreError(RuntimeError):
    pass


@dataclass(frozen=True)
class OrderFilter:
    """Match criteria for an update; ``order_id`` or ``tx_ref`` is the natural key."""

    order_id: str | None = None
    tx_ref: str | None = None
    status: OrderStatus | None = None
    version: int | None = None


class OrderStoreProtocol(Protocol):
    def find_by_order_id(self, order_id: str) -> Order | None: ...

    def find_by_tx_ref(self, tx_ref: str) -> Order | None: ...

    def find_by_seller_id(self, seller_id: str) -> list[Order]: ...

    def find_by_buyer_id(self, buyer_id: str) -> list[Order]: ...

    def insert(self, order: Order) -> Order: ...

    def conditional_update(self, criteria: OrderFilter, patch: dict[str, Any]) -> Order | None: ...

    def unconditional_update(
        self, criteria: OrderFilter, patch: dict[str, Any]
    ) -> Order | None: ...


class SqlOrderStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_order_id(self, order_id: str) -> Order | None:
        return self.db.scalar(select(Order).where(Order.order_id == order_id))

    def find_by_tx_ref(self, tx_ref: str) -> Order | None:
        return self.db.scalar(select(Order).where(Order.tx_ref == tx_ref))

    def find_by_seller_id(self, seller_id: str) -> list[Order]:
        return list(
            self.db.scalars(
                select(Order).where(Order.seller_id == seller_id).order_by(Order.created_at.desc())
            )
        )

    def find_by_buyer_id(self, buyer_id: str) -> list[Order]:
        return list(
            self.db.scalars(
                select(Order).where(Order.buyer_id == buyer_id).order_by(Order.created_at.desc())
            )
        )

    def insert(self, order: Order) -> Order:
        self.db.add(order)
        try:
            self.db.commit()
        except SQLAlchemyError as err:
            self.db.rollback()
            raise OrderStoreError(f"Failed to insert order {order.order_id}") from err
        self.db.refresh(order)
        return order

    def conditional_update(self, criteria: OrderFilter, patch: dict[str, Any]) -> Order | None:
        """Compare-and-swap on the natural key plus the expected prior status.

        Returns ``None`` when no row matched, i.e. another writer got there first.
        """
        if criteria.status is None:
            raise ValueError("conditional_update requires an expected status")
        return self._update(criteria, patch)

    def unconditional_update(self, criteria: OrderFilter, patch: dict[str, Any]) -> Order | None:
        return self._update(OrderFilter(order_id=criteria.order_id, tx_ref=criteria.tx_ref), patch)

    def _update(self, criteria: OrderFilter, patch: dict[str, Any]) -> Order | None:
        clauses = []
        if criteria.order_id is not None:
            clauses.append(Order.order_id == criteria.order_id)
        if criteria.tx_ref is not None:
            clauses.append(Order.tx_ref == criteria.tx_ref)
        if not clauses:
            raise ValueError("order_id or tx_ref is required to update an order")
        if criteria.status is not None:
            clauses.append(Order.status == criteria.status)
        if criteria.version is not None:
            clauses.append(Order.version == criteria.version)

        statement = (
            update(Order)
            .where(*clauses)
            .values(**patch, version=Order.version + 1, updated_at=now_utc())
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(statement)
            if result.rowcount != 1:
                self.db.rollback()
                return None
            self.db.commit()
        except SQLAlchemyError as err:
            self.db.rollback()
            raise OrderStoreError("Failed to update order") from err

        if criteria.order_id is not None:
            return self.find_by_order_id(criteria.order_id)
        return self.find_by_tx_ref(criteria.tx_ref)
