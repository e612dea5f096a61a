"""SQLAlchemy implementation of OrderRepository.

Line items are written once, when the order is created; later saves
only update the status.
"""

from __future__ import annotations

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from kiln.domain.model.order import Order, OrderLineItem, OrderStatus
from kiln.domain.model.value_objects import Money, Quantity
from kiln.domain.repository.order_repository import OrderRepository
from kiln.infrastructure.persistence.orm import KitOrderLineRow, KitOrderRow, as_utc


def order_select(order_id: int, for_update: bool = False) -> Select:
    stmt = select(KitOrderRow).where(KitOrderRow.id == order_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return stmt


class SqlOrderRepository(OrderRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_id(self, order_id: int) -> Order | None:
        row = self._session.get(KitOrderRow, order_id)
        return self._to_domain(row) if row is not None else None

    def get_for_update(self, order_id: int) -> Order | None:
        row = self._session.scalars(order_select(order_id, for_update=True)).first()
        return self._to_domain(row) if row is not None else None

    def save(self, order: Order) -> None:
        row = self._session.get(KitOrderRow, order.id) if order.id is not None else None
        if row is None:
            row = KitOrderRow(
                customer_name=order.customer_name,
                created_at=order.created_at,
                lines=[
                    KitOrderLineRow(
                        kit_id=item.kit_id,
                        kit_name=item.kit_name,
                        quantity=item.quantity.value,
                        unit_price=item.unit_price.amount,
                        currency=item.unit_price.currency,
                    )
                    for item in order.items
                ],
            )
            self._session.add(row)
        row.status = order.status.value
        self._session.flush()
        order.id = row.id

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _to_domain(row: KitOrderRow) -> Order:
        return Order(
            id=row.id,
            customer_name=row.customer_name,
            items=[
                OrderLineItem(
                    kit_id=line.kit_id,
                    kit_name=line.kit_name,
                    quantity=Quantity(line.quantity),
                    unit_price=Money(line.unit_price, line.currency),
                )
                for line in row.lines
            ],
            status=OrderStatus(row.status),
            created_at=as_utc(row.created_at),
        )
