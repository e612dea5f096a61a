"""Application service: Cancel Order use case.

If the order was CONFIRMED, its kits go back into kit stock before
cancelling. DRAFT orders can be cancelled without stock changes.
"""

from __future__ import annotations

from collections.abc import Callable

from kiln.application.adjust_kit_stock import reservation_service
from kiln.application.dto import OrderDTO
from kiln.application.mappers import order_to_dto
from kiln.application.retry import DEFAULT_ATTEMPTS, retry_on_conflict
from kiln.domain.exceptions import EntityNotFoundError
from kiln.domain.model.kit import AdjustmentReason
from kiln.domain.model.order import OrderStatus
from kiln.domain.repository.unit_of_work import UnitOfWork


class CancelOrderHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._uow_factory = uow_factory
        self._max_attempts = max_attempts

    def handle(self, order_id: int, actor: str | None = None) -> OrderDTO:
        return retry_on_conflict(lambda: self._cancel(order_id, actor), self._max_attempts)

    def _cancel(self, order_id: int, actor: str | None) -> OrderDTO:
        with self._uow_factory() as uow:
            # Order row first, then kit rows, then balances.
            order = uow.orders.get_for_update(order_id)
            if order is None:
                raise EntityNotFoundError(f"Order #{order_id} not found")

            was_confirmed = order.status == OrderStatus.CONFIRMED
            order.cancel()

            if was_confirmed:
                service = reservation_service(uow)
                for item in sorted(order.items, key=lambda i: i.kit_id):
                    service.adjust_stock(
                        item.kit_id,
                        item.quantity.value,
                        notes=f"Order #{order_id} cancelled",
                        actor=actor,
                        reason=AdjustmentReason.ORDER_CANCELLED,
                    )

            uow.orders.save(order)
            result = order_to_dto(order)
            uow.commit()
        return result
