"""Application service: Confirm Order use case.

Confirming takes the ordered kits out of kit stock. The glazed pieces
inside them were reserved when the kits were assembled, so the stage
ledger is not touched. Every line is consumed in one transaction; if
any kit is short, nothing changes.
"""

from __future__ import annotations

from collections.abc import Callable

from kiln.application.adjust_kit_stock import reservation_service
from kiln.application.dto import OrderDTO
from kiln.application.mappers import order_to_dto
from kiln.application.retry import DEFAULT_ATTEMPTS, retry_on_conflict
from kiln.domain.exceptions import EntityNotFoundError, ValidationError
from kiln.domain.model.kit import AdjustmentReason
from kiln.domain.repository.unit_of_work import UnitOfWork


class ConfirmOrderHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._uow_factory = uow_factory
        self._max_attempts = max_attempts

    def handle(self, order_id: int, actor: str | None = None) -> OrderDTO:
        return retry_on_conflict(lambda: self._confirm(order_id, actor), self._max_attempts)

    def _confirm(self, order_id: int, actor: str | None) -> OrderDTO:
        with self._uow_factory() as uow:
            # Order row first, then kit rows, then balances.
            order = uow.orders.get_for_update(order_id)
            if order is None:
                raise EntityNotFoundError(f"Order #{order_id} not found")

            # State check first, so a repeated confirm never touches stock.
            order.confirm()

            service = reservation_service(uow)
            # Kit rows are locked in ID order.
            for item in sorted(order.items, key=lambda i: i.kit_id):
                kit = uow.kits.get_by_id(item.kit_id)
                if kit is None:
                    raise EntityNotFoundError(f"Kit #{item.kit_id} not found")
                if not kit.is_active:
                    raise ValidationError(f"Kit '{kit.name}' is not active")
                service.adjust_stock(
                    item.kit_id,
                    -item.quantity.value,
                    notes=f"Order #{order_id}",
                    actor=actor,
                    reason=AdjustmentReason.ORDER,
                )

            uow.orders.save(order)
            result = order_to_dto(order)
            uow.commit()
        return result
