"""Application service: Show Available Inventory use case (query).

Glazed stock that is not held by any assembled kit. Since assembling a
kit debits its pieces from GLAZE, this is simply every positive GLAZE
balance.
"""

from __future__ import annotations

from collections.abc import Callable

from kiln.application.adjust_kit_stock import reservation_service
from kiln.application.dto import BalanceListDTO
from kiln.application.mappers import balance_to_dto
from kiln.domain.model.ledger import Stage
from kiln.domain.repository.unit_of_work import UnitOfWork


class ShowAvailableInventoryHandler:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def handle(self) -> BalanceListDTO:
        with self._uow_factory() as uow:
            items = [
                balance_to_dto(uow.catalog, b)
                for b in reservation_service(uow).available_inventory()
            ]
        return BalanceListDTO(
            stage=Stage.GLAZE.value,
            items=items,
            total_items=len(items),
            total_quantity=sum(item.quantity for item in items),
        )
