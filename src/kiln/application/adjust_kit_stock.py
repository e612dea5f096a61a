"""Application service: Adjust Kit Stock use case.

A positive delta assembles kits out of glazed stock; a negative delta
disassembles them and returns the pieces. Either way the whole
adjustment is one transaction.
"""

from __future__ import annotations

from collections.abc import Callable

from kiln.application.dto import KitAdjustmentDTO
from kiln.application.mappers import adjustment_to_dto
from kiln.application.retry import DEFAULT_ATTEMPTS, retry_on_conflict
from kiln.domain.repository.unit_of_work import UnitOfWork
from kiln.domain.service.kit_reservation_service import KitReservationService
from kiln.domain.service.stage_ledger import StageLedger


def reservation_service(uow: UnitOfWork) -> KitReservationService:
    return KitReservationService(uow.kits, uow.adjustments, StageLedger(uow.balances))


class AdjustKitStockHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._uow_factory = uow_factory
        self._max_attempts = max_attempts

    def handle(
        self,
        kit_id: int,
        delta: int,
        notes: str | None = None,
        actor: str | None = None,
    ) -> KitAdjustmentDTO:
        return retry_on_conflict(
            lambda: self._adjust(kit_id, delta, notes, actor), self._max_attempts
        )

    def _adjust(
        self,
        kit_id: int,
        delta: int,
        notes: str | None,
        actor: str | None,
    ) -> KitAdjustmentDTO:
        with self._uow_factory() as uow:
            adjustment = reservation_service(uow).adjust_stock(
                kit_id, delta, notes=notes, actor=actor
            )
            uow.commit()
        return adjustment_to_dto(adjustment)
