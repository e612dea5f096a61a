"""Application service: Audit Ledger use case.

Checks that every maintained balance equals what the transaction log
and the kit adjustment lines imply, and that every kit's stock equals
the sum of its adjustments. Optionally repairs drift.
"""

from __future__ import annotations

from collections.abc import Callable

from kiln.application.dto import AuditResultDTO, BalanceDriftDTO, KitStockDriftDTO
from kiln.application.retry import DEFAULT_ATTEMPTS, retry_on_conflict
from kiln.application.variants import variant_names
from kiln.domain.repository.unit_of_work import UnitOfWork
from kiln.domain.service.ledger_audit import AuditReport, LedgerAuditService


class AuditLedgerHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._uow_factory = uow_factory
        self._max_attempts = max_attempts

    def handle(self, repair: bool = False) -> AuditResultDTO:
        if not repair:
            with self._uow_factory() as uow:
                return self._to_dto(uow, self._service(uow).audit(), repaired=False)
        return retry_on_conflict(self._repair, self._max_attempts)

    def _repair(self) -> AuditResultDTO:
        with self._uow_factory() as uow:
            report = self._service(uow).repair()
            result = self._to_dto(uow, report, repaired=bool(report.drifts or report.kit_drifts))
            uow.commit()
        return result

    @staticmethod
    def _service(uow: UnitOfWork) -> LedgerAuditService:
        return LedgerAuditService(uow.balances, uow.transactions, uow.adjustments, uow.kits)

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _to_dto(uow: UnitOfWork, report: AuditReport, repaired: bool) -> AuditResultDTO:
        drifts = []
        for drift in report.drifts:
            names = variant_names(uow.catalog, drift.variant)
            drifts.append(
                BalanceDriftDTO(
                    product_name=names.product_name,
                    size_name=names.size_name,
                    color_name=names.color_name,
                    stage=drift.stage.value,
                    recorded=drift.recorded,
                    expected=drift.expected,
                )
            )
        return AuditResultDTO(
            clean=report.is_clean,
            repaired=repaired,
            drifts=drifts,
            loss_mismatches=list(report.loss_mismatches),
            transactions_checked=report.transactions_checked,
            adjustments_checked=report.adjustments_checked,
            kit_drifts=[
                KitStockDriftDTO(d.kit_id, d.kit_name, d.recorded, d.expected)
                for d in report.kit_drifts
            ],
        )
