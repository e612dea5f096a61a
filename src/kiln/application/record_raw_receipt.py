"""Application service: Record Raw Receipt use case."""

from __future__ import annotations

from collections.abc import Callable

from kiln.application.dto import TransactionDTO
from kiln.application.mappers import transaction_to_dto
from kiln.application.retry import DEFAULT_ATTEMPTS, retry_on_conflict
from kiln.application.variants import resolve_variant
from kiln.domain.repository.unit_of_work import UnitOfWork
from kiln.domain.service.stage_ledger import StageLedger
from kiln.domain.service.transition_engine import TransitionEngine


class RecordRawReceiptHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._uow_factory = uow_factory
        self._max_attempts = max_attempts

    def handle(
        self,
        product_id: int,
        size_id: int,
        quantity: int,
        notes: str | None = None,
        actor: str | None = None,
    ) -> TransactionDTO:
        """Credit freshly formed greenware to RAW.

        Only active products and sizes can receive new stock.
        """
        return retry_on_conflict(
            lambda: self._record(product_id, size_id, quantity, notes, actor),
            self._max_attempts,
        )

    def _record(
        self,
        product_id: int,
        size_id: int,
        quantity: int,
        notes: str | None,
        actor: str | None,
    ) -> TransactionDTO:
        with self._uow_factory() as uow:
            variant = resolve_variant(uow.catalog, product_id, size_id, require_active=True)
            engine = TransitionEngine(StageLedger(uow.balances), uow.transactions)
            entry = engine.record_raw_receipt(variant, quantity, notes=notes, actor=actor)
            result = transaction_to_dto(uow.catalog, entry)
            uow.commit()
        return result
