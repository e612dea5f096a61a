"""Application service: Show History use case (query)."""

from __future__ import annotations

from collections.abc import Callable

from kiln.application.dto import HistoryPageDTO
from kiln.application.mappers import transaction_to_dto
from kiln.application.record_transition import parse_stage
from kiln.domain.exceptions import ValidationError
from kiln.domain.model.ledger import Stage
from kiln.domain.repository.ledger_repository import TransactionQuery
from kiln.domain.repository.unit_of_work import UnitOfWork

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500


class ShowHistoryHandler:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def handle(
        self,
        product_id: int | None = None,
        size_id: int | None = None,
        from_stage: str | Stage | None = None,
        to_stage: str | Stage | None = None,
        receipts_only: bool = False,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> HistoryPageDTO:
        """Page through the transaction log, newest first."""
        if limit <= 0 or limit > MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            raise ValidationError("offset cannot be negative")

        query = TransactionQuery(
            product_id=product_id,
            size_id=size_id,
            from_stage=parse_stage(from_stage) if from_stage is not None else None,
            to_stage=parse_stage(to_stage) if to_stage is not None else None,
            receipts_only=receipts_only,
        )
        with self._uow_factory() as uow:
            entries = uow.transactions.find(query, limit=limit, offset=offset)
            total = uow.transactions.count(query)
            transactions = [transaction_to_dto(uow.catalog, tx) for tx in entries]
        return HistoryPageDTO(transactions=transactions, limit=limit, offset=offset, total=total)
