"""Application service: Record Transition use case.

Moves pieces one firing stage forward. The debit, the credit and the
log entry commit together or not at all; a concurrent writer on the
same balance rows causes a transparent retry from a fresh read.
"""

from __future__ import annotations

from collections.abc import Callable

from kiln.application.dto import TransitionResultDTO
from kiln.application.mappers import transaction_to_dto
from kiln.application.retry import DEFAULT_ATTEMPTS, retry_on_conflict
from kiln.application.variants import resolve_variant
from kiln.domain.exceptions import EntityNotFoundError, ValidationError
from kiln.domain.model.ledger import Stage
from kiln.domain.repository.unit_of_work import UnitOfWork
from kiln.domain.service.stage_ledger import StageLedger
from kiln.domain.service.transition_engine import TransitionEngine


def parse_stage(value: str | Stage) -> Stage:
    if isinstance(value, Stage):
        return value
    try:
        return Stage(value.strip().upper())
    except ValueError as exc:
        allowed = ", ".join(s.value for s in Stage)
        raise ValidationError(f"Unknown stage '{value}' (expected one of: {allowed})") from exc


class RecordTransitionHandler:

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
        from_stage: str | Stage,
        to_stage: str | Stage,
        quantity_deducted: int,
        quantity_produced: int,
        color_id: int | None = None,
        notes: str | None = None,
        actor: str | None = None,
    ) -> TransitionResultDTO:
        source = parse_stage(from_stage)
        target = parse_stage(to_stage)
        return retry_on_conflict(
            lambda: self._transition(
                product_id,
                size_id,
                source,
                target,
                quantity_deducted,
                quantity_produced,
                color_id,
                notes,
                actor,
            ),
            self._max_attempts,
        )

    def _transition(
        self,
        product_id: int,
        size_id: int,
        from_stage: Stage,
        to_stage: Stage,
        quantity_deducted: int,
        quantity_produced: int,
        color_id: int | None,
        notes: str | None,
        actor: str | None,
    ) -> TransitionResultDTO:
        with self._uow_factory() as uow:
            # Discontinued products may still move through the pipeline.
            variant = resolve_variant(uow.catalog, product_id, size_id)
            if color_id is not None and uow.catalog.get_color(color_id) is None:
                raise EntityNotFoundError(f"Enamel color #{color_id} not found")

            ledger = StageLedger(uow.balances)
            engine = TransitionEngine(ledger, uow.transactions)
            entry = engine.transition(
                variant,
                from_stage,
                to_stage,
                quantity_deducted,
                quantity_produced,
                color_id=color_id,
                notes=notes,
                actor=actor,
            )
            result = TransitionResultDTO(
                transaction=transaction_to_dto(uow.catalog, entry),
                high_loss=entry.is_high_loss,
                source_balance=ledger.get_balance(variant, from_stage),
                destination_balance=ledger.get_balance(entry.destination, to_stage),
            )
            uow.commit()
        return result
