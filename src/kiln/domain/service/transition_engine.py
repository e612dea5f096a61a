"""Domain service: Transition Engine.

Moves stock forward through the firing stages. A transition deducts
``quantity_deducted`` pieces from one stage, produces
``quantity_produced`` pieces in the next and logs the difference as
loss. Raw receipts are the entry point into the first stage.

The debit, the credit and the log entry are written through the same
unit of work, so they commit or roll back together.
"""

from __future__ import annotations

import logging

from kiln.domain.exceptions import InsufficientStockError, MissingColorError, ValidationError
from kiln.domain.model.ledger import Stage, StageTransaction
from kiln.domain.model.value_objects import VariantKey
from kiln.domain.repository.ledger_repository import StageTransactionRepository
from kiln.domain.service.stage_ledger import StageLedger

logger = logging.getLogger(__name__)


def _require_int(value, name: str) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{name} must be a whole number, got {value!r}")


class TransitionEngine:

    def __init__(self, ledger: StageLedger, transactions: StageTransactionRepository) -> None:
        self._ledger = ledger
        self._transactions = transactions

    def record_raw_receipt(
        self,
        variant: VariantKey,
        quantity: int,
        notes: str | None = None,
        actor: str | None = None,
    ) -> StageTransaction:
        """Credit freshly formed pieces to RAW. Not a transition."""
        _require_int(quantity, "quantity")
        if quantity <= 0:
            raise ValidationError("Receipt quantity must be positive")
        if variant.has_color:
            raise ValidationError("Raw pieces cannot carry an enamel color")

        self._ledger.credit(variant, Stage.RAW, quantity)
        entry = self._transactions.add(
            StageTransaction.receipt(variant, quantity, notes=notes, actor=actor)
        )
        logger.info("Received %d RAW pieces of %s (tx #%s)", quantity, variant, entry.id)
        return entry

    def transition(
        self,
        variant: VariantKey,
        from_stage: Stage,
        to_stage: Stage,
        quantity_deducted: int,
        quantity_produced: int,
        color_id: int | None = None,
        notes: str | None = None,
        actor: str | None = None,
    ) -> StageTransaction:
        """Move pieces from ``from_stage`` to its immediate successor.

        Checks, in order:
          1. ``to_stage`` directly follows ``from_stage``
          2. quantities are sane and output never exceeds input
          3. the source balance covers ``quantity_deducted``
          4. a color is given exactly when entering GLAZE
        """
        if from_stage.successor is not to_stage:
            raise ValidationError(
                f"Cannot move stock from {from_stage.value} to {to_stage.value}; "
                f"stages advance one at a time"
            )

        _require_int(quantity_deducted, "quantity_deducted")
        _require_int(quantity_produced, "quantity_produced")
        if quantity_deducted <= 0:
            raise ValidationError("Deducted quantity must be positive")
        if quantity_produced < 0:
            raise ValidationError("Produced quantity cannot be negative")
        if quantity_produced > quantity_deducted:
            raise ValidationError(
                f"Produced quantity ({quantity_produced}) cannot exceed "
                f"deducted quantity ({quantity_deducted})"
            )
        if variant.has_color:
            raise ValidationError(
                f"{from_stage.value} stock is tracked without color; "
                f"pass the enamel color separately"
            )

        # Source always sorts before destination, so this keeps lock order.
        self._ledger.lock([(variant, from_stage)])
        available = self._ledger.get_balance(variant, from_stage)
        if quantity_deducted > available:
            raise InsufficientStockError(
                f"Insufficient {from_stage.value} stock for {variant} "
                f"(need {quantity_deducted}, have {available} available)",
                available=available,
                requested=quantity_deducted,
            )

        if to_stage.requires_color:
            if color_id is None:
                raise MissingColorError(
                    f"An enamel color is required to move stock into {to_stage.value}"
                )
            destination = variant.with_color(color_id)
        else:
            if color_id is not None:
                raise ValidationError(
                    f"Enamel color is only assigned when entering {Stage.GLAZE.value}"
                )
            destination = variant

        self._ledger.debit(variant, from_stage, quantity_deducted)
        if quantity_produced > 0:
            self._ledger.credit(destination, to_stage, quantity_produced)

        entry = self._transactions.add(
            StageTransaction.transfer(
                variant,
                from_stage,
                to_stage,
                quantity_deducted,
                quantity_produced,
                color_id=color_id,
                notes=notes,
                actor=actor,
            )
        )

        logger.info(
            "Moved %s %s -> %s: deducted %d, produced %d, loss %d (%s%%) (tx #%s)",
            variant,
            from_stage.value,
            to_stage.value,
            quantity_deducted,
            quantity_produced,
            entry.loss,
            entry.loss_percentage,
            entry.id,
        )
        if entry.is_high_loss:
            logger.warning(
                "High loss on %s %s -> %s: %s%%",
                variant,
                from_stage.value,
                to_stage.value,
                entry.loss_percentage,
            )
        return entry
