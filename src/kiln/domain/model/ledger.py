"""Stage ledger aggregates: running balances and the transaction log.

A piece of stock moves through three firing stages: RAW (greenware),
BISQUE (first, low-heat firing) and GLAZE (enamel, high-heat firing).
``StageBalance`` holds the running quantity per (variant, stage);
``StageTransaction`` is the immutable audit record of every movement
between stages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from kiln.domain.exceptions import InsufficientStockError, MissingColorError, ValidationError
from kiln.domain.model.value_objects import VariantKey

# Transitions losing more than this share of the input are flagged.
LOSS_WARNING_THRESHOLD = Decimal("15")

_PERCENT_PLACES = Decimal("0.01")


class Stage(Enum):
    RAW = "RAW"
    BISQUE = "BISQUE"
    GLAZE = "GLAZE"

    @property
    def order(self) -> int:
        return _STAGE_ORDER.index(self)

    @property
    def successor(self) -> Stage | None:
        idx = self.order + 1
        return _STAGE_ORDER[idx] if idx < len(_STAGE_ORDER) else None

    @property
    def requires_color(self) -> bool:
        return self is Stage.GLAZE


_STAGE_ORDER = [Stage.RAW, Stage.BISQUE, Stage.GLAZE]


def check_variant_for_stage(variant: VariantKey, stage: Stage) -> None:
    """Glaze stock is always colored; earlier stages never are."""
    if stage.requires_color and not variant.has_color:
        raise MissingColorError(f"An enamel color is required for {stage.value} stock")
    if not stage.requires_color and variant.has_color:
        raise ValidationError(
            f"Enamel color is only allowed for {Stage.GLAZE.value} stock, "
            f"not {stage.value}"
        )


def compute_loss_percentage(quantity_deducted: int, quantity_produced: int) -> Decimal:
    """Loss as a percentage of the deducted input, two decimal places."""
    if quantity_deducted == 0:
        return Decimal("0.00")
    loss = quantity_deducted - quantity_produced
    return (Decimal(loss) * 100 / Decimal(quantity_deducted)).quantize(
        _PERCENT_PLACES, rounding=ROUND_HALF_UP
    )


@dataclass
class StageBalance:
    """Aggregate root for the quantity of one variant at one stage.

    Invariants:
    - ``quantity`` is never negative
    - glaze balances are colored, raw and bisque balances are not
    """

    variant: VariantKey
    stage: Stage
    quantity: int = 0

    def __post_init__(self) -> None:
        check_variant_for_stage(self.variant, self.stage)
        if self.quantity < 0:
            raise ValidationError("Balance quantity cannot be negative")

    @property
    def key(self) -> tuple[VariantKey, Stage]:
        return (self.variant, self.stage)

    def credit(self, amount: int) -> None:
        if amount <= 0:
            raise ValidationError("Credit amount must be positive")
        self.quantity += amount

    def debit(self, amount: int) -> None:
        """Remove stock from the balance.

        Raises InsufficientStockError naming the available amount.
        """
        if amount <= 0:
            raise ValidationError("Debit amount must be positive")
        if amount > self.quantity:
            raise InsufficientStockError(
                f"Insufficient {self.stage.value} stock for {self.variant} "
                f"(need {amount}, have {self.quantity} available)",
                available=self.quantity,
                requested=amount,
            )
        self.quantity -= amount


@dataclass(frozen=True)
class StageTransaction:
    """Append-only record of a receipt or a stage-to-stage transfer.

    ``variant`` is the source (colorless) key; ``color_id`` is the enamel
    color assigned on entry to GLAZE. Receipts have ``from_stage`` None
    and deduct nothing.
    """

    id: int | None
    from_stage: Stage | None
    to_stage: Stage
    variant: VariantKey
    quantity_deducted: int
    quantity_produced: int
    loss_percentage: Decimal
    color_id: int | None = None
    notes: str | None = None
    actor: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def loss(self) -> int:
        return self.quantity_deducted - self.quantity_produced

    @property
    def is_receipt(self) -> bool:
        return self.from_stage is None

    @property
    def is_high_loss(self) -> bool:
        return self.loss_percentage > LOSS_WARNING_THRESHOLD

    @property
    def destination(self) -> VariantKey:
        if self.color_id is not None:
            return self.variant.with_color(self.color_id)
        return self.variant

    # --- Factories (used for NEW entries only) --------------------------------

    @staticmethod
    def receipt(
        variant: VariantKey,
        quantity: int,
        notes: str | None = None,
        actor: str | None = None,
    ) -> StageTransaction:
        return StageTransaction(
            id=None,
            from_stage=None,
            to_stage=Stage.RAW,
            variant=variant,
            quantity_deducted=0,
            quantity_produced=quantity,
            loss_percentage=Decimal("0.00"),
            notes=notes,
            actor=actor,
        )

    @staticmethod
    def transfer(
        variant: VariantKey,
        from_stage: Stage,
        to_stage: Stage,
        quantity_deducted: int,
        quantity_produced: int,
        color_id: int | None = None,
        notes: str | None = None,
        actor: str | None = None,
    ) -> StageTransaction:
        return StageTransaction(
            id=None,
            from_stage=from_stage,
            to_stage=to_stage,
            variant=variant,
            quantity_deducted=quantity_deducted,
            quantity_produced=quantity_produced,
            loss_percentage=compute_loss_percentage(quantity_deducted, quantity_produced),
            color_id=color_id,
            notes=notes,
            actor=actor,
        )
