"""Domain service: Kit Reservation.

Assembling kits takes glazed pieces out of the GLAZE balances;
disassembling them puts the pieces back. The service coordinates the
Kit aggregate, the Stage Ledger and the adjustment log in one unit of
work.

The two-phase approach (validate-then-mutate) ensures we never leave
the ledger in a partially-reserved state if one component is short.
Both phases run under row locks: the kit row first, then every
component balance in ledger lock order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from kiln.domain.exceptions import (
    EntityNotFoundError,
    InsufficientComponentStockError,
    ValidationError,
)
from kiln.domain.model.kit import AdjustmentLine, AdjustmentReason, Kit, KitStockAdjustment
from kiln.domain.model.ledger import Stage, StageBalance
from kiln.domain.model.value_objects import VariantKey
from kiln.domain.repository.kit_repository import KitRepository, KitStockAdjustmentRepository
from kiln.domain.service.stage_ledger import StageLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComponentAvailability:
    variant: VariantKey
    per_kit: int
    available: int
    held_by_stock: int

    @property
    def buildable_units(self) -> int:
        return self.available // self.per_kit


@dataclass(frozen=True)
class KitAvailability:
    kit_id: int
    current_stock: int
    max_stock: int
    components: tuple[ComponentAvailability, ...]

    @property
    def max_additional_units(self) -> int:
        """How many more kits can be assembled right now."""
        headroom = max(self.max_stock - self.current_stock, 0)
        if not self.components:
            return 0
        return min(headroom, min(c.buildable_units for c in self.components))


class KitReservationService:

    def __init__(
        self,
        kits: KitRepository,
        adjustments: KitStockAdjustmentRepository,
        ledger: StageLedger,
    ) -> None:
        self._kits = kits
        self._adjustments = adjustments
        self._ledger = ledger

    def adjust_stock(
        self,
        kit_id: int,
        delta: int,
        notes: str | None = None,
        actor: str | None = None,
        reason: AdjustmentReason = AdjustmentReason.MANUAL,
    ) -> KitStockAdjustment:
        """Change a kit's stock by ``delta`` units.

        Manual increases reserve ``component.quantity * delta`` glazed
        pieces per component; manual decreases release them. Order
        consumption and cancellation only move the kit count, since the
        pieces are already inside the assembled kits.
        """
        if not isinstance(delta, int) or isinstance(delta, bool) or delta == 0:
            raise ValidationError("Adjustment must be a nonzero whole number of kits")

        kit = self._kits.get_for_update(kit_id)
        if kit is None:
            raise EntityNotFoundError(f"Kit #{kit_id} not found")

        previous_stock = kit.current_stock
        lines: tuple[AdjustmentLine, ...] = ()
        if reason.moves_components:
            if delta > 0:
                lines = self._reserve(kit, delta)
            else:
                lines = self._release(kit, -delta)
        elif delta > 0:
            kit.restore_stock(delta)
        else:
            kit.remove_stock(-delta)

        self._kits.save(kit)
        adjustment = self._adjustments.add(
            KitStockAdjustment(
                id=None,
                kit_id=kit_id,
                delta=delta,
                reason=reason,
                previous_stock=previous_stock,
                new_stock=kit.current_stock,
                lines=lines,
                notes=notes,
                actor=actor,
            )
        )
        logger.info(
            "Kit #%d '%s' stock %d -> %d (%s, adjustment #%s)",
            kit_id,
            kit.name,
            previous_stock,
            kit.current_stock,
            reason.value,
            adjustment.id,
        )
        return adjustment

    def describe_availability(self, kit: Kit) -> KitAvailability:
        """Authoritative view of how far current GLAZE stock backs the kit."""
        components = tuple(
            ComponentAvailability(
                variant=c.variant,
                per_kit=c.quantity.value,
                available=self._ledger.get_balance(c.variant, Stage.GLAZE),
                held_by_stock=c.required_for(kit.current_stock),
            )
            for c in kit.components
        )
        return KitAvailability(
            kit_id=kit.id,  # type: ignore[arg-type]
            current_stock=kit.current_stock,
            max_stock=kit.max_stock,
            components=components,
        )

    def available_inventory(self) -> list[StageBalance]:
        """Glazed stock not held by any kit."""
        return self._ledger.list_balances(Stage.GLAZE)

    # --- Internal helpers -----------------------------------------------------

    def _reserve(self, kit: Kit, units: int) -> tuple[AdjustmentLine, ...]:
        """Reserve glazed pieces for ``units`` more kits.

        Phase 1: lock and validate: every component must be covered.
                  Fails fast before any mutation.
        Phase 2: mutate: debit each component, then bump kit stock.
        """
        kit.ensure_can_add(units)
        requirements = kit.requirements(units)

        # Phase 1: lock every component balance and validate
        locked = self._ledger.lock((variant, Stage.GLAZE) for variant, _ in requirements)
        for variant, required in requirements:
            available = locked[(variant, Stage.GLAZE)].quantity
            if available < required:
                raise InsufficientComponentStockError(
                    f"Insufficient glazed stock of {variant} for kit '{kit.name}' "
                    f"(need {required}, have {available} available, "
                    f"short by {required - available})",
                    variant=variant,
                    available=available,
                    requested=required,
                )

        # Phase 2: mutate
        for variant, required in requirements:
            self._ledger.debit(variant, Stage.GLAZE, required)
        kit.add_stock(units)
        return tuple(AdjustmentLine(variant, -required) for variant, required in requirements)

    def _release(self, kit: Kit, units: int) -> tuple[AdjustmentLine, ...]:
        """Disassemble ``units`` kits and return their pieces to GLAZE."""
        kit.remove_stock(units)
        requirements = kit.requirements(units)
        self._ledger.lock((variant, Stage.GLAZE) for variant, _ in requirements)
        for variant, quantity in requirements:
            self._ledger.credit(variant, Stage.GLAZE, quantity)
        return tuple(AdjustmentLine(variant, quantity) for variant, quantity in requirements)
