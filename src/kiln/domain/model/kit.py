"""Kit aggregate: a sellable bundle of glazed pieces.

The Kit owns its component lines and its assembled stock count. The
component list is frozen while any stock is outstanding, because every
assembled unit holds glazed pieces matching the current lines.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from kiln.domain.exceptions import (
    KitLockedError,
    MaxStockExceededError,
    MissingColorError,
    NegativeStockError,
    ValidationError,
)
from kiln.domain.model.value_objects import Money, Quantity, VariantKey

DEFAULT_MAX_STOCK = 100


@dataclass(frozen=True)
class KitComponent:
    """``quantity`` glazed pieces of ``variant`` go into one kit unit."""

    variant: VariantKey
    quantity: Quantity

    def __post_init__(self) -> None:
        if not self.variant.has_color:
            raise MissingColorError(
                f"Kit component {self.variant} must reference glazed stock with a color"
            )

    def required_for(self, kit_units: int) -> int:
        return self.quantity.value * kit_units


class AdjustmentReason(Enum):
    MANUAL = "MANUAL"
    ORDER = "ORDER"
    ORDER_CANCELLED = "ORDER_CANCELLED"

    @property
    def moves_components(self) -> bool:
        """Only manual adjustments reserve or release glazed pieces."""
        return self is AdjustmentReason.MANUAL


@dataclass(frozen=True)
class AdjustmentLine:
    """Signed movement applied to one variant's GLAZE balance."""

    variant: VariantKey
    quantity: int


@dataclass(frozen=True)
class KitStockAdjustment:
    """Immutable record of a change to a kit's stock."""

    id: int | None
    kit_id: int
    delta: int
    reason: AdjustmentReason
    previous_stock: int
    new_stock: int
    lines: tuple[AdjustmentLine, ...] = ()
    notes: str | None = None
    actor: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class Kit:
    """Aggregate root for kits.

    Use ``Kit.create()`` for new kits; ``__init__`` stays simple so the
    repository can reconstitute persisted kits without re-validating.
    """

    id: int | None
    name: str
    price: Money
    components: list[KitComponent]
    min_stock: int = 0
    max_stock: int = DEFAULT_MAX_STOCK
    current_stock: int = 0
    is_active: bool = True
    sku: str | None = None
    description: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # --- Factory (used for NEW kits only) -------------------------------------

    @staticmethod
    def create(
        name: str,
        price: Money,
        components: list[KitComponent],
        min_stock: int = 0,
        max_stock: int = DEFAULT_MAX_STOCK,
        is_active: bool = True,
        sku: str | None = None,
        description: str | None = None,
    ) -> Kit:
        kit = Kit(id=None, name="", price=price, components=[])
        kit.update_details(
            name=name,
            price=price,
            min_stock=min_stock,
            max_stock=max_stock,
            is_active=is_active,
            sku=sku,
            description=description,
        )
        kit.replace_components(components)
        return kit

    # --- Mutations ------------------------------------------------------------

    def update_details(
        self,
        name: str,
        price: Money,
        min_stock: int,
        max_stock: int,
        is_active: bool,
        sku: str | None = None,
        description: str | None = None,
    ) -> None:
        if not name or not name.strip():
            raise ValidationError("Kit name is required")
        if min_stock < 0 or max_stock < 0:
            raise ValidationError("Stock limits cannot be negative")
        if min_stock > max_stock:
            raise ValidationError(
                f"min_stock ({min_stock}) cannot exceed max_stock ({max_stock})"
            )
        if max_stock < self.current_stock:
            raise ValidationError(
                f"max_stock ({max_stock}) is below the current stock of {self.current_stock}"
            )
        self.name = name.strip()
        self.price = price
        self.min_stock = min_stock
        self.max_stock = max_stock
        self.is_active = is_active
        self.sku = sku.strip() if sku and sku.strip() else None
        self.description = description or None

    def replace_components(self, components: list[KitComponent]) -> None:
        """Swap the component list.

        Raises KitLockedError when the list actually changes while stock
        is outstanding.
        """
        if not components:
            raise ValidationError("A kit needs at least one component")
        variants = [c.variant for c in components]
        if len(set(variants)) != len(variants):
            raise ValidationError("Each variant may appear only once in a kit")
        if list(components) == self.components:
            return
        if self.is_locked:
            raise KitLockedError(
                f"Kit '{self.name}' has {self.current_stock} units in stock; "
                f"release them before editing its components"
            )
        self.components = list(components)

    def ensure_can_add(self, units: int) -> None:
        if units <= 0:
            raise ValidationError("Stock increase must be positive")
        if self.current_stock + units > self.max_stock:
            raise MaxStockExceededError(
                f"Cannot exceed max stock of {self.max_stock} for kit '{self.name}' "
                f"(current {self.current_stock}, adding {units})"
            )

    def add_stock(self, units: int) -> None:
        self.ensure_can_add(units)
        self.current_stock += units

    def restore_stock(self, units: int) -> None:
        """Put back units from a cancelled order; no max_stock check."""
        if units <= 0:
            raise ValidationError("Stock increase must be positive")
        self.current_stock += units

    def remove_stock(self, units: int) -> None:
        if units <= 0:
            raise ValidationError("Stock decrease must be positive")
        if units > self.current_stock:
            raise NegativeStockError(
                f"Cannot reduce stock of kit '{self.name}' below 0 "
                f"(current {self.current_stock}, removing {units})"
            )
        self.current_stock -= units

    def assert_deletable(self) -> None:
        if self.is_locked:
            raise KitLockedError(
                f"Cannot delete kit '{self.name}' with {self.current_stock} units in stock; "
                f"reduce stock to 0 first"
            )

    # --- Computed properties --------------------------------------------------

    @property
    def is_locked(self) -> bool:
        return self.current_stock > 0

    @property
    def is_below_min(self) -> bool:
        return self.current_stock < self.min_stock

    def requirements(self, kit_units: int) -> list[tuple[VariantKey, int]]:
        """Glazed pieces needed per variant for ``kit_units`` kits."""
        return [(c.variant, c.required_for(kit_units)) for c in self.components]
