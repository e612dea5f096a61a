"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# --- Inputs -------------------------------------------------------------------


@dataclass(frozen=True)
class KitComponentSpec:
    """Input: ``quantity`` glazed pieces of a variant per kit."""

    product_id: int
    size_id: int
    color_id: int | None
    quantity: int


@dataclass(frozen=True)
class OrderItemSpec:
    """Input: what the customer asked for (kit ID + quantity)."""

    kit_id: int
    quantity: int


# --- Ledger -------------------------------------------------------------------


@dataclass(frozen=True)
class BalanceDTO:
    product_id: int
    product_name: str
    size_id: int
    size_name: str
    color_id: int | None
    color_name: str | None
    stage: str
    quantity: int


@dataclass(frozen=True)
class BalanceListDTO:
    stage: str
    items: list[BalanceDTO]
    total_items: int
    total_quantity: int


@dataclass(frozen=True)
class TransactionDTO:
    id: int
    from_stage: str | None  # None for raw receipts
    to_stage: str
    product_name: str
    size_name: str
    color_name: str | None
    quantity_deducted: int
    quantity_produced: int
    loss: int
    loss_percentage: Decimal
    notes: str | None
    actor: str | None
    created_at: str


@dataclass(frozen=True)
class HistoryPageDTO:
    transactions: list[TransactionDTO]
    limit: int
    offset: int
    total: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.transactions) < self.total


@dataclass(frozen=True)
class TransitionResultDTO:
    transaction: TransactionDTO
    high_loss: bool
    source_balance: int
    destination_balance: int


@dataclass(frozen=True)
class LossAnalysisRowDTO:
    transition: str  # e.g. "RAW -> BISQUE"
    product_name: str
    size_name: str
    transactions: int
    total_deducted: int
    total_produced: int
    total_loss: int
    loss_percentage: Decimal


@dataclass(frozen=True)
class BalanceDriftDTO:
    product_name: str
    size_name: str
    color_name: str | None
    stage: str
    recorded: int
    expected: int


@dataclass(frozen=True)
class KitStockDriftDTO:
    kit_id: int
    kit_name: str
    recorded: int
    expected: int


@dataclass(frozen=True)
class AuditResultDTO:
    clean: bool
    repaired: bool
    drifts: list[BalanceDriftDTO]
    loss_mismatches: list[int]
    transactions_checked: int
    adjustments_checked: int
    kit_drifts: list[KitStockDriftDTO] = field(default_factory=list)


# --- Kits ---------------------------------------------------------------------


@dataclass(frozen=True)
class KitComponentDTO:
    product_id: int
    size_id: int
    color_id: int | None
    label: str  # e.g. "Mug Large (Cobalt)"
    quantity: int


@dataclass(frozen=True)
class KitDTO:
    id: int
    name: str
    sku: str | None
    description: str | None
    price: str  # formatted, e.g. "$450.00"
    min_stock: int
    max_stock: int
    current_stock: int
    is_active: bool
    components: list[KitComponentDTO]


@dataclass(frozen=True)
class ComponentAvailabilityDTO:
    label: str
    per_kit: int
    available: int
    held_by_stock: int
    buildable_units: int


@dataclass(frozen=True)
class KitAdjustmentDTO:
    id: int
    kit_id: int
    delta: int
    reason: str
    previous_stock: int
    new_stock: int
    notes: str | None
    actor: str | None
    created_at: str


@dataclass(frozen=True)
class KitDetailDTO:
    kit: KitDTO
    availability: list[ComponentAvailabilityDTO]
    max_additional_units: int
    is_below_min: bool
    adjustments: list[KitAdjustmentDTO]


# --- Orders -------------------------------------------------------------------


@dataclass(frozen=True)
class OrderLineItemDTO:
    """Output: a single line item as displayed to the user."""

    kit_name: str
    quantity: int
    unit_price: str  # formatted, e.g. "$15.00"
    line_total: str


@dataclass(frozen=True)
class OrderDTO:
    """Output: a complete order as displayed to the user."""

    id: int
    customer_name: str
    status: str
    items: list[OrderLineItemDTO]
    total: str
    created_at: str
