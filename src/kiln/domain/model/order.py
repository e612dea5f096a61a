"""Order aggregate: a customer order for assembled kits.

Orders only move kit stock. The glazed pieces inside each kit were
already reserved when the kit was assembled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from kiln.domain.exceptions import ValidationError
from kiln.domain.model.value_objects import Money, Quantity


class OrderStatus(Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class OrderLineItem:
    """Captures the kit price at order-creation time."""

    kit_id: int
    kit_name: str
    quantity: Quantity
    unit_price: Money  # locked at order-creation time

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value


MAX_LINE_ITEMS = 50


@dataclass
class Order:
    """Aggregate root for kit orders.

    Use the ``Order.create()`` factory for new orders. The ``__init__``
    is intentionally simple so the repository can reconstitute persisted
    orders without re-validating.
    """

    id: int | None
    customer_name: str
    items: list[OrderLineItem]
    status: OrderStatus = OrderStatus.DRAFT
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(customer_name: str, items: list[OrderLineItem]) -> Order:
        if not customer_name or not customer_name.strip():
            raise ValidationError("Customer name is required")

        if not items:
            raise ValidationError("Order must contain at least one kit")

        if len(items) > MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")

        kit_ids = [item.kit_id for item in items]
        if len(set(kit_ids)) != len(kit_ids):
            raise ValidationError("Each kit may appear only once per order")

        return Order(id=None, customer_name=customer_name.strip(), items=list(items))

    # --- State transitions ----------------------------------------------------

    def confirm(self) -> None:
        """Transition DRAFT -> CONFIRMED.

        The application handler consumes the kit stock in the same unit
        of work, through the reservation service.
        """
        if self.status != OrderStatus.DRAFT:
            raise ValidationError(
                f"Cannot confirm order: current status is {self.status.value}, "
                f"expected DRAFT"
            )
        self.status = OrderStatus.CONFIRMED

    def cancel(self) -> None:
        """Transition DRAFT|CONFIRMED -> CANCELLED.

        If the order was CONFIRMED, kit stock must be restored *before*
        calling this.
        """
        if self.status == OrderStatus.CANCELLED:
            raise ValidationError("Order is already cancelled")
        self.status = OrderStatus.CANCELLED

    # --- Computed properties --------------------------------------------------

    @property
    def total(self) -> Money:
        result = Money(Decimal("0.00"))
        for item in self.items:
            result = result + item.line_total
        return result
