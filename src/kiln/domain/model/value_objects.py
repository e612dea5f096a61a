"""Value Objects shared across the domain.

Value Objects are immutable and compared by value, not identity.
They encapsulate validation so invalid values can never exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from kiln.domain.exceptions import ValidationError


@dataclass(frozen=True)
class Money:
    """Monetary amount with currency.

    Uses Decimal to avoid floating-point rounding errors in kit and
    order prices.
    """

    amount: Decimal
    currency: str = "MXN"

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if self.amount < Decimal("0"):
            raise ValidationError(
                f"Money amount cannot be negative, got {self.amount}"
            )

    # --- Arithmetic helpers ---------------------------------------------------

    def __add__(self, other: Money) -> Money:
        self._assert_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, factor: int) -> Money:
        if not isinstance(factor, int):
            raise TypeError(f"Can only multiply Money by int, got {type(factor).__name__}")
        return Money(self.amount * factor, self.currency)

    # --- Display --------------------------------------------------------------

    def __str__(self) -> str:
        return f"${self.amount:.2f}"

    # --- Internal helpers -----------------------------------------------------

    def _assert_same_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise ValidationError(
                f"Cannot combine {self.currency} with {other.currency}"
            )

    # --- Factory --------------------------------------------------------------

    @staticmethod
    def of(amount: str | float | int | Decimal) -> Money:
        """Convenient factory that coerces to Decimal safely."""
        try:
            return Money(Decimal(str(amount)))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid money amount: {amount!r}") from exc


@dataclass(frozen=True)
class Quantity:
    """A positive integer quantity of pieces."""

    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise ValidationError(
                f"Quantity must be an integer, got {type(self.value).__name__}"
            )
        if self.value <= 0:
            raise ValidationError("Quantity must be positive")

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class VariantKey:
    """A (product, size, optional enamel color) combination.

    This is the atomic unit the ledger tracks quantities for. Only
    glazed stock carries a color.
    """

    product_id: int
    size_id: int
    color_id: int | None = None

    def __post_init__(self) -> None:
        for name in ("product_id", "size_id"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValidationError(f"{name} must be a positive integer, got {value!r}")
        if self.color_id is not None and (
            not isinstance(self.color_id, int) or self.color_id <= 0
        ):
            raise ValidationError(f"color_id must be a positive integer, got {self.color_id!r}")

    @property
    def has_color(self) -> bool:
        return self.color_id is not None

    def with_color(self, color_id: int) -> VariantKey:
        return VariantKey(self.product_id, self.size_id, color_id)

    def without_color(self) -> VariantKey:
        return VariantKey(self.product_id, self.size_id)

    def sort_key(self) -> tuple[int, int, int]:
        # Uncolored keys sort before any colored one.
        return (self.product_id, self.size_id, self.color_id or 0)

    def __str__(self) -> str:
        base = f"product {self.product_id} / size {self.size_id}"
        if self.color_id is not None:
            return f"{base} / color {self.color_id}"
        return base
