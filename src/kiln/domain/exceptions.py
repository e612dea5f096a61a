"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class MissingColorError(ValidationError):
    """Glaze-stage stock was referenced without an enamel color."""


class MaxStockExceededError(ValidationError):
    """A kit stock increase would go beyond the kit's ``max_stock``."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class InsufficientStockError(DomainException):
    """A debit asked for more than the balance holds."""

    def __init__(self, message: str, *, available: int, requested: int) -> None:
        super().__init__(message)
        self.available = available
        self.requested = requested


class InsufficientComponentStockError(InsufficientStockError):
    """A kit reservation found a component without enough glazed stock."""

    def __init__(self, message: str, *, variant, available: int, requested: int) -> None:
        super().__init__(message, available=available, requested=requested)
        self.variant = variant

    @property
    def shortfall(self) -> int:
        return self.requested - self.available


class KitLockedError(DomainException):
    """The kit has stock outstanding, so its components cannot change."""


class NegativeStockError(DomainException):
    """A kit stock decrease would drop below zero."""


class ConcurrencyConflictError(DomainException):
    """The store rejected the transaction because of a concurrent writer.

    The only error class that is safe to retry: the caller re-reads state
    in a fresh transaction and re-validates before writing again.
    """
