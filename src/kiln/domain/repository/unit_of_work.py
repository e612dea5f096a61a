"""Unit of Work: one database transaction spanning every repository.

Application handlers open a unit of work, call domain services against
its repositories and commit explicitly. Leaving the ``with`` block
without committing, or through an exception, rolls everything back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from kiln.domain.repository.catalog_repository import CatalogRepository
from kiln.domain.repository.kit_repository import KitRepository, KitStockAdjustmentRepository
from kiln.domain.repository.ledger_repository import (
    StageBalanceRepository,
    StageTransactionRepository,
)
from kiln.domain.repository.order_repository import OrderRepository


class UnitOfWork(ABC):

    catalog: CatalogRepository
    balances: StageBalanceRepository
    transactions: StageTransactionRepository
    kits: KitRepository
    adjustments: KitStockAdjustmentRepository
    orders: OrderRepository

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        # Rolling back after a commit is a no-op.
        self.rollback()

    @abstractmethod
    def commit(self) -> None:
        """Make every change in this unit of work durable."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard every uncommitted change."""
