"""Abstract repositories for stage balances and the transaction log."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from kiln.domain.model.ledger import Stage, StageBalance, StageTransaction
from kiln.domain.model.value_objects import VariantKey


class StageBalanceRepository(ABC):

    @abstractmethod
    def get(self, variant: VariantKey, stage: Stage) -> StageBalance | None:
        """Return the balance row without locking it, or None if unseen."""

    @abstractmethod
    def get_for_update(self, variant: VariantKey, stage: Stage) -> StageBalance | None:
        """Return the balance row locked until the end of the transaction."""

    @abstractmethod
    def list_by_stage(self, stage: Stage, include_empty: bool = False) -> list[StageBalance]:
        """Return balances of one stage ordered by variant."""

    @abstractmethod
    def list_all(self) -> list[StageBalance]:
        """Return every balance row."""

    @abstractmethod
    def save(self, balance: StageBalance) -> None:
        """Persist a new or updated balance."""


@dataclass(frozen=True)
class TransactionQuery:
    """Filters for the transaction history.

    ``receipts_only`` selects raw receipts (no source stage) and wins over
    ``from_stage``.
    """

    product_id: int | None = None
    size_id: int | None = None
    from_stage: Stage | None = None
    to_stage: Stage | None = None
    receipts_only: bool = False


class StageTransactionRepository(ABC):

    @abstractmethod
    def add(self, transaction: StageTransaction) -> StageTransaction:
        """Append a transaction and return it with its assigned ID."""

    @abstractmethod
    def find(
        self,
        query: TransactionQuery,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[StageTransaction]:
        """Return matching transactions, newest first."""

    @abstractmethod
    def count(self, query: TransactionQuery) -> int:
        """Return how many transactions match."""

    @abstractmethod
    def list_all(self) -> list[StageTransaction]:
        """Return the full log, oldest first."""
