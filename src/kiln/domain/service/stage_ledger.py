"""Domain service: Stage Ledger.

Reads and mutates ``StageBalance`` rows inside the caller's unit of
work. Every mutation goes through a row lock taken in a fixed order
(product, size, color, stage) so that concurrent transitions and kit
reservations serialize on the same rows without deadlocking.

Balances are maintained incrementally; reads never sum the log.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from kiln.domain.model.ledger import Stage, StageBalance, check_variant_for_stage
from kiln.domain.model.value_objects import VariantKey
from kiln.domain.repository.ledger_repository import StageBalanceRepository

logger = logging.getLogger(__name__)

BalanceKey = tuple[VariantKey, Stage]


def _lock_order(key: BalanceKey) -> tuple[int, int, int, int]:
    variant, stage = key
    return (*variant.sort_key(), stage.order)


class StageLedger:

    def __init__(self, balances: StageBalanceRepository) -> None:
        self._balances = balances
        self._locked: dict[BalanceKey, StageBalance] = {}

    def get_balance(self, variant: VariantKey, stage: Stage) -> int:
        """Current quantity, 0 for a variant never seen at this stage."""
        check_variant_for_stage(variant, stage)
        locked = self._locked.get((variant, stage))
        if locked is not None:
            return locked.quantity
        balance = self._balances.get(variant, stage)
        return balance.quantity if balance is not None else 0

    def list_balances(self, stage: Stage, include_empty: bool = False) -> list[StageBalance]:
        return self._balances.list_by_stage(stage, include_empty=include_empty)

    def lock(self, entries: Iterable[BalanceKey]) -> dict[BalanceKey, StageBalance]:
        """Lock several balance rows for the rest of the transaction.

        Unseen balances come back as zero-quantity rows that are only
        written once credited.
        """
        ordered = sorted(set(entries), key=_lock_order)
        return {key: self._lock_one(*key) for key in ordered}

    def credit(self, variant: VariantKey, stage: Stage, amount: int) -> StageBalance:
        balance = self._lock_one(variant, stage)
        balance.credit(amount)
        self._balances.save(balance)
        return balance

    def debit(self, variant: VariantKey, stage: Stage, amount: int) -> StageBalance:
        """Remove stock; raises InsufficientStockError when short."""
        balance = self._lock_one(variant, stage)
        balance.debit(amount)
        self._balances.save(balance)
        return balance

    # --- Internal helpers -----------------------------------------------------

    def _lock_one(self, variant: VariantKey, stage: Stage) -> StageBalance:
        key = (variant, stage)
        balance = self._locked.get(key)
        if balance is None:
            check_variant_for_stage(variant, stage)
            balance = self._balances.get_for_update(variant, stage)
            if balance is None:
                balance = StageBalance(variant=variant, stage=stage, quantity=0)
            logger.debug("Locked %s balance for %s (qty=%d)", stage.value, variant, balance.quantity)
            self._locked[key] = balance
        return balance
