"""Domain service: Ledger Audit.

Replays the transaction log and the kit adjustment lines to derive what
every balance should hold, and compares that with the maintained
balances. Kit stock is checked the same way against the sum of each
kit's adjustment deltas. This is the audit and recovery path; normal
reads never replay the log.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass

from kiln.domain.exceptions import ValidationError
from kiln.domain.model.kit import KitStockAdjustment
from kiln.domain.model.ledger import (
    Stage,
    StageBalance,
    StageTransaction,
    compute_loss_percentage,
)
from kiln.domain.model.value_objects import VariantKey
from kiln.domain.repository.kit_repository import KitRepository, KitStockAdjustmentRepository
from kiln.domain.repository.ledger_repository import (
    StageBalanceRepository,
    StageTransactionRepository,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceDrift:
    variant: VariantKey
    stage: Stage
    recorded: int
    expected: int

    @property
    def difference(self) -> int:
        return self.recorded - self.expected


@dataclass(frozen=True)
class KitStockDrift:
    kit_id: int
    kit_name: str
    recorded: int
    expected: int


@dataclass(frozen=True)
class AuditReport:
    drifts: tuple[BalanceDrift, ...]
    loss_mismatches: tuple[int, ...]  # transaction IDs
    transactions_checked: int
    adjustments_checked: int
    kit_drifts: tuple[KitStockDrift, ...] = ()

    @property
    def is_clean(self) -> bool:
        return not self.drifts and not self.loss_mismatches and not self.kit_drifts


def derive_balances(
    transactions: list[StageTransaction],
    adjustments: list[KitStockAdjustment],
) -> dict[tuple[VariantKey, Stage], int]:
    """Balances implied by the log alone."""
    totals: dict[tuple[VariantKey, Stage], int] = defaultdict(int)
    for tx in transactions:
        if tx.from_stage is not None:
            totals[(tx.variant, tx.from_stage)] -= tx.quantity_deducted
        if tx.quantity_produced:
            totals[(tx.destination, tx.to_stage)] += tx.quantity_produced
    for adjustment in adjustments:
        for line in adjustment.lines:
            totals[(line.variant, Stage.GLAZE)] += line.quantity
    return dict(totals)


def derive_kit_stock(adjustments: list[KitStockAdjustment]) -> dict[int, int]:
    """Kit stock implied by the adjustment log. Kits start empty."""
    totals: dict[int, int] = defaultdict(int)
    for adjustment in adjustments:
        totals[adjustment.kit_id] += adjustment.delta
    return dict(totals)


class LedgerAuditService:

    def __init__(
        self,
        balances: StageBalanceRepository,
        transactions: StageTransactionRepository,
        adjustments: KitStockAdjustmentRepository,
        kits: KitRepository,
    ) -> None:
        self._balances = balances
        self._transactions = transactions
        self._adjustments = adjustments
        self._kits = kits

    def audit(self) -> AuditReport:
        transactions = self._transactions.list_all()
        adjustments = self._adjustments.list_all()
        expected = derive_balances(transactions, adjustments)
        recorded = {b.key: b.quantity for b in self._balances.list_all()}

        drifts = [
            BalanceDrift(variant, stage, recorded.get((variant, stage), 0), qty)
            for (variant, stage), qty in expected.items()
            if recorded.get((variant, stage), 0) != qty
        ]
        drifts.extend(
            BalanceDrift(variant, stage, qty, 0)
            for (variant, stage), qty in recorded.items()
            if (variant, stage) not in expected and qty != 0
        )
        drifts.sort(key=lambda d: (*d.variant.sort_key(), d.stage.order))

        loss_mismatches = [
            tx.id
            for tx in transactions
            if tx.loss_percentage
            != compute_loss_percentage(tx.quantity_deducted, tx.quantity_produced)
        ]

        kit_totals = derive_kit_stock(adjustments)
        kit_drifts = [
            KitStockDrift(kit.id, kit.name, kit.current_stock, kit_totals.get(kit.id, 0))  # type: ignore[arg-type]
            for kit in sorted(self._kits.list_all(), key=lambda k: k.id)
            if kit.current_stock != kit_totals.get(kit.id, 0)
        ]

        report = AuditReport(
            drifts=tuple(drifts),
            loss_mismatches=tuple(loss_mismatches),  # type: ignore[arg-type]
            transactions_checked=len(transactions),
            adjustments_checked=len(adjustments),
            kit_drifts=tuple(kit_drifts),
        )
        if not report.is_clean:
            logger.warning(
                "Ledger audit found %d drifted balances, %d drifted kits and %d loss mismatches",
                len(report.drifts),
                len(report.kit_drifts),
                len(report.loss_mismatches),
            )
        return report

    def repair(self) -> AuditReport:
        """Overwrite drifted balances and kit stock with the log-derived quantities."""
        report = self.audit()
        # Kits before balances, the same order stock adjustments lock in.
        for kit_drift in report.kit_drifts:
            if kit_drift.expected < 0:
                raise ValidationError(
                    f"The adjustment log implies negative stock for kit "
                    f"'{kit_drift.kit_name}' ({kit_drift.expected}); cannot repair automatically"
                )
            kit = self._kits.get_for_update(kit_drift.kit_id)
            if kit is None:
                continue
            kit.current_stock = kit_drift.expected
            self._kits.save(kit)
            logger.warning(
                "Repaired stock of kit #%d '%s': %d -> %d",
                kit_drift.kit_id,
                kit_drift.kit_name,
                kit_drift.recorded,
                kit_drift.expected,
            )
        for drift in report.drifts:
            if drift.expected < 0:
                raise ValidationError(
                    f"The log implies a negative {drift.stage.value} balance for "
                    f"{drift.variant} ({drift.expected}); cannot repair automatically"
                )
            balance = self._balances.get_for_update(drift.variant, drift.stage)
            if balance is None:
                balance = StageBalance(variant=drift.variant, stage=drift.stage)
            balance.quantity = drift.expected
            self._balances.save(balance)
            logger.warning(
                "Repaired %s balance of %s: %d -> %d",
                drift.stage.value,
                drift.variant,
                drift.recorded,
                drift.expected,
            )
        return report
