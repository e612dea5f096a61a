"""SQLAlchemy implementations of the stage ledger repositories."""

from __future__ import annotations

from dataclasses import replace

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from kiln.domain.model.ledger import Stage, StageBalance, StageTransaction
from kiln.domain.model.value_objects import VariantKey
from kiln.domain.repository.ledger_repository import (
    StageBalanceRepository,
    StageTransactionRepository,
    TransactionQuery,
)
from kiln.infrastructure.persistence.orm import (
    NO_COLOR,
    StageBalanceRow,
    StageTransactionRow,
    as_utc,
)


def balance_select(variant: VariantKey, stage: Stage, for_update: bool = False) -> Select:
    """SELECT for one balance row; ``for_update`` adds a row lock."""
    stmt = select(StageBalanceRow).where(
        StageBalanceRow.product_id == variant.product_id,
        StageBalanceRow.size_id == variant.size_id,
        StageBalanceRow.color_id == (variant.color_id or NO_COLOR),
        StageBalanceRow.stage == stage.value,
    )
    if for_update:
        # Re-read the row even if the session already holds it.
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return stmt


class SqlStageBalanceRepository(StageBalanceRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, variant: VariantKey, stage: Stage) -> StageBalance | None:
        row = self._session.scalars(balance_select(variant, stage)).first()
        return self._to_domain(row) if row is not None else None

    def get_for_update(self, variant: VariantKey, stage: Stage) -> StageBalance | None:
        row = self._session.scalars(balance_select(variant, stage, for_update=True)).first()
        return self._to_domain(row) if row is not None else None

    def list_by_stage(self, stage: Stage, include_empty: bool = False) -> list[StageBalance]:
        stmt = (
            select(StageBalanceRow)
            .where(StageBalanceRow.stage == stage.value)
            .order_by(
                StageBalanceRow.product_id,
                StageBalanceRow.size_id,
                StageBalanceRow.color_id,
            )
        )
        if not include_empty:
            stmt = stmt.where(StageBalanceRow.quantity > 0)
        return [self._to_domain(row) for row in self._session.scalars(stmt)]

    def list_all(self) -> list[StageBalance]:
        stmt = select(StageBalanceRow).order_by(
            StageBalanceRow.product_id,
            StageBalanceRow.size_id,
            StageBalanceRow.color_id,
        )
        balances = [self._to_domain(row) for row in self._session.scalars(stmt)]
        return sorted(balances, key=lambda b: (*b.variant.sort_key(), b.stage.order))

    def save(self, balance: StageBalance) -> None:
        variant = balance.variant
        key = (variant.product_id, variant.size_id, variant.color_id or NO_COLOR, balance.stage.value)
        row = self._session.get(StageBalanceRow, key)
        if row is None:
            # A concurrent first insert of the same key fails on flush
            # with an IntegrityError and is retried.
            row = StageBalanceRow(
                product_id=variant.product_id,
                size_id=variant.size_id,
                color_id=variant.color_id or NO_COLOR,
                stage=balance.stage.value,
            )
            self._session.add(row)
        row.quantity = balance.quantity
        self._session.flush()

    @staticmethod
    def _to_domain(row: StageBalanceRow) -> StageBalance:
        return StageBalance(
            variant=VariantKey(row.product_id, row.size_id, row.color_id or None),
            stage=Stage(row.stage),
            quantity=row.quantity,
        )


class SqlStageTransactionRepository(StageTransactionRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, transaction: StageTransaction) -> StageTransaction:
        row = StageTransactionRow(
            from_stage=transaction.from_stage.value if transaction.from_stage else None,
            to_stage=transaction.to_stage.value,
            product_id=transaction.variant.product_id,
            size_id=transaction.variant.size_id,
            color_id=transaction.color_id,
            quantity_deducted=transaction.quantity_deducted,
            quantity_produced=transaction.quantity_produced,
            loss_percentage=transaction.loss_percentage,
            notes=transaction.notes,
            actor=transaction.actor,
            created_at=transaction.created_at,
        )
        self._session.add(row)
        self._session.flush()
        return replace(transaction, id=row.id)

    def find(
        self,
        query: TransactionQuery,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[StageTransaction]:
        stmt = self._filtered(select(StageTransactionRow), query).order_by(
            StageTransactionRow.id.desc()
        )
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return [self._to_domain(row) for row in self._session.scalars(stmt)]

    def count(self, query: TransactionQuery) -> int:
        stmt = self._filtered(select(func.count()).select_from(StageTransactionRow), query)
        return self._session.scalar(stmt) or 0

    def list_all(self) -> list[StageTransaction]:
        stmt = select(StageTransactionRow).order_by(StageTransactionRow.id)
        return [self._to_domain(row) for row in self._session.scalars(stmt)]

    # --- Query helpers --------------------------------------------------------

    @staticmethod
    def _filtered(stmt: Select, query: TransactionQuery) -> Select:
        if query.product_id is not None:
            stmt = stmt.where(StageTransactionRow.product_id == query.product_id)
        if query.size_id is not None:
            stmt = stmt.where(StageTransactionRow.size_id == query.size_id)
        if query.receipts_only:
            stmt = stmt.where(StageTransactionRow.from_stage.is_(None))
        elif query.from_stage is not None:
            stmt = stmt.where(StageTransactionRow.from_stage == query.from_stage.value)
        if query.to_stage is not None:
            stmt = stmt.where(StageTransactionRow.to_stage == query.to_stage.value)
        return stmt

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _to_domain(row: StageTransactionRow) -> StageTransaction:
        return StageTransaction(
            id=row.id,
            from_stage=Stage(row.from_stage) if row.from_stage is not None else None,
            to_stage=Stage(row.to_stage),
            variant=VariantKey(row.product_id, row.size_id),
            quantity_deducted=row.quantity_deducted,
            quantity_produced=row.quantity_produced,
            loss_percentage=row.loss_percentage,
            color_id=row.color_id,
            notes=row.notes,
            actor=row.actor,
            created_at=as_utc(row.created_at),
        )
