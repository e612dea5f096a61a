"""SQLAlchemy implementations of the kit repositories."""

from __future__ import annotations

from dataclasses import replace

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from kiln.domain.model.kit import (
    AdjustmentLine,
    AdjustmentReason,
    Kit,
    KitComponent,
    KitStockAdjustment,
)
from kiln.domain.model.value_objects import Money, Quantity, VariantKey
from kiln.domain.repository.kit_repository import KitRepository, KitStockAdjustmentRepository
from kiln.infrastructure.persistence.orm import (
    KitComponentRow,
    KitRow,
    KitStockAdjustmentLineRow,
    KitStockAdjustmentRow,
    as_utc,
)


def kit_select(kit_id: int, for_update: bool = False) -> Select:
    stmt = select(KitRow).where(KitRow.id == kit_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return stmt


class SqlKitRepository(KitRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_id(self, kit_id: int) -> Kit | None:
        row = self._session.get(KitRow, kit_id)
        return self._to_domain(row) if row is not None else None

    def get_for_update(self, kit_id: int) -> Kit | None:
        row = self._session.scalars(kit_select(kit_id, for_update=True)).first()
        return self._to_domain(row) if row is not None else None

    def get_by_sku(self, sku: str) -> Kit | None:
        row = self._session.scalars(select(KitRow).where(KitRow.sku == sku)).first()
        return self._to_domain(row) if row is not None else None

    def list_all(self) -> list[Kit]:
        stmt = select(KitRow).order_by(KitRow.created_at.desc(), KitRow.id.desc())
        return [self._to_domain(row) for row in self._session.scalars(stmt)]

    def save(self, kit: Kit) -> None:
        row = self._session.get(KitRow, kit.id) if kit.id is not None else None
        if row is None:
            row = KitRow(created_at=kit.created_at)
            self._session.add(row)

        row.name = kit.name
        row.sku = kit.sku
        row.description = kit.description
        row.price = kit.price.amount
        row.currency = kit.price.currency
        row.min_stock = kit.min_stock
        row.max_stock = kit.max_stock
        row.current_stock = kit.current_stock
        row.is_active = kit.is_active

        if self._components(row) != kit.components:
            # Flush the removals first so re-added variants do not collide
            # with the unique constraint.
            row.components.clear()
            self._session.flush()
            row.components.extend(
                KitComponentRow(
                    position=position,
                    product_id=c.variant.product_id,
                    size_id=c.variant.size_id,
                    color_id=c.variant.color_id,
                    quantity=c.quantity.value,
                )
                for position, c in enumerate(kit.components)
            )

        self._session.flush()
        kit.id = row.id

    def delete(self, kit_id: int) -> None:
        row = self._session.get(KitRow, kit_id)
        if row is not None:
            self._session.delete(row)
            self._session.flush()

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _components(row: KitRow) -> list[KitComponent]:
        return [
            KitComponent(
                variant=VariantKey(c.product_id, c.size_id, c.color_id),
                quantity=Quantity(c.quantity),
            )
            for c in row.components
        ]

    @classmethod
    def _to_domain(cls, row: KitRow) -> Kit:
        return Kit(
            id=row.id,
            name=row.name,
            price=Money(row.price, row.currency),
            components=cls._components(row),
            min_stock=row.min_stock,
            max_stock=row.max_stock,
            current_stock=row.current_stock,
            is_active=row.is_active,
            sku=row.sku,
            description=row.description,
            created_at=as_utc(row.created_at),
        )


class SqlKitStockAdjustmentRepository(KitStockAdjustmentRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, adjustment: KitStockAdjustment) -> KitStockAdjustment:
        row = KitStockAdjustmentRow(
            kit_id=adjustment.kit_id,
            delta=adjustment.delta,
            reason=adjustment.reason.value,
            previous_stock=adjustment.previous_stock,
            new_stock=adjustment.new_stock,
            notes=adjustment.notes,
            actor=adjustment.actor,
            created_at=adjustment.created_at,
            lines=[
                KitStockAdjustmentLineRow(
                    product_id=line.variant.product_id,
                    size_id=line.variant.size_id,
                    color_id=line.variant.color_id,
                    quantity=line.quantity,
                )
                for line in adjustment.lines
            ],
        )
        self._session.add(row)
        self._session.flush()
        return replace(adjustment, id=row.id)

    def list_for_kit(self, kit_id: int) -> list[KitStockAdjustment]:
        stmt = (
            select(KitStockAdjustmentRow)
            .where(KitStockAdjustmentRow.kit_id == kit_id)
            .order_by(KitStockAdjustmentRow.id)
        )
        return [self._to_domain(row) for row in self._session.scalars(stmt)]

    def list_all(self) -> list[KitStockAdjustment]:
        stmt = select(KitStockAdjustmentRow).order_by(KitStockAdjustmentRow.id)
        return [self._to_domain(row) for row in self._session.scalars(stmt)]

    @staticmethod
    def _to_domain(row: KitStockAdjustmentRow) -> KitStockAdjustment:
        return KitStockAdjustment(
            id=row.id,
            kit_id=row.kit_id,
            delta=row.delta,
            reason=AdjustmentReason(row.reason),
            previous_stock=row.previous_stock,
            new_stock=row.new_stock,
            lines=tuple(
                AdjustmentLine(
                    variant=VariantKey(line.product_id, line.size_id, line.color_id),
                    quantity=line.quantity,
                )
                for line in row.lines
            ),
            notes=row.notes,
            actor=row.actor,
            created_at=as_utc(row.created_at),
        )
