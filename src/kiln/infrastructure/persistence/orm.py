"""SQLAlchemy table mappings.

Rows are persistence shapes only; repositories translate them to and
from domain objects. Stages and statuses are stored as their string
values. ``stage_balances`` uses color 0 for "no color" so the column
can take part in the primary key.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

NO_COLOR = 0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    pass


# --- Catalog ------------------------------------------------------------------


class ItemCategoryRow(Base):
    __tablename__ = "item_categories"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), unique=True)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default="active")


class ProductRow(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), unique=True)
    category_id: Mapped[int | None] = mapped_column(ForeignKey("item_categories.id"))
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default="active")


class SizeRow(Base):
    __tablename__ = "sizes"
    __table_args__ = (UniqueConstraint("product_id", "name", name="uq_sizes_product_name"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), index=True)
    name: Mapped[str] = mapped_column(String(60))
    code: Mapped[str | None] = mapped_column(String(20))
    size_order: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), default="active")


class EnamelColorRow(Base):
    __tablename__ = "enamel_colors"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(60), unique=True)
    code: Mapped[str | None] = mapped_column(String(20))
    hex_code: Mapped[str | None] = mapped_column(String(7))
    status: Mapped[str] = mapped_column(String(20), default="active")


# --- Stage ledger -------------------------------------------------------------


class StageBalanceRow(Base):
    __tablename__ = "stage_balances"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_stage_balances_quantity"),
    )

    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), primary_key=True)
    size_id: Mapped[int] = mapped_column(ForeignKey("sizes.id"), primary_key=True)
    color_id: Mapped[int] = mapped_column(Integer, primary_key=True, default=NO_COLOR)
    stage: Mapped[str] = mapped_column(String(10), primary_key=True)
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


class StageTransactionRow(Base):
    __tablename__ = "stage_transactions"
    __table_args__ = (
        CheckConstraint("quantity_produced >= 0", name="ck_stage_tx_produced"),
        CheckConstraint(
            "from_stage IS NULL OR quantity_produced <= quantity_deducted",
            name="ck_stage_tx_loss_bound",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    from_stage: Mapped[str | None] = mapped_column(String(10), index=True)
    to_stage: Mapped[str] = mapped_column(String(10), index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), index=True)
    size_id: Mapped[int] = mapped_column(ForeignKey("sizes.id"))
    color_id: Mapped[int | None] = mapped_column(ForeignKey("enamel_colors.id"))
    quantity_deducted: Mapped[int] = mapped_column(Integer)
    quantity_produced: Mapped[int] = mapped_column(Integer)
    loss_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2))
    notes: Mapped[str | None] = mapped_column(Text)
    actor: Mapped[str | None] = mapped_column(String(120))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)


# --- Kits ---------------------------------------------------------------------


class KitRow(Base):
    __tablename__ = "kits"
    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_kits_current_stock"),
        CheckConstraint("min_stock >= 0 AND max_stock >= min_stock", name="ck_kits_limits"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200))
    sku: Mapped[str | None] = mapped_column(String(60), unique=True)
    description: Mapped[str | None] = mapped_column(Text)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    currency: Mapped[str] = mapped_column(String(3), default="MXN")
    min_stock: Mapped[int] = mapped_column(Integer, default=0)
    max_stock: Mapped[int] = mapped_column(Integer)
    current_stock: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    components: Mapped[list[KitComponentRow]] = relationship(
        back_populates="kit",
        cascade="all, delete-orphan",
        order_by="KitComponentRow.position",
    )


class KitComponentRow(Base):
    __tablename__ = "kit_components"
    __table_args__ = (
        UniqueConstraint(
            "kit_id", "product_id", "size_id", "color_id", name="uq_kit_components_variant"
        ),
        CheckConstraint("quantity > 0", name="ck_kit_components_quantity"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    kit_id: Mapped[int] = mapped_column(ForeignKey("kits.id", ondelete="CASCADE"), index=True)
    position: Mapped[int] = mapped_column(Integer)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"))
    size_id: Mapped[int] = mapped_column(ForeignKey("sizes.id"))
    color_id: Mapped[int] = mapped_column(ForeignKey("enamel_colors.id"))
    quantity: Mapped[int] = mapped_column(Integer)

    kit: Mapped[KitRow] = relationship(back_populates="components")


class KitStockAdjustmentRow(Base):
    """Adjustments outlive their kit, so ``kit_id`` carries no foreign key."""

    __tablename__ = "kit_stock_adjustments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    kit_id: Mapped[int] = mapped_column(Integer, index=True)
    delta: Mapped[int] = mapped_column(Integer)
    reason: Mapped[str] = mapped_column(String(20))
    previous_stock: Mapped[int] = mapped_column(Integer)
    new_stock: Mapped[int] = mapped_column(Integer)
    notes: Mapped[str | None] = mapped_column(Text)
    actor: Mapped[str | None] = mapped_column(String(120))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    lines: Mapped[list[KitStockAdjustmentLineRow]] = relationship(
        cascade="all, delete-orphan",
        order_by="KitStockAdjustmentLineRow.id",
    )


class KitStockAdjustmentLineRow(Base):
    __tablename__ = "kit_stock_adjustment_lines"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    adjustment_id: Mapped[int] = mapped_column(
        ForeignKey("kit_stock_adjustments.id", ondelete="CASCADE"), index=True
    )
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"))
    size_id: Mapped[int] = mapped_column(ForeignKey("sizes.id"))
    color_id: Mapped[int] = mapped_column(ForeignKey("enamel_colors.id"))
    quantity: Mapped[int] = mapped_column(Integer)


# --- Orders -------------------------------------------------------------------


class KitOrderRow(Base):
    __tablename__ = "kit_orders"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    customer_name: Mapped[str] = mapped_column(String(200))
    status: Mapped[str] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    lines: Mapped[list[KitOrderLineRow]] = relationship(
        cascade="all, delete-orphan",
        order_by="KitOrderLineRow.id",
    )


class KitOrderLineRow(Base):
    __tablename__ = "kit_order_lines"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("kit_orders.id", ondelete="CASCADE"), index=True
    )
    kit_id: Mapped[int] = mapped_column(Integer)
    kit_name: Mapped[str] = mapped_column(String(200))
    quantity: Mapped[int] = mapped_column(Integer)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    currency: Mapped[str] = mapped_column(String(3), default="MXN")
