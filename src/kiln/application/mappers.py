"""Domain-to-DTO mapping shared by several handlers."""

from __future__ import annotations

from kiln.application.dto import (
    BalanceDTO,
    KitAdjustmentDTO,
    KitComponentDTO,
    KitDTO,
    OrderDTO,
    OrderLineItemDTO,
    TransactionDTO,
)
from kiln.application.variants import variant_names
from kiln.domain.model.kit import Kit, KitStockAdjustment
from kiln.domain.model.ledger import StageBalance, StageTransaction
from kiln.domain.model.order import Order
from kiln.domain.repository.catalog_repository import CatalogRepository

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M UTC"


def balance_to_dto(catalog: CatalogRepository, balance: StageBalance) -> BalanceDTO:
    names = variant_names(catalog, balance.variant)
    return BalanceDTO(
        product_id=balance.variant.product_id,
        product_name=names.product_name,
        size_id=balance.variant.size_id,
        size_name=names.size_name,
        color_id=balance.variant.color_id,
        color_name=names.color_name,
        stage=balance.stage.value,
        quantity=balance.quantity,
    )


def transaction_to_dto(catalog: CatalogRepository, tx: StageTransaction) -> TransactionDTO:
    names = variant_names(catalog, tx.destination)
    return TransactionDTO(
        id=tx.id,  # type: ignore[arg-type]
        from_stage=tx.from_stage.value if tx.from_stage else None,
        to_stage=tx.to_stage.value,
        product_name=names.product_name,
        size_name=names.size_name,
        color_name=names.color_name,
        quantity_deducted=tx.quantity_deducted,
        quantity_produced=tx.quantity_produced,
        loss=tx.loss,
        loss_percentage=tx.loss_percentage,
        notes=tx.notes,
        actor=tx.actor,
        created_at=tx.created_at.strftime(TIMESTAMP_FORMAT),
    )


def kit_to_dto(catalog: CatalogRepository, kit: Kit) -> KitDTO:
    return KitDTO(
        id=kit.id,  # type: ignore[arg-type]
        name=kit.name,
        sku=kit.sku,
        description=kit.description,
        price=str(kit.price),
        min_stock=kit.min_stock,
        max_stock=kit.max_stock,
        current_stock=kit.current_stock,
        is_active=kit.is_active,
        components=[
            KitComponentDTO(
                product_id=c.variant.product_id,
                size_id=c.variant.size_id,
                color_id=c.variant.color_id,
                label=str(variant_names(catalog, c.variant)),
                quantity=c.quantity.value,
            )
            for c in kit.components
        ],
    )


def adjustment_to_dto(adjustment: KitStockAdjustment) -> KitAdjustmentDTO:
    return KitAdjustmentDTO(
        id=adjustment.id,  # type: ignore[arg-type]
        kit_id=adjustment.kit_id,
        delta=adjustment.delta,
        reason=adjustment.reason.value,
        previous_stock=adjustment.previous_stock,
        new_stock=adjustment.new_stock,
        notes=adjustment.notes,
        actor=adjustment.actor,
        created_at=adjustment.created_at.strftime(TIMESTAMP_FORMAT),
    )


def order_to_dto(order: Order) -> OrderDTO:
    return OrderDTO(
        id=order.id,  # type: ignore[arg-type]
        customer_name=order.customer_name,
        status=order.status.value,
        items=[
            OrderLineItemDTO(
                kit_name=item.kit_name,
                quantity=item.quantity.value,
                unit_price=str(item.unit_price),
                line_total=str(item.line_total),
            )
            for item in order.items
        ],
        total=str(order.total),
        created_at=order.created_at.strftime(TIMESTAMP_FORMAT),
    )
