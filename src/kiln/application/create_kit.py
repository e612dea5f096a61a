"""Application service: Create Kit use case."""

from __future__ import annotations

import logging
from collections.abc import Callable
from decimal import Decimal

from kiln.application.dto import KitComponentSpec, KitDTO
from kiln.application.mappers import kit_to_dto
from kiln.application.retry import DEFAULT_ATTEMPTS, retry_on_conflict
from kiln.application.variants import resolve_variant
from kiln.domain.exceptions import ValidationError
from kiln.domain.model.kit import DEFAULT_MAX_STOCK, Kit, KitComponent
from kiln.domain.model.value_objects import Money, Quantity
from kiln.domain.repository.catalog_repository import CatalogRepository
from kiln.domain.repository.kit_repository import KitRepository
from kiln.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def build_components(
    catalog: CatalogRepository,
    specs: list[KitComponentSpec],
    require_active: bool = True,
) -> list[KitComponent]:
    """Resolve component specs against the catalog, preserving their order."""
    return [
        KitComponent(
            variant=resolve_variant(
                catalog,
                spec.product_id,
                spec.size_id,
                spec.color_id,
                require_active=require_active,
            ),
            quantity=Quantity(spec.quantity),
        )
        for spec in specs
    ]


def ensure_unique_sku(kits: KitRepository, kit: Kit) -> None:
    if kit.sku is None:
        return
    existing = kits.get_by_sku(kit.sku)
    if existing is not None and existing.id != kit.id:
        raise ValidationError(f"SKU '{kit.sku}' is already used by kit '{existing.name}'")


class CreateKitHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._uow_factory = uow_factory
        self._max_attempts = max_attempts

    def handle(
        self,
        name: str,
        price: str | Decimal,
        components: list[KitComponentSpec],
        min_stock: int = 0,
        max_stock: int = DEFAULT_MAX_STOCK,
        sku: str | None = None,
        description: str | None = None,
        is_active: bool = True,
    ) -> KitDTO:
        """Define a new kit with zero stock.

        Steps:
        1. Resolve each component to an active, colored glaze variant.
        2. Let the Kit aggregate validate names, limits and duplicates.
        3. Reject a SKU already carried by another kit.
        4. Persist and return a DTO.
        """
        if not components:
            raise ValidationError("A kit needs at least one component")
        return retry_on_conflict(
            lambda: self._create(
                name, price, components, min_stock, max_stock, sku, description, is_active
            ),
            self._max_attempts,
        )

    def _create(
        self,
        name: str,
        price: str | Decimal,
        specs: list[KitComponentSpec],
        min_stock: int,
        max_stock: int,
        sku: str | None,
        description: str | None,
        is_active: bool,
    ) -> KitDTO:
        with self._uow_factory() as uow:
            kit = Kit.create(
                name=name,
                price=Money.of(price),
                components=build_components(uow.catalog, specs),
                min_stock=min_stock,
                max_stock=max_stock,
                is_active=is_active,
                sku=sku,
                description=description,
            )
            ensure_unique_sku(uow.kits, kit)
            uow.kits.save(kit)
            result = kit_to_dto(uow.catalog, kit)
            uow.commit()

        logger.info("Created kit #%s '%s' with %d components", kit.id, kit.name, len(kit.components))
        return result
