"""Application service: Update Kit use case.

Details (name, price, limits, SKU, description, active flag) can change
at any time. The component list can only change while the kit has no
stock, because assembled units hold pieces matching the current list.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from decimal import Decimal

from kiln.application.create_kit import build_components, ensure_unique_sku
from kiln.application.dto import KitComponentSpec, KitDTO
from kiln.application.mappers import kit_to_dto
from kiln.application.retry import DEFAULT_ATTEMPTS, retry_on_conflict
from kiln.application.variants import resolve_variant
from kiln.domain.exceptions import EntityNotFoundError
from kiln.domain.model.value_objects import Money
from kiln.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class UpdateKitHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._uow_factory = uow_factory
        self._max_attempts = max_attempts

    def handle(
        self,
        kit_id: int,
        name: str | None = None,
        price: str | Decimal | None = None,
        min_stock: int | None = None,
        max_stock: int | None = None,
        sku: str | None = None,
        description: str | None = None,
        is_active: bool | None = None,
        components: list[KitComponentSpec] | None = None,
    ) -> KitDTO:
        """Apply the given changes; ``None`` keeps the current value.

        Pass an empty string for ``sku`` or ``description`` to clear it.
        """
        return retry_on_conflict(
            lambda: self._update(
                kit_id,
                name,
                price,
                min_stock,
                max_stock,
                sku,
                description,
                is_active,
                components,
            ),
            self._max_attempts,
        )

    def _update(
        self,
        kit_id: int,
        name: str | None,
        price: str | Decimal | None,
        min_stock: int | None,
        max_stock: int | None,
        sku: str | None,
        description: str | None,
        is_active: bool | None,
        specs: list[KitComponentSpec] | None,
    ) -> KitDTO:
        with self._uow_factory() as uow:
            kit = uow.kits.get_for_update(kit_id)
            if kit is None:
                raise EntityNotFoundError(f"Kit #{kit_id} not found")

            kit.update_details(
                name=kit.name if name is None else name,
                price=kit.price if price is None else Money.of(price),
                min_stock=kit.min_stock if min_stock is None else min_stock,
                max_stock=kit.max_stock if max_stock is None else max_stock,
                is_active=kit.is_active if is_active is None else is_active,
                sku=kit.sku if sku is None else sku,
                description=kit.description if description is None else description,
            )
            ensure_unique_sku(uow.kits, kit)

            if specs is not None:
                components = build_components(uow.catalog, specs, require_active=False)
                # Lines the kit already had may reference discontinued entries.
                current = {c.variant for c in kit.components}
                for component in components:
                    if component.variant not in current:
                        v = component.variant
                        resolve_variant(
                            uow.catalog, v.product_id, v.size_id, v.color_id, require_active=True
                        )
                kit.replace_components(components)

            uow.kits.save(kit)
            result = kit_to_dto(uow.catalog, kit)
            uow.commit()

        logger.info("Updated kit #%d '%s'", kit_id, result.name)
        return result
