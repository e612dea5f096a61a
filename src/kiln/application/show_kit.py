"""Application services: kit queries."""

from __future__ import annotations

from collections.abc import Callable

from kiln.application.adjust_kit_stock import reservation_service
from kiln.application.dto import ComponentAvailabilityDTO, KitDetailDTO, KitDTO
from kiln.application.mappers import adjustment_to_dto, kit_to_dto
from kiln.application.variants import variant_names
from kiln.domain.exceptions import EntityNotFoundError
from kiln.domain.repository.unit_of_work import UnitOfWork


class ShowKitHandler:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def handle(self, kit_id: int) -> KitDetailDTO:
        """Kit detail with how far current glazed stock backs it."""
        with self._uow_factory() as uow:
            kit = uow.kits.get_by_id(kit_id)
            if kit is None:
                raise EntityNotFoundError(f"Kit #{kit_id} not found")

            availability = reservation_service(uow).describe_availability(kit)
            return KitDetailDTO(
                kit=kit_to_dto(uow.catalog, kit),
                availability=[
                    ComponentAvailabilityDTO(
                        label=str(variant_names(uow.catalog, c.variant)),
                        per_kit=c.per_kit,
                        available=c.available,
                        held_by_stock=c.held_by_stock,
                        buildable_units=c.buildable_units,
                    )
                    for c in availability.components
                ],
                max_additional_units=availability.max_additional_units,
                is_below_min=kit.is_below_min,
                adjustments=[adjustment_to_dto(a) for a in uow.adjustments.list_for_kit(kit_id)],
            )


class ListKitsHandler:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def handle(self, active_only: bool = False) -> list[KitDTO]:
        with self._uow_factory() as uow:
            return [
                kit_to_dto(uow.catalog, kit)
                for kit in uow.kits.list_all()
                if kit.is_active or not active_only
            ]
