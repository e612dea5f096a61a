"""Application service: Show Balances use case (query)."""

from __future__ import annotations

from collections.abc import Callable

from kiln.application.dto import BalanceDTO, BalanceListDTO
from kiln.application.mappers import balance_to_dto
from kiln.application.record_transition import parse_stage
from kiln.application.variants import resolve_variant, variant_names
from kiln.domain.model.ledger import Stage
from kiln.domain.repository.unit_of_work import UnitOfWork
from kiln.domain.service.stage_ledger import StageLedger


class ShowBalancesHandler:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def handle(
        self,
        stage: str | Stage,
        product_id: int | None = None,
        include_empty: bool = False,
    ) -> BalanceListDTO:
        """List one stage's balances, hiding zero quantities by default."""
        stage = parse_stage(stage)
        with self._uow_factory() as uow:
            balances = StageLedger(uow.balances).list_balances(stage, include_empty=include_empty)
            items = [
                balance_to_dto(uow.catalog, b)
                for b in balances
                if product_id is None or b.variant.product_id == product_id
            ]
        return BalanceListDTO(
            stage=stage.value,
            items=items,
            total_items=len(items),
            total_quantity=sum(item.quantity for item in items),
        )

    def for_variant(self, product_id: int, size_id: int) -> list[BalanceDTO]:
        """Every stage's balance for one product size, glaze split by color."""
        with self._uow_factory() as uow:
            variant = resolve_variant(uow.catalog, product_id, size_id)
            rows = [
                balance_to_dto(uow.catalog, b)
                for b in uow.balances.list_all()
                if b.variant.without_color() == variant
            ]
            names = variant_names(uow.catalog, variant)
            present = {row.stage for row in rows if row.color_id is None}
            for stage in (Stage.RAW, Stage.BISQUE):
                if stage.value not in present:
                    rows.append(
                        BalanceDTO(
                            product_id=product_id,
                            product_name=names.product_name,
                            size_id=size_id,
                            size_name=names.size_name,
                            color_id=None,
                            color_name=None,
                            stage=stage.value,
                            quantity=0,
                        )
                    )
        order = {s.value: s.order for s in Stage}
        return sorted(rows, key=lambda r: (order[r.stage], r.color_name or ""))
