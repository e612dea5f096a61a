"""Application service: Loss Analysis use case (query).

Aggregates firing losses per transition and product size. The
percentage is recomputed from the totals, not averaged across entries.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable

from kiln.application.dto import LossAnalysisRowDTO
from kiln.application.variants import variant_names
from kiln.domain.model.ledger import Stage, compute_loss_percentage
from kiln.domain.model.value_objects import VariantKey
from kiln.domain.repository.unit_of_work import UnitOfWork


class LossAnalysisHandler:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def handle(self, product_id: int | None = None) -> list[LossAnalysisRowDTO]:
        # (from_stage, to_stage, variant) -> [count, deducted, produced]
        totals: dict[tuple[Stage, Stage, VariantKey], list[int]] = defaultdict(lambda: [0, 0, 0])
        with self._uow_factory() as uow:
            for tx in uow.transactions.list_all():
                if tx.is_receipt:
                    continue
                if product_id is not None and tx.variant.product_id != product_id:
                    continue
                bucket = totals[(tx.from_stage, tx.to_stage, tx.variant)]  # type: ignore[index]
                bucket[0] += 1
                bucket[1] += tx.quantity_deducted
                bucket[2] += tx.quantity_produced

            rows = []
            for (source, target, variant), (count, deducted, produced) in sorted(
                totals.items(), key=lambda item: (item[0][0].order, *item[0][2].sort_key())
            ):
                names = variant_names(uow.catalog, variant)
                rows.append(
                    LossAnalysisRowDTO(
                        transition=f"{source.value} -> {target.value}",
                        product_name=names.product_name,
                        size_name=names.size_name,
                        transactions=count,
                        total_deducted=deducted,
                        total_produced=produced,
                        total_loss=deducted - produced,
                        loss_percentage=compute_loss_percentage(deducted, produced),
                    )
                )
        return rows
