"""Application service: Create Order use case.

Orchestrates the flow between repositories and the domain model.
Creating an order only snapshots kit prices; kit stock is consumed on
confirmation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from kiln.application.dto import OrderDTO, OrderItemSpec
from kiln.application.mappers import order_to_dto
from kiln.application.retry import DEFAULT_ATTEMPTS, retry_on_conflict
from kiln.domain.exceptions import EntityNotFoundError, ValidationError
from kiln.domain.model.order import Order, OrderLineItem
from kiln.domain.model.value_objects import Quantity
from kiln.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class CreateOrderHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._uow_factory = uow_factory
        self._max_attempts = max_attempts

    def handle(self, customer_name: str, item_specs: list[OrderItemSpec]) -> OrderDTO:
        """Create a new DRAFT order.

        Steps:
        1. Resolve each kit ID to an active Kit (fail if not found).
        2. Build OrderLineItems with *current* kit prices (snapshot).
        3. Let the Order aggregate validate all business rules.
        4. Persist and return a DTO.
        """
        return retry_on_conflict(
            lambda: self._create(customer_name, item_specs), self._max_attempts
        )

    def _create(self, customer_name: str, item_specs: list[OrderItemSpec]) -> OrderDTO:
        with self._uow_factory() as uow:
            line_items: list[OrderLineItem] = []
            for spec in item_specs:
                kit = uow.kits.get_by_id(spec.kit_id)
                if kit is None:
                    raise EntityNotFoundError(f"Kit #{spec.kit_id} not found")
                if not kit.is_active:
                    raise ValidationError(f"Kit '{kit.name}' is not active")

                line_items.append(
                    OrderLineItem(
                        kit_id=kit.id,  # type: ignore[arg-type]
                        kit_name=kit.name,
                        quantity=Quantity(spec.quantity),
                        unit_price=kit.price,  # <-- price snapshot
                    )
                )

            order = Order.create(customer_name=customer_name, items=line_items)
            uow.orders.save(order)
            result = order_to_dto(order)
            uow.commit()

        logger.info("Created order #%s for '%s'", order.id, order.customer_name)
        return result
