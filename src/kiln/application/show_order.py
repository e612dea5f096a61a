"""Application service: Show Order use case (query)."""

from __future__ import annotations

from collections.abc import Callable

from kiln.application.dto import OrderDTO
from kiln.application.mappers import order_to_dto
from kiln.domain.exceptions import EntityNotFoundError
from kiln.domain.repository.unit_of_work import UnitOfWork


class ShowOrderHandler:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def handle(self, order_id: int) -> OrderDTO:
        with self._uow_factory() as uow:
            order = uow.orders.get_by_id(order_id)
            if order is None:
                raise EntityNotFoundError(f"Order #{order_id} not found")
            return order_to_dto(order)
