"""Application service: Show Order use case (query)."""

from __future__ import annotations

from wms.application.dto import OrderDTO
from wms.domain.exceptions import EntityNotFoundError
from wms.domain.repository.unit_of_work import UnitOfWorkFactory


class ShowOrderHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self, order_ref: str) -> OrderDTO:
        """Look an order up by ID, falling back to its package id."""
        with self._uow_factory() as uow:
            order = uow.orders.get_by_id(order_ref) or uow.orders.get_by_package_id(order_ref)
            if order is None:
                raise EntityNotFoundError(f"Order '{order_ref}' not found")
            return OrderDTO.from_order(order)
