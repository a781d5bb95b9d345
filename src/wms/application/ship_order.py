"""Application service: Ship Order use case."""

from __future__ import annotations

import logging

from wms.application.dto import OrderDTO
from wms.domain.exceptions import EntityNotFoundError, ValidationError
from wms.domain.repository.unit_of_work import UnitOfWorkFactory
from wms.domain.service.order_reservation_service import OrderReservationService

logger = logging.getLogger(__name__)


class ShipOrderHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self, order_id: str, cargo_tracking_number: str | None = None) -> OrderDTO:
        with self._uow_factory() as uow:
            order = uow.orders.get_for_update(order_id)
            if order is None:
                raise EntityNotFoundError(f"Order '{order_id}' not found")

            shipped = OrderReservationService(uow).ship(order)
            if not shipped:
                raise ValidationError(
                    f"Order {order.package_id} has no picked items to ship "
                    f"(status {order.status.value})"
                )
            if cargo_tracking_number:
                order.cargo_tracking_number = cargo_tracking_number
            uow.orders.save(order)
            uow.commit()

        logger.info("Shipped %d items of order %s", len(shipped), order.id)
        return OrderDTO.from_order(order)
