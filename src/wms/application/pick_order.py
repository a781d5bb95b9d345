"""Application service: Pick Order use case.

Picking completion takes every reserved unit off its shelf with a
PICKING movement and moves it from the store's reservable count to its
committed count.
"""

from __future__ import annotations

import logging

from wms.application.dto import OrderDTO
from wms.domain.exceptions import EntityNotFoundError, ValidationError
from wms.domain.repository.unit_of_work import UnitOfWorkFactory
from wms.domain.service.order_reservation_service import OrderReservationService

logger = logging.getLogger(__name__)


class PickOrderHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self, order_id: str, user_id: str | None = None) -> OrderDTO:
        with self._uow_factory() as uow:
            order = uow.orders.get_for_update(order_id)
            if order is None:
                raise EntityNotFoundError(f"Order '{order_id}' not found")

            picked = OrderReservationService(uow).pick(order, user_id=user_id)
            if not picked:
                raise ValidationError(
                    f"Order {order.package_id} has no reserved items to pick "
                    f"(status {order.status.value})"
                )
            uow.orders.save(order)
            uow.commit()

        logger.info("Picked %d items of order %s", len(picked), order.id)
        return OrderDTO.from_order(order)
