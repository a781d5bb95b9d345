"""Application service: Cancel Order use case.

RESERVED items give their reservations back; COMMITTED (already picked)
items are put back on a return shelf with a CANCEL movement; UNRESERVED
items simply transition. Shipped items are preserved as a historical
record and block nothing.
"""

from __future__ import annotations

import logging

from wms.application.dto import OrderDTO
from wms.application.lookups import require_shelf
from wms.domain.exceptions import EntityNotFoundError
from wms.domain.repository.unit_of_work import UnitOfWorkFactory
from wms.domain.service.order_reservation_service import OrderReservationService

logger = logging.getLogger(__name__)


class CancelOrderHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(
        self,
        order_id: str,
        reason: str | None = None,
        return_shelf_ref: str | None = None,
        user_id: str | None = None,
    ) -> OrderDTO:
        with self._uow_factory() as uow:
            order = uow.orders.get_for_update(order_id)
            if order is None:
                raise EntityNotFoundError(f"Order '{order_id}' not found")

            return_shelf_id = require_shelf(uow, return_shelf_ref).id if return_shelf_ref else None
            cancelled = OrderReservationService(uow).cancel(
                order, reason=reason, return_shelf_id=return_shelf_id, user_id=user_id,
            )
            uow.orders.save(order)
            uow.commit()

        logger.info(
            "Cancelled %d items of order %s (package %s)",
            len(cancelled), order.id, order.package_id,
        )
        return OrderDTO.from_order(order)
