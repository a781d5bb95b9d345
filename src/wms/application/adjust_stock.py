"""Application service: Adjust Stock use case.

Count corrections. A positive delta adds units, a negative one removes
unreserved units only, so a correction can never eat into stock that
is already promised to an order.
"""

from __future__ import annotations

import logging

from wms.application.dto import MovementDTO
from wms.application.lookups import require_product, require_shelf
from wms.domain.exceptions import ValidationError
from wms.domain.model.stock_movement import MovementType
from wms.domain.repository.unit_of_work import UnitOfWorkFactory
from wms.domain.service.shelf_stock_ledger import ShelfStockLedger

logger = logging.getLogger(__name__)


class AdjustStockHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(
        self,
        shelf_ref: str,
        product_ref: str,
        delta: int,
        notes: str | None = None,
        user_id: str | None = None,
    ) -> MovementDTO:
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise ValidationError("Adjustment must be a non-zero integer")

        with self._uow_factory() as uow:
            shelf = require_shelf(uow, shelf_ref)
            product = require_product(uow, product_ref)
            ledger = ShelfStockLedger(uow)
            if delta > 0:
                movement = ledger.increment(
                    shelf.id, product.id, delta, MovementType.ADJUSTMENT,
                    notes=notes, user_id=user_id,
                )
            else:
                movement = ledger.decrement(
                    shelf.id, product.id, -delta, MovementType.ADJUSTMENT,
                    consume_reservation=False, notes=notes, user_id=user_id,
                )
            uow.commit()

        logger.info("Adjusted %s on shelf %s by %+d", product.barcode or product.id, shelf.barcode, delta)
        return MovementDTO.from_movement(movement)
