"""Application service: Receive Stock use case.

Goods-in and customer returns put units on a shelf through the ledger,
which records the movement and queues marketplace updates.
"""

from __future__ import annotations

import logging

from wms.application.dto import MovementDTO
from wms.application.lookups import require_product, require_shelf
from wms.domain.exceptions import ValidationError
from wms.domain.model.stock_movement import MovementType
from wms.domain.model.value_objects import Quantity
from wms.domain.repository.unit_of_work import UnitOfWorkFactory
from wms.domain.service.shelf_stock_ledger import ShelfStockLedger

logger = logging.getLogger(__name__)

RECEIPT_TYPES = frozenset({MovementType.RECEIVING, MovementType.RETURN})


class ReceiveStockHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(
        self,
        shelf_ref: str,
        product_ref: str,
        quantity: int,
        movement_type: MovementType = MovementType.RECEIVING,
        reference_number: str | None = None,
        user_id: str | None = None,
    ) -> MovementDTO:
        Quantity(quantity)
        if movement_type not in RECEIPT_TYPES:
            raise ValidationError(f"{movement_type.value} is not a receipt movement")

        with self._uow_factory() as uow:
            shelf = require_shelf(uow, shelf_ref)
            product = require_product(uow, product_ref)
            if product.is_set:
                raise ValidationError(f"SET product {product.name} cannot be stocked directly")

            movement = ShelfStockLedger(uow).increment(
                shelf.id,
                product.id,
                quantity,
                movement_type,
                reference_number=reference_number,
                user_id=user_id,
            )
            uow.commit()

        logger.info(
            "Received %d x %s on shelf %s (%s)",
            quantity, product.barcode or product.id, shelf.barcode, movement_type.value,
        )
        return MovementDTO.from_movement(movement)
