"""Application service: Transfer Stock use case."""

from __future__ import annotations

import logging

from wms.application.dto import MovementDTO
from wms.application.lookups import require_product, require_shelf
from wms.domain.model.value_objects import Quantity
from wms.domain.repository.unit_of_work import UnitOfWorkFactory
from wms.domain.service.shelf_stock_ledger import ShelfStockLedger

logger = logging.getLogger(__name__)


class TransferStockHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(
        self,
        source_ref: str,
        target_ref: str,
        product_ref: str,
        quantity: int,
        notes: str | None = None,
        user_id: str | None = None,
    ) -> tuple[MovementDTO, MovementDTO]:
        """Move unreserved units; both halves commit or neither does."""
        Quantity(quantity)
        with self._uow_factory() as uow:
            source = require_shelf(uow, source_ref)
            target = require_shelf(uow, target_ref)
            product = require_product(uow, product_ref)

            out, inbound = ShelfStockLedger(uow).transfer(
                source.id, target.id, product.id, quantity, notes=notes, user_id=user_id,
            )
            uow.commit()

        logger.info(
            "Transferred %d x %s from %s to %s",
            quantity, product.barcode or product.id, source.barcode, target.barcode,
        )
        return MovementDTO.from_movement(out), MovementDTO.from_movement(inbound)
