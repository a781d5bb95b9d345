"""Application service: Decommission Shelf use case."""

from __future__ import annotations

from wms.application.lookups import require_shelf
from wms.domain.model.shelf import Shelf
from wms.domain.repository.unit_of_work import UnitOfWorkFactory
from wms.domain.service.shelf_stock_ledger import ShelfStockLedger


class DecommissionShelfHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self, shelf_ref: str) -> Shelf:
        with self._uow_factory() as uow:
            shelf = require_shelf(uow, shelf_ref)
            shelf = ShelfStockLedger(uow).decommission_shelf(shelf.id)
            uow.commit()
        return shelf
