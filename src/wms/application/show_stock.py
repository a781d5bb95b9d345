"""Application service: Show Stock use case (query)."""

from __future__ import annotations

from wms.application.dto import MovementDTO, ProductStockDTO, ShelfStockLineDTO
from wms.application.lookups import require_product
from wms.domain.repository.unit_of_work import UnitOfWorkFactory


class ShowStockHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self, product_ref: str) -> ProductStockDTO:
        with self._uow_factory() as uow:
            product = require_product(uow, product_ref)
            lines = []
            for row in uow.shelf_stocks.list_for_product(product.id):
                shelf = uow.shelves.get_by_id(row.shelf_id)
                lines.append(
                    ShelfStockLineDTO(
                        shelf_barcode=shelf.barcode if shelf else row.shelf_id,
                        shelf_type=shelf.type.value if shelf else "?",
                        quantity=row.quantity,
                        reserved=row.reserved_quantity,
                        available=row.available_quantity,
                    )
                )
            return ProductStockDTO(
                product_id=product.id,
                product_name=product.name,
                barcode=product.barcode,
                stock=product.stock_quantity,
                reserved=product.reserved_quantity,
                sellable=product.sellable_quantity,
                shelves=sorted(lines, key=lambda line: line.shelf_barcode),
            )

    def movements(self, product_ref: str, limit: int | None = 50) -> list[MovementDTO]:
        with self._uow_factory() as uow:
            product = require_product(uow, product_ref)
            rows = uow.movements.list(product_id=product.id)
            if limit is not None:
                rows = rows[-limit:]
            return [MovementDTO.from_movement(m) for m in rows]
