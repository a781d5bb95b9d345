"""Application service: Add Shelf use case."""

from __future__ import annotations

from wms.domain.exceptions import ValidationError
from wms.domain.model.shelf import Shelf, ShelfType
from wms.domain.repository.unit_of_work import UnitOfWorkFactory


class AddShelfHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(
        self,
        name: str,
        barcode: str,
        shelf_type: ShelfType = ShelfType.NORMAL,
        sort_order: int = 0,
        global_slot: int | None = None,
        warehouse_id: str | None = None,
        is_sellable: bool | None = None,
        is_reservable: bool = True,
    ) -> Shelf:
        with self._uow_factory() as uow:
            if uow.shelves.get_by_barcode(barcode) is not None:
                raise ValidationError(f"Shelf barcode '{barcode}' is already in use")
            shelf = Shelf.create(
                name,
                barcode,
                shelf_type,
                sort_order=sort_order,
                global_slot=global_slot,
                warehouse_id=warehouse_id,
                is_sellable=is_sellable,
                is_reservable=is_reservable,
            )
            uow.shelves.save(shelf)
            uow.commit()
        return shelf
