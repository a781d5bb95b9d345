"""Resolve operator-supplied references to aggregates.

Operators type barcodes; scripts pass IDs. Both are accepted.
"""

from __future__ import annotations

from wms.domain.exceptions import EntityNotFoundError
from wms.domain.model.product import Product
from wms.domain.model.shelf import Shelf
from wms.domain.model.store import Store
from wms.domain.repository.unit_of_work import UnitOfWork


def require_shelf(uow: UnitOfWork, ref: str) -> Shelf:
    shelf = uow.shelves.get_by_barcode(ref) or uow.shelves.get_by_id(ref)
    if shelf is None:
        raise EntityNotFoundError(f"Shelf '{ref}' not found")
    return shelf


def require_product(uow: UnitOfWork, ref: str) -> Product:
    product = (
        uow.products.get_by_barcode(ref)
        or uow.products.get_by_id(ref)
        or uow.products.get_by_sku(ref)
    )
    if product is None:
        raise EntityNotFoundError(f"Product '{ref}' not found")
    return product


def require_store(uow: UnitOfWork, store_id: str) -> Store:
    store = uow.stores.get_by_id(store_id)
    if store is None:
        raise EntityNotFoundError(f"Store '{store_id}' not found")
    return store
