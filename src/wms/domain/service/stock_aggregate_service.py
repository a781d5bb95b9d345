"""Domain service: derive product and store aggregates from the shelf ledger.

Product quantities are recomputed from the live ShelfStock rows every
time; store-scoped reservable/committed counters move by deltas because
shelf rows do not know which store an order came from.

SET products hold no shelf stock. Their quantity is derived on demand
from their components and never stored.
"""

from __future__ import annotations

import logging

from wms.domain.exceptions import EntityNotFoundError
from wms.domain.model.product import Product, ProductStore
from wms.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class StockAggregateService:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def refresh(
        self,
        product_id: str,
        store_id: str | None = None,
        reserved_delta: int = 0,
        committed_delta: int = 0,
    ) -> Product:
        """Recompute a product's rollup and push it into its store listings.

        The deltas apply only to the listing in ``store_id``. Raises
        StockInvariantError if any rollup would be inconsistent.
        """
        product = self._uow.products.get_for_update(product_id)
        if product is None:
            raise EntityNotFoundError(f"Product '{product_id}' not found")

        stock = reserved = sellable = 0
        for row in self._uow.shelf_stocks.list_for_product(product_id):
            shelf = self._uow.shelves.get_by_id(row.shelf_id)
            if shelf is None or not shelf.is_active:
                continue
            stock += row.quantity
            reserved += row.reserved_quantity
            if shelf.is_sellable:
                sellable += row.available_quantity

        # A failed check aborts the caller's unit of work, so a partially
        # applied rollup is never committed.
        product.apply_rollup(stock, reserved, sellable)
        self._uow.products.save(product)
        for listing in self._uow.product_stores.list_for_product(product_id):
            if listing.store_id == store_id:
                listing.apply_rollup(stock, sellable, reserved_delta, committed_delta)
            else:
                listing.apply_rollup(stock, sellable)
            self._uow.product_stores.save(listing)

        logger.debug(
            "Rolled up product %s: stock=%d reserved=%d sellable=%d",
            product_id, stock, reserved, sellable,
        )
        return product

    def set_sellable_quantity(self, set_product_id: str) -> int:
        """min over components of floor(component sellable / component qty)."""
        components = self._uow.products.list_set_items(set_product_id)
        if not components:
            return 0
        quantities = []
        for component in components:
            product = self._uow.products.get_by_id(component.component_product_id)
            available = product.sellable_quantity if product else 0
            quantities.append(available // component.quantity)
        return max(0, min(quantities))

    def push_quantity(self, product: Product, listing: ProductStore) -> int:
        if product.is_set:
            return self.set_sellable_quantity(product.id)
        return listing.sellable_quantity
