"""Turn stock changes into StockUpdateQueue rows.

Enqueueing is a plain insert. Duplicate rows for the same
(product, store) pair are expected and coalesced by the batcher.
"""

from __future__ import annotations

from wms.domain.model.stock_sync import StockUpdateQueueItem, StockUpdateReason
from wms.domain.repository.unit_of_work import UnitOfWork


class StockUpdateEnqueuer:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def enqueue(self, product_id: str, reason: StockUpdateReason) -> list[StockUpdateQueueItem]:
        """Queue the product and every SET containing it, for each active listing."""
        product_ids = [product_id, *self._uow.products.list_parent_set_ids(product_id)]
        queued = []
        for pid in product_ids:
            for listing in self._uow.product_stores.list_for_product(pid):
                if listing.is_active:
                    queued.append(self.enqueue_for_store(pid, listing.store_id, reason))
        return queued

    def enqueue_for_store(
        self,
        product_id: str,
        store_id: str,
        reason: StockUpdateReason,
    ) -> StockUpdateQueueItem:
        item = StockUpdateQueueItem(product_id=product_id, store_id=store_id, reason=reason)
        self._uow.stock_queue.add(item)
        return item
