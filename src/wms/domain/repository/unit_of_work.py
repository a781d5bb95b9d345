"""Unit of Work: the transactional boundary around every use case.

Handlers open one unit of work per request, do their reads and locked
writes through its repositories, and call ``commit()``. Leaving the
block without committing, or with an exception, rolls everything back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from wms.domain.repository.order_repository import (
    FaultyOrderRepository,
    OrderRepository,
)
from wms.domain.repository.product_repository import (
    ProductRepository,
    ProductStoreRepository,
)
from wms.domain.repository.shelf_repository import (
    ShelfRepository,
    ShelfStockRepository,
)
from wms.domain.repository.stock_movement_repository import StockMovementRepository
from wms.domain.repository.stock_sync_repository import (
    StockSyncLogRepository,
    StockUpdateQueueRepository,
)
from wms.domain.repository.store_repository import StoreRepository
from wms.domain.repository.waybill_repository import (
    SequenceRepository,
    WaybillRepository,
)


class UnitOfWork(ABC):
    shelves: ShelfRepository
    shelf_stocks: ShelfStockRepository
    movements: StockMovementRepository
    products: ProductRepository
    product_stores: ProductStoreRepository
    stores: StoreRepository
    orders: OrderRepository
    faulty_orders: FaultyOrderRepository
    stock_queue: StockUpdateQueueRepository
    sync_logs: StockSyncLogRepository
    waybills: WaybillRepository
    sequences: SequenceRepository

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(self, *args) -> None:
        self.rollback()

    @abstractmethod
    def commit(self) -> None:
        """Make every change of this unit of work durable."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard uncommitted changes. Safe to call after commit."""


UnitOfWorkFactory = Callable[[], UnitOfWork]
