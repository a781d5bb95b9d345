"""SQLAlchemy implementations of the domain repositories.

All repositories share the unit of work's session and never commit.
Locking reads use ``SELECT ... FOR UPDATE`` with ``populate_existing``
so the identity map cannot hand back a stale copy of a locked row.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wms.domain.exceptions import DuplicatePackageError, DuplicateWaybillNumberError
from wms.domain.model.faulty_order import FaultyOrder
from wms.domain.model.order import Order
from wms.domain.model.product import Product, ProductSetItem, ProductStore
from wms.domain.model.shelf import Shelf, ShelfStock, ShelfType
from wms.domain.model.stock_movement import StockMovement
from wms.domain.model.stock_sync import (
    QueueStatus,
    StockSyncLog,
    StockUpdateQueueItem,
    SyncStatus,
)
from wms.domain.model.store import Store
from wms.domain.model.waybill import Waybill
from wms.domain.repository.order_repository import FaultyOrderRepository, OrderRepository
from wms.domain.repository.product_repository import (
    ProductRepository,
    ProductStoreRepository,
)
from wms.domain.repository.shelf_repository import ShelfRepository, ShelfStockRepository
from wms.domain.repository.stock_movement_repository import StockMovementRepository
from wms.domain.repository.stock_sync_repository import (
    StockSyncLogRepository,
    StockUpdateQueueRepository,
)
from wms.domain.repository.store_repository import StoreRepository
from wms.domain.repository.waybill_repository import SequenceRepository, WaybillRepository
from wms.infrastructure.persistence.orm import (
    faulty_orders,
    orders,
    product_set_items,
    product_stores,
    products,
    sequence_counters,
    shelf_stock_movements,
    shelf_stocks,
    shelves,
    stock_sync_logs,
    stock_update_queue,
    stores,
    waybills,
)

logger = logging.getLogger(__name__)


class _SessionRepository:

    def __init__(self, session: Session) -> None:
        self._session = session


# --- Shelves ------------------------------------------------------------------


class SqlAlchemyShelfRepository(_SessionRepository, ShelfRepository):

    def get_by_id(self, shelf_id: str) -> Shelf | None:
        return self._session.get(Shelf, shelf_id)

    def get_by_barcode(self, barcode: str) -> Shelf | None:
        stmt = select(Shelf).where(shelves.c.barcode == barcode)
        return self._session.scalars(stmt).one_or_none()

    def list_by_type(self, shelf_type: ShelfType) -> list[Shelf]:
        stmt = (
            select(Shelf)
            .where(shelves.c.type == shelf_type, shelves.c.is_active.is_(True))
            .order_by(shelves.c.sort_order, shelves.c.barcode)
        )
        return list(self._session.scalars(stmt))

    def list_all(self) -> list[Shelf]:
        return list(self._session.scalars(select(Shelf).order_by(shelves.c.barcode)))

    def save(self, shelf: Shelf) -> None:
        self._session.add(shelf)


class SqlAlchemyShelfStockRepository(_SessionRepository, ShelfStockRepository):

    def get_for_update(self, shelf_id: str, product_id: str) -> ShelfStock | None:
        stmt = (
            select(ShelfStock)
            .where(
                shelf_stocks.c.shelf_id == shelf_id,
                shelf_stocks.c.product_id == product_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.scalars(stmt).one_or_none()

    def list_for_product(self, product_id: str) -> list[ShelfStock]:
        stmt = select(ShelfStock).where(
            shelf_stocks.c.product_id == product_id,
            shelf_stocks.c.deleted_at.is_(None),
        )
        return list(self._session.scalars(stmt))

    def list_for_shelf(self, shelf_id: str) -> list[ShelfStock]:
        stmt = select(ShelfStock).where(
            shelf_stocks.c.shelf_id == shelf_id,
            shelf_stocks.c.deleted_at.is_(None),
        )
        return list(self._session.scalars(stmt))

    def add(self, stock: ShelfStock) -> None:
        self._session.add(stock)
        self._session.flush()

    def save(self, stock: ShelfStock) -> None:
        self._session.add(stock)


class SqlAlchemyStockMovementRepository(_SessionRepository, StockMovementRepository):

    def add(self, movement: StockMovement) -> None:
        self._session.add(movement)

    def list(
        self,
        product_id: str | None = None,
        shelf_id: str | None = None,
        order_id: str | None = None,
        limit: int | None = None,
    ) -> list[StockMovement]:
        stmt = select(StockMovement)
        if product_id is not None:
            stmt = stmt.where(shelf_stock_movements.c.product_id == product_id)
        if shelf_id is not None:
            stmt = stmt.where(shelf_stock_movements.c.shelf_id == shelf_id)
        if order_id is not None:
            stmt = stmt.where(shelf_stock_movements.c.order_id == order_id)
        stmt = stmt.order_by(shelf_stock_movements.c.created_at)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self._session.scalars(stmt))


# --- Catalog ------------------------------------------------------------------


class SqlAlchemyProductRepository(_SessionRepository, ProductRepository):

    def get_by_id(self, product_id: str) -> Product | None:
        return self._session.get(Product, product_id)

    def get_for_update(self, product_id: str) -> Product | None:
        stmt = (
            select(Product)
            .where(products.c.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.scalars(stmt).one_or_none()

    def get_by_barcode(self, barcode: str) -> Product | None:
        stmt = select(Product).where(products.c.barcode == barcode)
        return self._session.scalars(stmt).one_or_none()

    def get_by_sku(self, sku: str) -> Product | None:
        stmt = select(Product).where(products.c.sku == sku).limit(1)
        return self._session.scalars(stmt).first()

    def list_all(self) -> list[Product]:
        return list(self._session.scalars(select(Product).order_by(products.c.name)))

    def save(self, product: Product) -> None:
        self._session.add(product)

    def list_set_items(self, set_product_id: str) -> list[ProductSetItem]:
        stmt = (
            select(ProductSetItem)
            .where(product_set_items.c.set_product_id == set_product_id)
            .order_by(product_set_items.c.sort_order)
        )
        return list(self._session.scalars(stmt))

    def list_parent_set_ids(self, component_product_id: str) -> list[str]:
        stmt = (
            select(product_set_items.c.set_product_id)
            .where(product_set_items.c.component_product_id == component_product_id)
            .distinct()
        )
        return list(self._session.scalars(stmt))

    def add_set_item(self, item: ProductSetItem) -> None:
        self._session.add(item)


class SqlAlchemyProductStoreRepository(_SessionRepository, ProductStoreRepository):

    def get(self, product_id: str, store_id: str) -> ProductStore | None:
        stmt = select(ProductStore).where(
            product_stores.c.product_id == product_id,
            product_stores.c.store_id == store_id,
        )
        return self._session.scalars(stmt).one_or_none()

    def list_for_product(self, product_id: str) -> list[ProductStore]:
        stmt = (
            select(ProductStore)
            .where(product_stores.c.product_id == product_id)
            .order_by(product_stores.c.store_id)
        )
        return list(self._session.scalars(stmt))

    def save(self, product_store: ProductStore) -> None:
        self._session.add(product_store)


class SqlAlchemyStoreRepository(_SessionRepository, StoreRepository):

    def get_by_id(self, store_id: str) -> Store | None:
        return self._session.get(Store, store_id)

    def list_all(self) -> list[Store]:
        return list(self._session.scalars(select(Store).order_by(stores.c.id)))

    def save(self, store: Store) -> None:
        self._session.add(store)


# --- Orders -------------------------------------------------------------------


class SqlAlchemyOrderRepository(_SessionRepository, OrderRepository):

    def get_by_id(self, order_id: str) -> Order | None:
        return self._session.get(Order, order_id)

    def get_for_update(self, order_id: str) -> Order | None:
        stmt = (
            select(Order)
            .where(orders.c.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.scalars(stmt).one_or_none()

    def get_by_package_id(self, package_id: str) -> Order | None:
        stmt = select(Order).where(orders.c.package_id == package_id)
        return self._session.scalars(stmt).one_or_none()

    def add(self, order: Order) -> None:
        try:
            with self._session.begin_nested():
                self._session.add(order)
                self._session.flush()
        except IntegrityError as exc:
            raise DuplicatePackageError(order.package_id) from exc

    def save(self, order: Order) -> None:
        self._session.add(order)


class SqlAlchemyFaultyOrderRepository(_SessionRepository, FaultyOrderRepository):

    def get_by_id(self, faulty_order_id: str) -> FaultyOrder | None:
        return self._session.get(FaultyOrder, faulty_order_id)

    def get_by_package_id(self, package_id: str) -> FaultyOrder | None:
        stmt = select(FaultyOrder).where(faulty_orders.c.package_id == package_id)
        return self._session.scalars(stmt).one_or_none()

    def add(self, faulty_order: FaultyOrder) -> None:
        try:
            with self._session.begin_nested():
                self._session.add(faulty_order)
                self._session.flush()
        except IntegrityError as exc:
            raise DuplicatePackageError(faulty_order.package_id) from exc

    def save(self, faulty_order: FaultyOrder) -> None:
        self._session.add(faulty_order)

    def delete(self, faulty_order: FaultyOrder) -> None:
        self._session.delete(faulty_order)
        self._session.flush()

    def list(
        self,
        store_id: str | None = None,
        barcode: str | None = None,
    ) -> list[FaultyOrder]:
        stmt = select(FaultyOrder).order_by(faulty_orders.c.created_at.desc())
        if store_id is not None:
            stmt = stmt.where(faulty_orders.c.store_id == store_id)
        rows = list(self._session.scalars(stmt))
        if barcode is not None:
            # JSON containment differs per backend; the table is small.
            rows = [f for f in rows if barcode in (f.missing_barcodes or [])]
        return rows


# --- Stock sync ---------------------------------------------------------------


class SqlAlchemyStockUpdateQueueRepository(_SessionRepository, StockUpdateQueueRepository):

    def add(self, item: StockUpdateQueueItem) -> None:
        self._session.add(item)

    def get_by_id(self, item_id: str) -> StockUpdateQueueItem | None:
        return self._session.get(StockUpdateQueueItem, item_id)

    def lock_pending(self, limit: int) -> list[StockUpdateQueueItem]:
        stmt = (
            select(StockUpdateQueueItem)
            .where(stock_update_queue.c.status == QueueStatus.PENDING)
            .order_by(
                stock_update_queue.c.priority.desc(),
                stock_update_queue.c.created_at,
            )
            .limit(limit)
            .with_for_update(skip_locked=True)
            .execution_options(populate_existing=True)
        )
        return list(self._session.scalars(stmt))

    def list_by_status(self, status: QueueStatus) -> list[StockUpdateQueueItem]:
        stmt = (
            select(StockUpdateQueueItem)
            .where(stock_update_queue.c.status == status)
            .order_by(stock_update_queue.c.created_at)
        )
        return list(self._session.scalars(stmt))

    def list_stale_claims(self, claimed_before: datetime) -> list[StockUpdateQueueItem]:
        stmt = (
            select(StockUpdateQueueItem)
            .where(
                stock_update_queue.c.status == QueueStatus.PROCESSING,
                stock_update_queue.c.claimed_at < claimed_before,
            )
            .with_for_update(skip_locked=True)
        )
        return list(self._session.scalars(stmt))

    def save(self, item: StockUpdateQueueItem) -> None:
        self._session.add(item)


class SqlAlchemyStockSyncLogRepository(_SessionRepository, StockSyncLogRepository):

    def add(self, log: StockSyncLog) -> None:
        self._session.add(log)

    def get_by_id(self, log_id: str) -> StockSyncLog | None:
        return self._session.get(StockSyncLog, log_id)

    def save(self, log: StockSyncLog) -> None:
        self._session.add(log)

    def list(
        self,
        store_id: str | None = None,
        status: SyncStatus | None = None,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[StockSyncLog]:
        stmt = select(StockSyncLog).order_by(stock_sync_logs.c.created_at.desc())
        if store_id is not None:
            stmt = stmt.where(stock_sync_logs.c.store_id == store_id)
        if status is not None:
            stmt = stmt.where(stock_sync_logs.c.sync_status == status)
        if since is not None:
            stmt = stmt.where(stock_sync_logs.c.created_at >= since)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self._session.scalars(stmt))


# --- Waybills -----------------------------------------------------------------


class SqlAlchemyWaybillRepository(_SessionRepository, WaybillRepository):

    def get_by_number(self, waybill_number: str) -> Waybill | None:
        stmt = select(Waybill).where(waybills.c.waybill_number == waybill_number)
        return self._session.scalars(stmt).one_or_none()

    def add(self, waybill: Waybill) -> None:
        try:
            with self._session.begin_nested():
                self._session.add(waybill)
                self._session.flush()
        except IntegrityError as exc:
            raise DuplicateWaybillNumberError(waybill.waybill_number) from exc

    def list_for_prefix(self, prefix: str) -> list[Waybill]:
        stmt = (
            select(Waybill)
            .where(waybills.c.waybill_number.startswith(prefix, autoescape=True))
            .order_by(waybills.c.waybill_number)
        )
        return list(self._session.scalars(stmt))


class SqlAlchemySequenceRepository(_SessionRepository, SequenceRepository):
    """Named counters in ``sequence_counters``, one locked row per name.

    The counter row is the only source of the next value; aggregate
    max-plus-one queries are never used.
    """

    def next_value(self, name: str) -> int:
        current = self._lock(name)
        value = current + 1
        self._session.execute(
            update(sequence_counters)
            .where(sequence_counters.c.name == name)
            .values(current_value=value)
        )
        logger.debug("Allocated %s = %d", name, value)
        return value

    def ensure_at_least(self, name: str, value: int) -> None:
        if self._lock(name) < value:
            self._session.execute(
                update(sequence_counters)
                .where(sequence_counters.c.name == name)
                .values(current_value=value)
            )

    def _lock(self, name: str) -> int:
        """Lock the counter row, creating it at zero on first use."""
        stmt = (
            select(sequence_counters.c.current_value)
            .where(sequence_counters.c.name == name)
            .with_for_update()
        )
        current = self._session.execute(stmt).scalar_one_or_none()
        if current is not None:
            return current
        try:
            # Savepoint so a lost creation race keeps the rest of the transaction.
            with self._session.begin_nested():
                self._session.execute(
                    insert(sequence_counters).values(name=name, current_value=0)
                )
            return 0
        except IntegrityError:
            logger.debug("Counter %s created concurrently, re-reading", name)
            return self._session.execute(stmt).scalar_one()
