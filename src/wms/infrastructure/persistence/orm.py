"""Table definitions and classical mapping of the domain model.

The domain dataclasses know nothing about SQLAlchemy; ``start_mappers()``
maps them imperatively onto the tables below. Enums are stored as their
string names, money as Numeric(10, 2), timestamps as naive UTC.
"""

from __future__ import annotations

from datetime import timezone

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import registry, relationship

from wms.domain.model.faulty_order import FaultyOrder, FaultyOrderReason
from wms.domain.model.order import ItemStatus, Order, OrderItem, OrderStatus
from wms.domain.model.product import Product, ProductSetItem, ProductStore, ProductType
from wms.domain.model.shelf import Shelf, ShelfStock, ShelfType
from wms.domain.model.stock_movement import (
    MovementDirection,
    MovementType,
    StockMovement,
)
from wms.domain.model.stock_sync import (
    QueueStatus,
    StockSyncLog,
    StockUpdateQueueItem,
    StockUpdateReason,
    SyncStatus,
)
from wms.domain.model.store import MarketplaceProvider, Store
from wms.domain.model.waybill import Waybill, WaybillStatus, WaybillType


class UTCDateTime(TypeDecorator):
    """Aware UTC datetimes in Python, naive UTC in the database."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


def _enum(enum_cls) -> Enum:
    return Enum(enum_cls, native_enum=False, length=32, validate_strings=True)


def _money() -> Numeric:
    return Numeric(10, 2, asdecimal=True)


_ID = String(36)

metadata = MetaData()
mapper_registry = registry(metadata=metadata)


# --- Shelves ------------------------------------------------------------------

shelves = Table(
    "shelves",
    metadata,
    Column("id", _ID, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("barcode", String(100), nullable=False, unique=True),
    Column("type", _enum(ShelfType), nullable=False),
    Column("warehouse_id", _ID),
    Column("global_slot", Integer),
    Column("sort_order", Integer, nullable=False, default=0),
    Column("is_sellable", Boolean, nullable=False),
    Column("is_reservable", Boolean, nullable=False),
    Column("is_active", Boolean, nullable=False),
)

shelf_stocks = Table(
    "shelf_stocks",
    metadata,
    Column("id", _ID, primary_key=True),
    Column("shelf_id", _ID, ForeignKey("shelves.id"), nullable=False),
    Column("product_id", _ID, ForeignKey("products.id"), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("reserved_quantity", Integer, nullable=False),
    Column("created_at", UTCDateTime, nullable=False),
    Column("deleted_at", UTCDateTime),
    UniqueConstraint("shelf_id", "product_id", name="uq_shelf_stocks_shelf_product"),
    Index("ix_shelf_stocks_product", "product_id"),
)

shelf_stock_movements = Table(
    "shelf_stock_movements",
    metadata,
    Column("id", _ID, primary_key=True),
    Column("shelf_id", _ID, ForeignKey("shelves.id"), nullable=False),
    Column("product_id", _ID, ForeignKey("products.id"), nullable=False),
    Column("type", _enum(MovementType), nullable=False),
    Column("direction", _enum(MovementDirection), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("quantity_before", Integer, nullable=False),
    Column("quantity_after", Integer, nullable=False),
    Column("order_id", _ID),
    Column("route_id", _ID),
    Column("source_shelf_id", _ID),
    Column("target_shelf_id", _ID),
    Column("reference_number", String(100)),
    Column("notes", Text),
    Column("user_id", String(64)),
    Column("created_at", UTCDateTime, nullable=False),
    Index("ix_movements_product_created", "product_id", "created_at"),
    Index("ix_movements_order", "order_id"),
)

# --- Catalog ------------------------------------------------------------------

products = Table(
    "products",
    metadata,
    Column("id", _ID, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("barcode", String(100), unique=True),
    Column("sku", String(100), index=True),
    Column("product_type", _enum(ProductType), nullable=False),
    Column("price", _money(), nullable=False),
    Column("stock_quantity", Integer, nullable=False),
    Column("sellable_quantity", Integer, nullable=False),
    Column("reserved_quantity", Integer, nullable=False),
)

product_set_items = Table(
    "product_set_items",
    metadata,
    Column("id", _ID, primary_key=True),
    Column("set_product_id", _ID, ForeignKey("products.id"), nullable=False),
    Column("component_product_id", _ID, ForeignKey("products.id"), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("price_share", _money(), nullable=False),
    Column("sort_order", Integer, nullable=False),
    UniqueConstraint("set_product_id", "component_product_id", name="uq_set_component"),
    Index("ix_set_items_component", "component_product_id"),
)

stores = Table(
    "stores",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("provider", _enum(MarketplaceProvider), nullable=False),
    Column("seller_id", String(64)),
    Column("api_key", String(255)),
    Column("api_secret", String(255)),
    Column("integration_id", String(64)),
    Column("is_active", Boolean, nullable=False),
    Column("send_stock", Boolean, nullable=False),
)

product_stores = Table(
    "product_stores",
    metadata,
    Column("id", _ID, primary_key=True),
    Column("product_id", _ID, ForeignKey("products.id"), nullable=False),
    Column("store_id", String(64), ForeignKey("stores.id"), nullable=False),
    Column("store_barcode", String(100)),
    Column("store_sku", String(100)),
    Column("stock_quantity", Integer, nullable=False),
    Column("sellable_quantity", Integer, nullable=False),
    Column("reservable_quantity", Integer, nullable=False),
    Column("committed_quantity", Integer, nullable=False),
    Column("is_active", Boolean, nullable=False),
    UniqueConstraint("product_id", "store_id", name="uq_product_store"),
)

# --- Orders -------------------------------------------------------------------

orders = Table(
    "orders",
    metadata,
    Column("id", _ID, primary_key=True),
    Column("package_id", String(64), nullable=False, unique=True),
    Column("order_number", String(64), index=True),
    Column("store_id", String(64)),
    Column("integration_id", String(64)),
    Column("status", _enum(OrderStatus), nullable=False),
    Column("currency", String(8), nullable=False),
    Column("customer_name", String(255)),
    Column("total_price", _money(), nullable=False),
    Column("cargo_provider", String(100)),
    Column("cargo_tracking_number", String(100)),
    Column("shipping_address", JSON),
    Column("invoice_address", JSON),
    Column("created_at", UTCDateTime, nullable=False),
)

order_items = Table(
    "order_items",
    metadata,
    Column("id", _ID, primary_key=True),
    Column("order_id", _ID, ForeignKey("orders.id"), nullable=False),
    Column("line_no", Integer, nullable=False),
    Column("product_id", _ID, ForeignKey("products.id"), nullable=False),
    Column("product_name", String(255), nullable=False),
    Column("barcode", String(100)),
    Column("stock_code", String(100)),
    Column("content_id", String(64)),
    Column("quantity", Integer, nullable=False),
    Column("unit_price", _money(), nullable=False),
    Column("vat_rate", Numeric(5, 2), nullable=False),
    Column("status", _enum(ItemStatus), nullable=False),
    Column("allocations", JSON, nullable=False),
    Column("is_set_component", Boolean, nullable=False),
    Column("set_product_id", _ID),
    Column("cancel_reason", Text),
)

faulty_orders = Table(
    "faulty_orders",
    metadata,
    Column("id", _ID, primary_key=True),
    Column("integration_id", String(64)),
    Column("store_id", String(64)),
    Column("package_id", String(64), nullable=False, unique=True),
    Column("order_number", String(64)),
    Column("raw_data", JSON, nullable=False),
    Column("missing_barcodes", JSON, nullable=False),
    Column("error_reason", _enum(FaultyOrderReason), nullable=False),
    Column("retry_count", Integer, nullable=False),
    Column("customer_name", String(255)),
    Column("total_price", _money()),
    Column("currency_code", String(8)),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
)

# --- Stock sync ---------------------------------------------------------------

stock_update_queue = Table(
    "stock_update_queue",
    metadata,
    Column("id", _ID, primary_key=True),
    Column("product_id", _ID, nullable=False),
    Column("store_id", String(64), nullable=False),
    Column("reason", _enum(StockUpdateReason), nullable=False),
    Column("priority", Integer, nullable=False),
    Column("status", _enum(QueueStatus), nullable=False),
    Column("attempts", Integer, nullable=False),
    Column("batch_id", _ID),
    Column("claimed_at", UTCDateTime),
    Column("processed_at", UTCDateTime),
    Column("created_at", UTCDateTime, nullable=False),
)

# Tombstoned rows stay in the table but fall out of the claim index.
Index(
    "ix_stock_update_queue_claim",
    stock_update_queue.c.status,
    stock_update_queue.c.priority.desc(),
    stock_update_queue.c.created_at,
    postgresql_where=stock_update_queue.c.status != "DELETED",
    sqlite_where=stock_update_queue.c.status != "DELETED",
)
Index("ix_stock_update_queue_batch", stock_update_queue.c.batch_id)

stock_sync_logs = Table(
    "stock_sync_logs",
    metadata,
    Column("id", _ID, primary_key=True),
    Column("batch_id", _ID, nullable=False, index=True),
    Column("store_id", String(64), nullable=False),
    Column("provider", _enum(MarketplaceProvider), nullable=False),
    Column("sync_status", _enum(SyncStatus), nullable=False),
    Column("total_items", Integer, nullable=False),
    Column("success_items", Integer, nullable=False),
    Column("failed_items", Integer, nullable=False),
    Column("endpoint", String(500)),
    Column("method", String(10)),
    Column("request_payload", Text),
    Column("response_payload", Text),
    Column("status_code", Integer),
    Column("error_message", Text),
    Column("duration_ms", Integer),
    Column("batch_request_id", String(100)),
    Column("product_details", JSON),
    Column("created_at", UTCDateTime, nullable=False),
    Index("ix_sync_logs_store_created", "store_id", "created_at"),
)

# --- Waybills -----------------------------------------------------------------

waybills = Table(
    "waybills",
    metadata,
    Column("id", _ID, primary_key=True),
    Column("waybill_number", String(20), nullable=False, unique=True),
    Column("order_id", _ID),
    Column("store_id", String(64)),
    Column("type", _enum(WaybillType), nullable=False),
    Column("status", _enum(WaybillStatus), nullable=False),
    Column("notes", Text),
    Column("created_at", UTCDateTime, nullable=False),
)

sequence_counters = Table(
    "sequence_counters",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(50), nullable=False, unique=True),
    Column("current_value", BigInteger, nullable=False, default=0),
)


def start_mappers() -> None:
    """Map the domain classes. Idempotent."""
    if mapper_registry.mappers:
        return
    mapper_registry.map_imperatively(Shelf, shelves)
    mapper_registry.map_imperatively(ShelfStock, shelf_stocks)
    mapper_registry.map_imperatively(StockMovement, shelf_stock_movements)
    mapper_registry.map_imperatively(Product, products)
    mapper_registry.map_imperatively(ProductSetItem, product_set_items)
    mapper_registry.map_imperatively(Store, stores)
    mapper_registry.map_imperatively(ProductStore, product_stores)
    mapper_registry.map_imperatively(OrderItem, order_items)
    mapper_registry.map_imperatively(
        Order,
        orders,
        properties={
            "items": relationship(
                OrderItem,
                order_by=order_items.c.line_no,
                cascade="all, delete-orphan",
                lazy="selectin",
            ),
        },
    )
    mapper_registry.map_imperatively(FaultyOrder, faulty_orders)
    mapper_registry.map_imperatively(StockUpdateQueueItem, stock_update_queue)
    mapper_registry.map_imperatively(StockSyncLog, stock_sync_logs)
    mapper_registry.map_imperatively(Waybill, waybills)
