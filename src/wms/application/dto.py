"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from wms.domain.model.order import Order
from wms.domain.model.stock_movement import StockMovement


# --- Orders -------------------------------------------------------------------


@dataclass(frozen=True)
class OrderItemDTO:
    """Output: a single order item as displayed to the user."""

    id: str
    line_no: int
    product_name: str
    barcode: str | None
    quantity: int
    unit_price: str  # formatted, e.g. "15.00 TRY"
    line_total: str
    status: str
    shelves: str  # e.g. "A-01 x2, A-02 x1"
    set_product_id: str | None = None


@dataclass(frozen=True)
class OrderDTO:
    """Output: a complete order as displayed to the user."""

    id: str
    package_id: str
    order_number: str | None
    store_id: str | None
    status: str
    items: list[OrderItemDTO]
    total: str
    created_at: str

    @staticmethod
    def from_order(order: Order) -> OrderDTO:
        return OrderDTO(
            id=order.id,
            package_id=order.package_id,
            order_number=order.order_number,
            store_id=order.store_id,
            status=order.status.value,
            items=[
                OrderItemDTO(
                    id=item.id,
                    line_no=item.line_no,
                    product_name=item.product_name,
                    barcode=item.barcode,
                    quantity=item.quantity,
                    unit_price=f"{item.unit_price:.2f} {order.currency}",
                    line_total=f"{item.unit_price * item.quantity:.2f} {order.currency}",
                    status=item.status.value,
                    shelves=", ".join(
                        f"{a['shelf_id']} x{a['quantity']}" for a in item.allocations
                    ),
                    set_product_id=item.set_product_id,
                )
                for item in sorted(order.items, key=lambda i: i.line_no)
            ],
            total=str(order.total),
            created_at=order.created_at.strftime("%Y-%m-%d %H:%M UTC"),
        )


class IngestStatus(Enum):
    CREATED = "CREATED"
    QUARANTINED = "QUARANTINED"
    DUPLICATE = "DUPLICATE"


@dataclass(frozen=True)
class IngestResult:
    """Outcome of feeding one marketplace package to the system."""

    status: IngestStatus
    package_id: str
    order_id: str | None = None
    faulty_order_id: str | None = None
    missing_barcodes: list[str] = field(default_factory=list)
    error_reason: str | None = None


@dataclass(frozen=True)
class FaultyOrderDTO:
    id: str
    package_id: str
    order_number: str | None
    store_id: str | None
    error_reason: str
    missing_barcodes: list[str]
    retry_count: int
    customer_name: str | None
    updated_at: str


# --- Stock --------------------------------------------------------------------


@dataclass(frozen=True)
class MovementDTO:
    shelf_id: str
    product_id: str
    type: str
    direction: str
    quantity: int
    quantity_before: int
    quantity_after: int
    reference_number: str | None
    created_at: str

    @staticmethod
    def from_movement(movement: StockMovement) -> MovementDTO:
        return MovementDTO(
            shelf_id=movement.shelf_id,
            product_id=movement.product_id,
            type=movement.type.value,
            direction=movement.direction.value,
            quantity=movement.quantity,
            quantity_before=movement.quantity_before,
            quantity_after=movement.quantity_after,
            reference_number=movement.reference_number,
            created_at=movement.created_at.strftime("%Y-%m-%d %H:%M:%S UTC"),
        )


@dataclass(frozen=True)
class ShelfStockLineDTO:
    shelf_barcode: str
    shelf_type: str
    quantity: int
    reserved: int
    available: int


@dataclass(frozen=True)
class ProductStockDTO:
    product_id: str
    product_name: str
    barcode: str | None
    stock: int
    reserved: int
    sellable: int
    shelves: list[ShelfStockLineDTO]


# --- Queue and sync -----------------------------------------------------------


@dataclass(frozen=True)
class QueueStatusDTO:
    pending: int
    processing: int
    stuck: int
    oldest_pending_at: str | None
    pending_by_store: dict[str, int]


@dataclass(frozen=True)
class SyncStatsDTO:
    total_batches: int
    successful: int
    failed: int
    rate_limited: int
    success_rate: float  # percent
    average_duration_ms: float
    items_pushed: int
    items_failed: int
    by_provider: dict[str, int]
    recent_errors: list[str]


@dataclass
class SyncRunReport:
    """What one drain cycle of the batcher did."""

    claimed: int = 0
    recovered: int = 0
    batches: int = 0
    succeeded: int = 0
    failed: int = 0
    rate_limited: int = 0
    throttled: int = 0
    skipped: int = 0


@dataclass(frozen=True)
class WaybillDTO:
    id: str
    waybill_number: str
    order_id: str | None
    store_id: str | None
    type: str
    created_at: str
