"""Order aggregate: marketplace orders and their per-item stock state.

The Order is an aggregate root that owns its items. Stock state lives on
each item; the order status is derived from the items after every
transition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from wms.domain.exceptions import ValidationError
from wms.domain.model.value_objects import Money, Quantity


class OrderStatus(Enum):
    CREATED = "CREATED"
    WAITING_PICKING = "WAITING_PICKING"
    PICKED = "PICKED"
    SHIPPED = "SHIPPED"
    CANCELLED = "CANCELLED"


class ItemStatus(Enum):
    UNRESERVED = "UNRESERVED"
    RESERVED = "RESERVED"
    COMMITTED = "COMMITTED"
    SHIPPED = "SHIPPED"
    CANCELLED = "CANCELLED"


# ---------------------------------------------------------------------------
# Constants for business rules
# ---------------------------------------------------------------------------
MAX_LINE_ITEMS = 200
CANCELLABLE_ITEM_STATUSES = frozenset(
    {ItemStatus.UNRESERVED, ItemStatus.RESERVED, ItemStatus.COMMITTED}
)


@dataclass(eq=False)
class OrderItem:
    """One order line, possibly a component of an expanded SET line.

    ``allocations`` records which shelves hold the item's reservation as
    ``[{"shelf_id": ..., "quantity": ...}]``. The list is always
    replaced, never mutated in place, so persistence sees the change.
    """

    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal = Decimal("0.00")
    barcode: str | None = None
    stock_code: str | None = None
    content_id: str | None = None
    vat_rate: Decimal = Decimal("0.00")
    line_no: int = 1
    status: ItemStatus = ItemStatus.UNRESERVED
    allocations: list[dict] = field(default_factory=list)
    is_set_component: bool = False
    set_product_id: str | None = None
    cancel_reason: str | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    order_id: str | None = None

    def __post_init__(self) -> None:
        Quantity(self.quantity)

    @property
    def line_total(self) -> Money:
        return Money(self.unit_price) * self.quantity

    @property
    def allocated_quantity(self) -> int:
        return sum(a["quantity"] for a in self.allocations)

    def mark_reserved(self, allocations: list[tuple[str, int]]) -> None:
        self._require(ItemStatus.UNRESERVED, "reserve")
        total = sum(qty for _, qty in allocations)
        if total != self.quantity:
            raise ValidationError(
                f"Allocations for {self.product_name} cover {total} of {self.quantity} units"
            )
        self.allocations = [
            {"shelf_id": shelf_id, "quantity": qty} for shelf_id, qty in allocations
        ]
        self.status = ItemStatus.RESERVED

    def mark_committed(self) -> None:
        self._require(ItemStatus.RESERVED, "pick")
        self.status = ItemStatus.COMMITTED

    def mark_shipped(self) -> None:
        self._require(ItemStatus.COMMITTED, "ship")
        self.status = ItemStatus.SHIPPED

    def mark_cancelled(self, reason: str | None) -> ItemStatus:
        """Cancel the item and return the status it had before."""
        if self.status not in CANCELLABLE_ITEM_STATUSES:
            raise ValidationError(
                f"Cannot cancel item {self.product_name} in {self.status.value} status"
            )
        previous = self.status
        self.status = ItemStatus.CANCELLED
        self.cancel_reason = reason
        return previous

    def _require(self, expected: ItemStatus, action: str) -> None:
        if self.status != expected:
            raise ValidationError(
                f"Cannot {action} item {self.product_name} - current status is "
                f"{self.status.value}, expected {expected.value}"
            )


@dataclass(eq=False)
class Order:
    """Aggregate root for ingested marketplace orders.

    Use ``Order.create()`` for new orders; it enforces the business
    rules. The ``__init__`` is intentionally simple so the repository
    can reconstitute persisted orders without re-validating.
    """

    id: str
    package_id: str
    order_number: str | None
    store_id: str | None
    items: list[OrderItem]
    integration_id: str | None = None
    status: OrderStatus = OrderStatus.CREATED
    currency: str = "TRY"
    customer_name: str | None = None
    total_price: Decimal = Decimal("0.00")
    cargo_provider: str | None = None
    cargo_tracking_number: str | None = None
    shipping_address: dict | None = None
    invoice_address: dict | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        package_id: str,
        items: list[OrderItem],
        store_id: str | None = None,
        order_number: str | None = None,
        **details,
    ) -> Order:
        if not package_id or not str(package_id).strip():
            raise ValidationError("Package id is required")
        if not items:
            raise ValidationError("Order must contain at least one item")
        if len(items) > MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")

        order = Order(
            id=str(uuid4()),
            package_id=str(package_id).strip(),
            order_number=order_number,
            store_id=store_id,
            items=list(items),
            **details,
        )
        for item in order.items:
            item.order_id = order.id
        return order

    # --- State --------------------------------------------------------------

    def refresh_status(self) -> OrderStatus:
        """Derive the order status from its items."""
        live = [i for i in self.items if i.status != ItemStatus.CANCELLED]
        if not live:
            self.status = OrderStatus.CANCELLED
        elif all(i.status == ItemStatus.SHIPPED for i in live):
            self.status = OrderStatus.SHIPPED
        elif all(i.status in (ItemStatus.COMMITTED, ItemStatus.SHIPPED) for i in live):
            self.status = OrderStatus.PICKED
        elif any(i.status == ItemStatus.RESERVED for i in live):
            self.status = OrderStatus.WAITING_PICKING
        else:
            self.status = OrderStatus.CREATED
        return self.status

    def items_in(self, status: ItemStatus) -> list[OrderItem]:
        return [i for i in self.items if i.status == status]

    def find_item(self, item_id: str) -> OrderItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise ValidationError(f"Item '{item_id}' not found in order {self.package_id}")

    # --- Computed properties --------------------------------------------------

    @property
    def total(self) -> Money:
        result = Money.zero(self.currency)
        for item in self.items:
            result = result + Money(item.unit_price, self.currency) * item.quantity
        return result
