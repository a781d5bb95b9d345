"""Domain service: Order Reservation.

Coordinates the cross-aggregate work of moving order items through
their stock states: UNRESERVED -> RESERVED -> COMMITTED -> SHIPPED, and
CANCELLED from any of the first three.

Reservation keeps the two-phase approach (plan-then-mutate): the plan is
computed from unlocked reads and reports every shortage at once; only a
complete plan is applied, through the ledger's locked writes. If stock
moved between planning and applying, the ledger raises and the unit of
work rolls back, so an order is never partially reserved.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal

from wms.domain.exceptions import EntityNotFoundError, ValidationError
from wms.domain.model.order import ItemStatus, Order, OrderItem
from wms.domain.model.product import Product
from wms.domain.model.shelf import ShelfType
from wms.domain.model.stock_movement import MovementType
from wms.domain.repository.unit_of_work import UnitOfWork
from wms.domain.service.shelf_selection import ShelfSelector
from wms.domain.service.shelf_stock_ledger import ShelfStockLedger
from wms.domain.service.stock_aggregate_service import StockAggregateService


@dataclass(frozen=True)
class Allocation:
    shelf_id: str
    quantity: int


@dataclass
class AllocationPlan:
    """Per-item shelf allocations plus the units that could not be placed."""

    allocations: dict[str, list[Allocation]] = field(default_factory=dict)
    shortages: dict[str, int] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return not self.shortages


class OrderReservationService:

    def __init__(
        self,
        uow: UnitOfWork,
        ledger: ShelfStockLedger | None = None,
        selector: ShelfSelector | None = None,
    ) -> None:
        self._uow = uow
        self._ledger = ledger or ShelfStockLedger(uow)
        self._selector = selector or ShelfSelector()
        self._aggregates = StockAggregateService(uow)

    # --- Order lines ----------------------------------------------------------

    def expand_line(
        self,
        product: Product,
        quantity: int,
        unit_price: Decimal,
        line_no: int = 1,
        **details,
    ) -> list[OrderItem]:
        """Turn one marketplace line into order items.

        A SET line becomes one item per component: quantity multiplied,
        the component's price share as unit price, line number
        ``line_no * 100 + index``.
        """
        if not product.is_set:
            return [
                OrderItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=quantity,
                    unit_price=unit_price,
                    barcode=product.barcode,
                    stock_code=product.sku,
                    line_no=line_no,
                    **details,
                )
            ]

        components = self._uow.products.list_set_items(product.id)
        if not components:
            raise ValidationError(f"SET product {product.name} has no components")
        items = []
        for index, component in enumerate(components):
            part = self._uow.products.get_by_id(component.component_product_id)
            if part is None:
                raise EntityNotFoundError(
                    f"Component '{component.component_product_id}' of SET {product.name} not found"
                )
            items.append(
                OrderItem(
                    product_id=part.id,
                    product_name=part.name,
                    quantity=quantity * component.quantity,
                    unit_price=component.price_share,
                    barcode=part.barcode,
                    stock_code=part.sku,
                    line_no=line_no * 100 + index,
                    is_set_component=True,
                    set_product_id=product.id,
                    **details,
                )
            )
        return items

    # --- Reservation ----------------------------------------------------------

    def plan(self, items: list[OrderItem]) -> AllocationPlan:
        """Greedily allocate every item over its product's shelves.

        Items for the same product share the remaining availability, so
        two lines of one product cannot both claim the same units.
        """
        plan = AllocationPlan()
        remaining: dict[str, dict[str, int]] = {}
        ordered_shelves: dict[str, list[str]] = {}

        for item in items:
            if item.product_id not in remaining:
                candidates = []
                for row in self._uow.shelf_stocks.list_for_product(item.product_id):
                    shelf = self._uow.shelves.get_by_id(row.shelf_id)
                    if shelf is not None:
                        candidates.append((shelf, row))
                ordered = self._selector.order(candidates)
                ordered_shelves[item.product_id] = [shelf.id for shelf, _ in ordered]
                remaining[item.product_id] = {
                    shelf.id: row.available_quantity for shelf, row in ordered
                }

            available = remaining[item.product_id]
            needed = item.quantity
            taken: list[Allocation] = []
            for shelf_id in ordered_shelves[item.product_id]:
                if needed == 0:
                    break
                qty = min(needed, available[shelf_id])
                if qty <= 0:
                    continue
                taken.append(Allocation(shelf_id, qty))
                available[shelf_id] -= qty
                needed -= qty

            plan.allocations[item.id] = taken
            if needed:
                plan.shortages[item.product_id] = plan.shortages.get(item.product_id, 0) + needed
        return plan

    def reserve(self, order: Order, plan: AllocationPlan) -> None:
        """Apply a complete plan through the ledger."""
        if not plan.is_complete:
            raise ValidationError(
                f"Cannot reserve order {order.package_id}: plan has shortages"
            )
        work = []
        for item in order.items_in(ItemStatus.UNRESERVED):
            for allocation in plan.allocations[item.id]:
                work.append((item.product_id, allocation.shelf_id, allocation))
        # Product-then-shelf order keeps lock acquisition acyclic.
        for product_id, shelf_id, allocation in sorted(work, key=lambda w: (w[0], w[1])):
            self._ledger.reserve(shelf_id, product_id, allocation.quantity, store_id=order.store_id)

        for item in order.items_in(ItemStatus.UNRESERVED):
            item.mark_reserved([(a.shelf_id, a.quantity) for a in plan.allocations[item.id]])
        order.refresh_status()

    # --- Picking and shipping -------------------------------------------------

    def pick(self, order: Order, user_id: str | None = None) -> list[OrderItem]:
        """Take every RESERVED item off its shelves (RESERVED -> COMMITTED)."""
        picked = []
        for item in sorted(order.items_in(ItemStatus.RESERVED), key=lambda i: i.product_id):
            for allocation in sorted(item.allocations, key=lambda a: a["shelf_id"]):
                self._ledger.decrement(
                    allocation["shelf_id"],
                    item.product_id,
                    allocation["quantity"],
                    MovementType.PICKING,
                    store_id=order.store_id,
                    committed_delta=allocation["quantity"],
                    order_id=order.id,
                    reference_number=order.package_id,
                    user_id=user_id,
                )
            item.mark_committed()
            picked.append(item)
        order.refresh_status()
        return picked

    def ship(self, order: Order) -> list[OrderItem]:
        """COMMITTED -> SHIPPED. No shelf changes, only the store's committed count."""
        shipped = []
        for item in sorted(order.items_in(ItemStatus.COMMITTED), key=lambda i: i.product_id):
            self._aggregates.refresh(
                item.product_id,
                store_id=order.store_id,
                committed_delta=-item.quantity,
            )
            item.mark_shipped()
            shipped.append(item)
        order.refresh_status()
        return shipped

    # --- Cancellation ---------------------------------------------------------

    def cancel(
        self,
        order: Order,
        reason: str | None = None,
        return_shelf_id: str | None = None,
        user_id: str | None = None,
    ) -> list[OrderItem]:
        """Cancel every cancellable item, putting its stock back."""
        cancellable = [
            i for i in order.items
            if i.status in (ItemStatus.UNRESERVED, ItemStatus.RESERVED, ItemStatus.COMMITTED)
        ]
        if not cancellable:
            raise ValidationError(
                f"Order {order.package_id} has no items that can be cancelled"
            )
        return_shelf = self._return_shelf_id(return_shelf_id)
        for item in sorted(cancellable, key=lambda i: i.product_id):
            self._cancel_item(order, item, reason, return_shelf, user_id)
        order.refresh_status()
        return cancellable

    def _cancel_item(
        self,
        order: Order,
        item: OrderItem,
        reason: str | None,
        return_shelf_id: str | None,
        user_id: str | None,
    ) -> None:
        if item.status == ItemStatus.RESERVED:
            for allocation in sorted(item.allocations, key=lambda a: a["shelf_id"]):
                self._ledger.release(
                    allocation["shelf_id"],
                    item.product_id,
                    allocation["quantity"],
                    store_id=order.store_id,
                )
        elif item.status == ItemStatus.COMMITTED:
            if return_shelf_id is not None:
                targets = [(return_shelf_id, item.quantity)]
            else:
                targets = _merge_allocations(item.allocations)
            for shelf_id, qty in targets:
                self._ledger.increment(
                    shelf_id,
                    item.product_id,
                    qty,
                    MovementType.CANCEL,
                    store_id=order.store_id,
                    committed_delta=-qty,
                    order_id=order.id,
                    reference_number=order.package_id,
                    notes=reason,
                    user_id=user_id,
                )
        item.mark_cancelled(reason)

    def _return_shelf_id(self, explicit: str | None) -> str | None:
        """Explicit shelf, else the first active RETURN shelf, else None."""
        if explicit is not None:
            shelf = self._uow.shelves.get_by_id(explicit)
            if shelf is None:
                raise EntityNotFoundError(f"Shelf '{explicit}' not found")
            return shelf.id
        return_shelves = self._uow.shelves.list_by_type(ShelfType.RETURN)
        return return_shelves[0].id if return_shelves else None


def _merge_allocations(allocations: list[dict]) -> list[tuple[str, int]]:
    totals: dict[str, int] = defaultdict(int)
    for allocation in allocations:
        totals[allocation["shelf_id"]] += allocation["quantity"]
    return sorted(totals.items())
