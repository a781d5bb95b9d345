"""Domain service: Shelf Stock Ledger.

The only write path for physical stock. Every operation runs inside the
caller's unit of work and follows the same sequence:

  1. lock the product row, then the (shelf, product) row(s)
  2. mutate the ShelfStock row through its aggregate methods
  3. append the movement snapshot (physical changes only)
  4. roll up the product/store aggregates
  5. enqueue marketplace stock updates

Locks are always taken product first, then shelf rows in shelf-id
order, so two ledger calls can never wait on each other in a cycle.
Any exception leaves the unit of work uncommitted and the caller's
context manager rolls everything back.
"""

from __future__ import annotations

import logging

from wms.domain.exceptions import (
    EntityNotFoundError,
    InsufficientStockError,
    ValidationError,
)
from wms.domain.model.shelf import Shelf, ShelfStock
from wms.domain.model.stock_movement import (
    MovementDirection,
    MovementType,
    StockMovement,
)
from wms.domain.model.stock_sync import StockUpdateReason
from wms.domain.repository.unit_of_work import UnitOfWork
from wms.domain.service.stock_aggregate_service import StockAggregateService
from wms.domain.service.stock_update_enqueuer import StockUpdateEnqueuer

logger = logging.getLogger(__name__)

_INCREMENT_TYPES = frozenset({
    MovementType.RECEIVING,
    MovementType.RETURN,
    MovementType.CANCEL,
    MovementType.ADJUSTMENT,
    MovementType.PACKING_IN,
})
_DECREMENT_TYPES = frozenset({
    MovementType.PICKING,
    MovementType.ADJUSTMENT,
    MovementType.PACKING_OUT,
})


class ShelfStockLedger:

    def __init__(
        self,
        uow: UnitOfWork,
        aggregates: StockAggregateService | None = None,
        enqueuer: StockUpdateEnqueuer | None = None,
    ) -> None:
        self._uow = uow
        self._aggregates = aggregates or StockAggregateService(uow)
        self._enqueuer = enqueuer or StockUpdateEnqueuer(uow)

    # --- Reservation sub-counter ----------------------------------------------

    def reserve(
        self,
        shelf_id: str,
        product_id: str,
        qty: int,
        store_id: str | None = None,
    ) -> ShelfStock:
        """Earmark ``qty`` units on one shelf. All or nothing."""
        self._lock_product(product_id)
        shelf = self._require_shelf(shelf_id)
        if not shelf.is_reservable:
            raise ValidationError(f"Shelf {shelf.barcode} does not accept reservations")

        row = self._uow.shelf_stocks.get_for_update(shelf_id, product_id)
        if row is None or row.is_deleted:
            raise InsufficientStockError(product_id, qty, 0, shelf_id=shelf_id)
        row.reserve(qty)
        self._uow.shelf_stocks.save(row)

        self._settle(product_id, StockUpdateReason.ORDER_CREATED, store_id, reserved_delta=qty)
        return row

    def release(
        self,
        shelf_id: str,
        product_id: str,
        qty: int,
        store_id: str | None = None,
    ) -> ShelfStock:
        """Give back reserved units. Fails if more than reserved is released."""
        self._lock_product(product_id)
        row = self._uow.shelf_stocks.get_for_update(shelf_id, product_id)
        if row is None or row.is_deleted:
            raise ValidationError(
                f"No stock of product {product_id} on shelf {shelf_id} to release"
            )
        row.release(qty)
        self._uow.shelf_stocks.save(row)

        self._settle(product_id, StockUpdateReason.ORDER_CANCELLED, store_id, reserved_delta=-qty)
        return row

    # --- Physical mutations ---------------------------------------------------

    def decrement(
        self,
        shelf_id: str,
        product_id: str,
        qty: int,
        movement_type: MovementType,
        consume_reservation: bool = True,
        store_id: str | None = None,
        committed_delta: int = 0,
        **context,
    ) -> StockMovement:
        """Remove units from a shelf and record an OUT movement.

        Reservations consumed by the decrement are taken off the
        reservable counter of ``store_id``'s listing.
        """
        if movement_type not in _DECREMENT_TYPES:
            raise ValidationError(f"{movement_type.value} is not a decrement movement")
        self._lock_product(product_id)
        row = self._uow.shelf_stocks.get_for_update(shelf_id, product_id)
        movement, consumed = self._take(row, shelf_id, product_id, qty, movement_type,
                                        consume_reservation, context)

        self._settle(
            product_id,
            StockUpdateReason.STOCK_REMOVED,
            store_id,
            reserved_delta=-consumed if store_id else 0,
            committed_delta=committed_delta,
        )
        return movement

    def increment(
        self,
        shelf_id: str,
        product_id: str,
        qty: int,
        movement_type: MovementType,
        store_id: str | None = None,
        committed_delta: int = 0,
        **context,
    ) -> StockMovement:
        """Put units on a shelf, creating the stock row on first placement."""
        if movement_type not in _INCREMENT_TYPES:
            raise ValidationError(f"{movement_type.value} is not an increment movement")
        self._lock_product(product_id)
        self._require_shelf(shelf_id)
        row = self._uow.shelf_stocks.get_for_update(shelf_id, product_id)
        movement = self._put(row, shelf_id, product_id, qty, movement_type, context)

        reason = (
            StockUpdateReason.ORDER_CANCELLED
            if movement_type == MovementType.CANCEL
            else StockUpdateReason.STOCK_ADDED
        )
        self._settle(product_id, reason, store_id, committed_delta=committed_delta)
        return movement

    def transfer(
        self,
        source_shelf_id: str,
        target_shelf_id: str,
        product_id: str,
        qty: int,
        **context,
    ) -> tuple[StockMovement, StockMovement]:
        """Move unreserved units between shelves as one OUT and one IN movement."""
        if source_shelf_id == target_shelf_id:
            raise ValidationError("Source and target shelf must differ")
        self._lock_product(product_id)
        source = self._require_shelf(source_shelf_id, must_be_active=False)
        target = self._require_shelf(target_shelf_id)

        rows = {}
        for shelf_id in sorted((source_shelf_id, target_shelf_id)):
            rows[shelf_id] = self._uow.shelf_stocks.get_for_update(shelf_id, product_id)

        context = {
            **context,
            "source_shelf_id": source_shelf_id,
            "target_shelf_id": target_shelf_id,
        }
        out, _ = self._take(rows[source_shelf_id], source_shelf_id, product_id, qty,
                            MovementType.TRANSFER, False, context)
        inbound = self._put(rows[target_shelf_id], target_shelf_id, product_id, qty,
                            MovementType.TRANSFER, context)

        if target.is_sellable and not source.is_sellable:
            reason = StockUpdateReason.STOCK_ADDED
        else:
            reason = StockUpdateReason.STOCK_REMOVED
        self._settle(product_id, reason, None)
        return out, inbound

    def decommission_shelf(self, shelf_id: str) -> Shelf:
        """Deactivate an empty shelf and soft-delete its stock rows."""
        shelf = self._require_shelf(shelf_id, must_be_active=False)
        for live in self._uow.shelf_stocks.list_for_shelf(shelf_id):
            row = self._uow.shelf_stocks.get_for_update(shelf_id, live.product_id)
            if row.quantity > 0:
                raise ValidationError(
                    f"Shelf {shelf.barcode} still holds {row.quantity} units of "
                    f"product {row.product_id}"
                )
            row.soft_delete()
            self._uow.shelf_stocks.save(row)
        shelf.decommission()
        self._uow.shelves.save(shelf)
        logger.info("Decommissioned shelf %s", shelf.barcode)
        return shelf

    # --- Internal helpers -----------------------------------------------------

    def _take(
        self,
        row: ShelfStock | None,
        shelf_id: str,
        product_id: str,
        qty: int,
        movement_type: MovementType,
        consume_reservation: bool,
        context: dict,
    ) -> tuple[StockMovement, int]:
        if row is None or row.is_deleted:
            raise InsufficientStockError(product_id, qty, 0, shelf_id=shelf_id)
        before = row.quantity
        reserved_before = row.reserved_quantity
        row.decrement(qty, consume_reservation=consume_reservation)
        self._uow.shelf_stocks.save(row)

        movement = StockMovement.record(
            shelf_id, product_id, movement_type, MovementDirection.OUT,
            qty, before, row.quantity, **context,
        )
        self._uow.movements.add(movement)
        return movement, reserved_before - row.reserved_quantity

    def _put(
        self,
        row: ShelfStock | None,
        shelf_id: str,
        product_id: str,
        qty: int,
        movement_type: MovementType,
        context: dict,
    ) -> StockMovement:
        if row is None:
            row = ShelfStock(shelf_id=shelf_id, product_id=product_id)
            row.increment(qty)
            self._uow.shelf_stocks.add(row)
            before = 0
        else:
            before = 0 if row.is_deleted else row.quantity
            row.increment(qty)
            self._uow.shelf_stocks.save(row)

        movement = StockMovement.record(
            shelf_id, product_id, movement_type, MovementDirection.IN,
            qty, before, row.quantity, **context,
        )
        self._uow.movements.add(movement)
        return movement

    def _settle(
        self,
        product_id: str,
        reason: StockUpdateReason,
        store_id: str | None,
        reserved_delta: int = 0,
        committed_delta: int = 0,
    ) -> None:
        self._aggregates.refresh(
            product_id,
            store_id=store_id,
            reserved_delta=reserved_delta,
            committed_delta=committed_delta,
        )
        self._enqueuer.enqueue(product_id, reason)

    def _lock_product(self, product_id: str) -> None:
        if self._uow.products.get_for_update(product_id) is None:
            raise EntityNotFoundError(f"Product '{product_id}' not found")

    def _require_shelf(self, shelf_id: str, must_be_active: bool = True) -> Shelf:
        shelf = self._uow.shelves.get_by_id(shelf_id)
        if shelf is None:
            raise EntityNotFoundError(f"Shelf '{shelf_id}' not found")
        if must_be_active and not shelf.is_active:
            raise ValidationError(f"Shelf {shelf.barcode} is decommissioned")
        return shelf
