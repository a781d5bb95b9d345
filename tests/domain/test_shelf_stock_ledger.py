"""Unit tests for the ShelfStockLedger domain service."""

import pytest

from wms.domain.exceptions import (
    EntityNotFoundError,
    InsufficientStockError,
    ValidationError,
)
from wms.domain.model.shelf import ShelfType
from wms.domain.model.stock_movement import MovementDirection, MovementType
from wms.domain.model.stock_sync import StockUpdateReason
from wms.domain.service.shelf_stock_ledger import ShelfStockLedger
from tests.fakes import (
    FakeUnitOfWork,
    InMemoryDatabase,
    put_stock,
    seed_listing,
    seed_product,
    seed_set,
    seed_shelf,
    seed_store,
)


def _setup():
    db = InMemoryDatabase()
    shelf = seed_shelf(db, "A-01")
    product = seed_product(db, "Mug", "MUG-1")
    store = seed_store(db, "TY1")
    seed_listing(db, product, store)
    return db, shelf, product, store


class TestIncrement:

    def test_first_receipt_creates_row_and_movement(self):
        db, shelf, product, _ = _setup()

        with FakeUnitOfWork(db) as uow:
            movement = ShelfStockLedger(uow).increment(shelf.id, product.id, 5, MovementType.RECEIVING)
            uow.commit()

        assert db.stock(shelf.id, product.id).quantity == 5
        assert movement.direction == MovementDirection.IN
        assert (movement.quantity_before, movement.quantity_after) == (0, 5)
        assert db.products[product.id].stock_quantity == 5
        assert db.products[product.id].sellable_quantity == 5
        assert db.product_stores[(product.id, "TY1")].sellable_quantity == 5

    def test_enqueues_stock_added_per_active_listing(self):
        db, shelf, product, _ = _setup()
        other = seed_store(db, "HB1")
        seed_listing(db, product, other, is_active=False)

        put_stock(db, shelf, product, 3)

        rows = db.queue_rows()
        assert [(r.store_id, r.reason) for r in rows] == [("TY1", StockUpdateReason.STOCK_ADDED)]
        assert rows[0].priority == 70

    def test_parent_sets_are_enqueued_too(self):
        db, shelf, product, store = _setup()
        bundle = seed_set(db, "Mug x2", "SET-1", [(product, 2, "10.00")])
        seed_listing(db, bundle, store)

        put_stock(db, shelf, product, 4)

        assert {r.product_id for r in db.queue_rows()} == {product.id, bundle.id}

    def test_decrement_type_rejected(self):
        db, shelf, product, _ = _setup()
        with FakeUnitOfWork(db) as uow:
            with pytest.raises(ValidationError, match="not an increment movement"):
                ShelfStockLedger(uow).increment(shelf.id, product.id, 1, MovementType.PICKING)

    def test_decommissioned_shelf_rejected(self):
        db, shelf, product, _ = _setup()
        db.shelves[shelf.id].is_active = False
        with FakeUnitOfWork(db) as uow:
            with pytest.raises(ValidationError, match="decommissioned"):
                ShelfStockLedger(uow).increment(shelf.id, product.id, 1, MovementType.RECEIVING)

    def test_unknown_product_rejected(self):
        db, shelf, _, _ = _setup()
        with FakeUnitOfWork(db) as uow:
            with pytest.raises(EntityNotFoundError):
                ShelfStockLedger(uow).increment(shelf.id, "nope", 1, MovementType.RECEIVING)


class TestReserveAndRelease:

    def test_reserve_writes_no_movement(self):
        db, shelf, product, _ = _setup()
        put_stock(db, shelf, product, 10)
        movements_before = len(db.movements)

        with FakeUnitOfWork(db) as uow:
            ShelfStockLedger(uow).reserve(shelf.id, product.id, 4, store_id="TY1")
            uow.commit()

        assert len(db.movements) == movements_before
        assert db.stock(shelf.id, product.id).reserved_quantity == 4
        assert db.products[product.id].reserved_quantity == 4
        assert db.products[product.id].sellable_quantity == 6
        listing = db.product_stores[(product.id, "TY1")]
        assert listing.reservable_quantity == 4
        assert listing.sellable_quantity == 6

    def test_reserve_on_missing_row_is_insufficient(self):
        db, shelf, product, _ = _setup()
        with FakeUnitOfWork(db) as uow:
            with pytest.raises(InsufficientStockError):
                ShelfStockLedger(uow).reserve(shelf.id, product.id, 1)

    def test_reserve_on_non_reservable_shelf_rejected(self):
        db, _, product, _ = _setup()
        damaged = seed_shelf(db, "D-01", ShelfType.DAMAGED, is_reservable=False)
        put_stock(db, damaged, product, 5)
        with FakeUnitOfWork(db) as uow:
            with pytest.raises(ValidationError, match="does not accept reservations"):
                ShelfStockLedger(uow).reserve(damaged.id, product.id, 1)

    def test_release_restores_sellable(self):
        db, shelf, product, _ = _setup()
        put_stock(db, shelf, product, 10)
        with FakeUnitOfWork(db) as uow:
            ledger = ShelfStockLedger(uow)
            ledger.reserve(shelf.id, product.id, 4, store_id="TY1")
            ledger.release(shelf.id, product.id, 4, store_id="TY1")
            uow.commit()

        assert db.products[product.id].sellable_quantity == 10
        assert db.product_stores[(product.id, "TY1")].reservable_quantity == 0
        reasons = [r.reason for r in db.queue_rows()]
        assert StockUpdateReason.ORDER_CREATED in reasons
        assert StockUpdateReason.ORDER_CANCELLED in reasons


class TestDecrement:

    def test_picking_consumes_reservation_and_commits(self):
        db, shelf, product, _ = _setup()
        put_stock(db, shelf, product, 10)
        with FakeUnitOfWork(db) as uow:
            ledger = ShelfStockLedger(uow)
            ledger.reserve(shelf.id, product.id, 3, store_id="TY1")
            movement = ledger.decrement(
                shelf.id, product.id, 3, MovementType.PICKING,
                store_id="TY1", committed_delta=3, order_id="o1",
            )
            uow.commit()

        row = db.stock(shelf.id, product.id)
        assert (row.quantity, row.reserved_quantity) == (7, 0)
        assert movement.order_id == "o1"
        assert movement.delta == -3
        listing = db.product_stores[(product.id, "TY1")]
        assert listing.reservable_quantity == 0
        assert listing.committed_quantity == 3
        assert listing.stock_quantity == 10

    def test_failed_decrement_leaves_row_untouched(self):
        db, shelf, product, _ = _setup()
        put_stock(db, shelf, product, 2)

        with pytest.raises(InsufficientStockError):
            with FakeUnitOfWork(db) as uow:
                ShelfStockLedger(uow).decrement(shelf.id, product.id, 3, MovementType.ADJUSTMENT)

        assert db.stock(shelf.id, product.id).quantity == 2
        assert len(db.movements) == 1


class TestTransfer:

    def test_transfer_writes_paired_movements(self):
        db, shelf, product, _ = _setup()
        target = seed_shelf(db, "B-01")
        put_stock(db, shelf, product, 5)

        with FakeUnitOfWork(db) as uow:
            out, inbound = ShelfStockLedger(uow).transfer(shelf.id, target.id, product.id, 2)
            uow.commit()

        assert db.stock(shelf.id, product.id).quantity == 3
        assert db.stock(target.id, product.id).quantity == 2
        assert out.type == inbound.type == MovementType.TRANSFER
        assert (out.source_shelf_id, out.target_shelf_id) == (shelf.id, target.id)
        assert inbound.target_shelf_id == target.id
        assert db.products[product.id].stock_quantity == 5

    def test_transfer_to_sellable_shelf_counts_as_added(self):
        db, _, product, _ = _setup()
        receiving = seed_shelf(db, "RCV-01", ShelfType.RECEIVING)
        normal = seed_shelf(db, "N-01")
        put_stock(db, receiving, product, 4)
        db.queue.clear()

        with FakeUnitOfWork(db) as uow:
            ShelfStockLedger(uow).transfer(receiving.id, normal.id, product.id, 4)
            uow.commit()

        assert db.products[product.id].sellable_quantity == 4
        assert {r.reason for r in db.queue_rows()} == {StockUpdateReason.STOCK_ADDED}

    def test_reserved_units_cannot_be_transferred(self):
        db, shelf, product, _ = _setup()
        target = seed_shelf(db, "B-01")
        put_stock(db, shelf, product, 5)
        with FakeUnitOfWork(db) as uow:
            ShelfStockLedger(uow).reserve(shelf.id, product.id, 4)
            uow.commit()

        with pytest.raises(InsufficientStockError):
            with FakeUnitOfWork(db) as uow:
                ShelfStockLedger(uow).transfer(shelf.id, target.id, product.id, 2)

        assert db.stock(target.id, product.id) is None

    def test_same_shelf_rejected(self):
        db, shelf, product, _ = _setup()
        with FakeUnitOfWork(db) as uow:
            with pytest.raises(ValidationError, match="must differ"):
                ShelfStockLedger(uow).transfer(shelf.id, shelf.id, product.id, 1)


class TestDecommission:

    def test_empty_shelf_is_decommissioned(self):
        db, shelf, product, _ = _setup()
        put_stock(db, shelf, product, 1)
        with FakeUnitOfWork(db) as uow:
            ShelfStockLedger(uow).decrement(shelf.id, product.id, 1, MovementType.ADJUSTMENT)
            ShelfStockLedger(uow).decommission_shelf(shelf.id)
            uow.commit()

        assert db.shelves[shelf.id].is_active is False
        assert db.stock(shelf.id, product.id).is_deleted

    def test_shelf_with_stock_rejected(self):
        db, shelf, product, _ = _setup()
        put_stock(db, shelf, product, 1)
        with FakeUnitOfWork(db) as uow:
            with pytest.raises(ValidationError, match="still holds 1 units"):
                ShelfStockLedger(uow).decommission_shelf(shelf.id)
