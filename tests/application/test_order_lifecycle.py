"""Tests for pick, ship, cancel and show on ingested orders."""

import pytest

from wms.application.cancel_order import CancelOrderHandler
from wms.application.ingest_order import IngestOrderHandler
from wms.application.pick_order import PickOrderHandler
from wms.application.ship_order import ShipOrderHandler
from wms.application.show_order import ShowOrderHandler
from wms.domain.exceptions import EntityNotFoundError, ValidationError
from wms.domain.model.shelf import ShelfType
from wms.domain.model.stock_movement import MovementType
from tests.fakes import (
    InMemoryDatabase,
    put_stock,
    seed_listing,
    seed_product,
    seed_shelf,
    seed_store,
    uow_factory_for,
)


class TestOrderLifecycle:

    def _setup(self, qty=3):
        db = InMemoryDatabase()
        shelf = seed_shelf(db, "A-01")
        mug = seed_product(db, "Mug", "MUG-1")
        seed_listing(db, mug, seed_store(db))
        put_stock(db, shelf, mug, 10)
        factory = uow_factory_for(db)
        result = IngestOrderHandler(factory).handle(
            {
                "shipmentPackageId": "PKG-1",
                "lines": [{"barcode": "MUG-1", "quantity": qty, "lineUnitPrice": "12.50"}],
            },
            store_id="TY1",
        )
        return db, factory, shelf, mug, result.order_id

    def test_pick_moves_stock_off_shelf(self):
        db, factory, shelf, mug, order_id = self._setup()

        dto = PickOrderHandler(factory).handle(order_id, user_id="u1")

        assert dto.status == "PICKED"
        row = db.stock(shelf.id, mug.id)
        assert (row.quantity, row.reserved_quantity) == (7, 0)
        listing = db.product_stores[(mug.id, "TY1")]
        assert (listing.reservable_quantity, listing.committed_quantity) == (0, 3)

    def test_pick_twice_is_rejected(self):
        _, factory, _, _, order_id = self._setup()
        PickOrderHandler(factory).handle(order_id)
        with pytest.raises(ValidationError, match="no reserved items"):
            PickOrderHandler(factory).handle(order_id)

    def test_ship_requires_picked_items(self):
        _, factory, _, _, order_id = self._setup()
        with pytest.raises(ValidationError, match="no picked items"):
            ShipOrderHandler(factory).handle(order_id)

    def test_ship_records_tracking_number(self):
        db, factory, _, mug, order_id = self._setup()
        PickOrderHandler(factory).handle(order_id)

        dto = ShipOrderHandler(factory).handle(order_id, cargo_tracking_number="TRK-9")

        assert dto.status == "SHIPPED"
        assert db.orders[order_id].cargo_tracking_number == "TRK-9"
        assert db.product_stores[(mug.id, "TY1")].committed_quantity == 0

    def test_cancel_reserved_order(self):
        db, factory, shelf, mug, order_id = self._setup()

        dto = CancelOrderHandler(factory).handle(order_id, reason="customer request")

        assert dto.status == "CANCELLED"
        assert db.stock(shelf.id, mug.id).reserved_quantity == 0
        assert db.product_stores[(mug.id, "TY1")].reservable_quantity == 0

    def test_cancel_picked_order_to_named_return_shelf(self):
        db, factory, shelf, mug, order_id = self._setup()
        returns = seed_shelf(db, "RET-01", ShelfType.RETURN)
        PickOrderHandler(factory).handle(order_id)

        CancelOrderHandler(factory).handle(order_id, return_shelf_ref="RET-01")

        assert db.stock(returns.id, mug.id).quantity == 3
        assert db.stock(shelf.id, mug.id).quantity == 7
        assert db.movements[-1].type == MovementType.CANCEL

    def test_cancel_with_unknown_return_shelf_changes_nothing(self):
        db, factory, shelf, mug, order_id = self._setup()
        with pytest.raises(EntityNotFoundError):
            CancelOrderHandler(factory).handle(order_id, return_shelf_ref="NOPE")
        assert db.stock(shelf.id, mug.id).reserved_quantity == 3

    def test_show_by_package_id(self):
        _, factory, shelf, _, order_id = self._setup()

        dto = ShowOrderHandler(factory).handle("PKG-1")

        assert dto.id == order_id
        assert dto.items[0].shelves == f"{shelf.id} x3"
        assert dto.total == "37.50 TRY"

    def test_unknown_order(self):
        _, factory, _, _, _ = self._setup()
        with pytest.raises(EntityNotFoundError):
            PickOrderHandler(factory).handle("missing")

    def test_state_changes_read_the_order_under_lock(self):
        db, factory, _, _, order_id = self._setup()

        PickOrderHandler(factory).handle(order_id)
        ShipOrderHandler(factory).handle(order_id)
        with pytest.raises(ValidationError):
            CancelOrderHandler(factory).handle(order_id)

        assert db.order_locks == [order_id] * 3
