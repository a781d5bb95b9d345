"""Tests for the IngestOrderHandler use case."""

import pytest

from wms.application.dto import IngestStatus
from wms.application.ingest_order import IngestOrderHandler
from wms.application.retry_faulty_order import RetryFaultyOrderHandler
from wms.domain.exceptions import ValidationError
from wms.domain.model.faulty_order import FaultyOrder
from wms.domain.model.order import ItemStatus, OrderStatus
from wms.domain.model.shelf import ShelfType
from wms.domain.model.stock_sync import StockUpdateReason
from tests.fakes import (
    InMemoryDatabase,
    put_stock,
    seed_listing,
    seed_product,
    seed_set,
    seed_shelf,
    seed_store,
    uow_factory_for,
)


def _payload(package_id="PKG-1", lines=None, **extra):
    payload = {
        "shipmentPackageId": package_id,
        "orderNumber": f"ORD-{package_id}",
        "customerFirstName": "Ayse",
        "customerLastName": "Yilmaz",
        "totalPrice": 99.8,
        "lines": lines if lines is not None else [
            {"barcode": "MUG-1", "quantity": 2, "lineUnitPrice": 49.9, "lineNo": 1},
        ],
    }
    payload.update(extra)
    return payload


class TestIngestOrder:

    def _setup(self):
        db = InMemoryDatabase()
        shelf = seed_shelf(db, "A-01")
        mug = seed_product(db, "Mug", "MUG-1")
        store = seed_store(db)
        seed_listing(db, mug, store)
        handler = IngestOrderHandler(uow_factory_for(db))
        return db, shelf, mug, handler

    def test_reserves_every_item(self):
        db, shelf, mug, handler = self._setup()
        put_stock(db, shelf, mug, 5)

        result = handler.handle(_payload(), store_id="TY1")

        assert result.status == IngestStatus.CREATED
        order = db.orders[result.order_id]
        assert order.status == OrderStatus.WAITING_PICKING
        assert order.customer_name == "Ayse Yilmaz"
        assert [i.status for i in order.items] == [ItemStatus.RESERVED]
        assert db.stock(shelf.id, mug.id).reserved_quantity == 2
        assert db.product_stores[(mug.id, "TY1")].reservable_quantity == 2
        reasons = [q.reason for q in db.queue_rows()]
        assert StockUpdateReason.ORDER_CREATED in reasons

    def test_shortage_quarantines_without_touching_stock(self):
        db, shelf, mug, handler = self._setup()
        cup = seed_product(db, "Cup", "CUP-1")
        put_stock(db, shelf, mug, 5)
        put_stock(db, shelf, cup, 1)
        queued_before = len(db.queue)

        result = handler.handle(
            _payload(lines=[
                {"barcode": "MUG-1", "quantity": 2, "lineUnitPrice": 10},
                {"barcode": "CUP-1", "quantity": 3, "lineUnitPrice": 10},
            ]),
            store_id="TY1",
        )

        assert result.status == IngestStatus.QUARANTINED
        assert result.missing_barcodes == ["CUP-1"]
        assert db.orders == {}
        assert db.stock(shelf.id, mug.id).reserved_quantity == 0
        assert len(db.queue) == queued_before

    def test_unknown_barcode_quarantines(self):
        db, shelf, mug, handler = self._setup()
        put_stock(db, shelf, mug, 5)

        result = handler.handle(
            _payload(lines=[
                {"barcode": "MUG-1", "quantity": 1},
                {"barcode": "GHOST", "quantity": 1},
            ])
        )

        assert result.status == IngestStatus.QUARANTINED
        assert result.missing_barcodes == ["GHOST"]
        assert result.error_reason == "MISSING_PRODUCTS"

    def test_failing_twice_keeps_one_row_with_retry_count(self):
        db, _, _, handler = self._setup()

        first = handler.handle(_payload())
        second = handler.handle(_payload())

        assert first.faulty_order_id == second.faulty_order_id
        assert len(db.faulty_orders) == 1
        assert db.faulty_orders[first.faulty_order_id].retry_count == 1

    def test_malformed_lines_are_invalid_data(self):
        db, _, _, handler = self._setup()

        result = handler.handle(_payload(lines=[{"barcode": "MUG-1", "quantity": -1}]))

        assert result.status == IngestStatus.QUARANTINED
        assert result.error_reason == "INVALID_DATA"
        assert result.missing_barcodes == []

    def test_payload_without_package_id_is_rejected(self):
        _, _, _, handler = self._setup()
        with pytest.raises(ValidationError, match="no package id"):
            handler.handle({"lines": []})

    def test_second_ingest_of_same_package_is_duplicate(self):
        db, shelf, mug, handler = self._setup()
        put_stock(db, shelf, mug, 5)

        first = handler.handle(_payload(), store_id="TY1")
        again = handler.handle(_payload(), store_id="TY1")

        assert again.status == IngestStatus.DUPLICATE
        assert again.order_id == first.order_id
        assert db.stock(shelf.id, mug.id).reserved_quantity == 2

    def test_matches_by_merchant_sku(self):
        db, shelf, _, handler = self._setup()
        bowl = seed_product(db, "Bowl", None, sku="BOWL-SKU")
        put_stock(db, shelf, bowl, 3)

        result = handler.handle(_payload(lines=[{"merchantSku": "BOWL-SKU", "quantity": 3}]))

        assert result.status == IngestStatus.CREATED
        assert db.stock(shelf.id, bowl.id).reserved_quantity == 3

    def test_set_line_reserves_components(self):
        db, shelf, mug, handler = self._setup()
        plate = seed_product(db, "Plate", "PLT-1")
        seed_set(db, "Breakfast", "SET-1", [(mug, 2, "5.00"), (plate, 1, "8.00")])
        put_stock(db, shelf, mug, 4)
        put_stock(db, shelf, plate, 2)

        result = handler.handle(
            _payload(lines=[{"barcode": "SET-1", "quantity": 2, "lineUnitPrice": 18, "lineNo": 1}])
        )

        order = db.orders[result.order_id]
        assert sorted((i.barcode, i.quantity, i.line_no) for i in order.items) == [
            ("MUG-1", 4, 100),
            ("PLT-1", 2, 101),
        ]
        assert db.stock(shelf.id, mug.id).available_quantity == 0

    def test_success_clears_quarantine(self):
        db, shelf, mug, handler = self._setup()
        parked = handler.handle(_payload())
        assert parked.status == IngestStatus.QUARANTINED

        put_stock(db, shelf, mug, 5)
        result = handler.handle(_payload())

        assert result.status == IngestStatus.CREATED
        assert db.faulty_orders == {}

    def test_stock_on_unsellable_shelves_is_not_reserved(self):
        db, _, mug, handler = self._setup()
        damaged = seed_shelf(db, "DMG-01", ShelfType.DAMAGED)
        put_stock(db, damaged, mug, 5)

        result = handler.handle(_payload(), store_id="TY1")

        assert result.status == IngestStatus.QUARANTINED
        assert result.missing_barcodes == ["MUG-1"]
        assert db.stock(damaged.id, mug.id).reserved_quantity == 0

    @pytest.mark.parametrize("total", ["Infinity", "NaN", "1e40"])
    def test_non_finite_or_oversized_total_is_invalid_data(self, total):
        db, shelf, mug, handler = self._setup()
        put_stock(db, shelf, mug, 5)

        result = handler.handle(_payload(totalPrice=total), store_id="TY1")

        assert result.status == IngestStatus.QUARANTINED
        assert result.error_reason == "INVALID_DATA"
        assert db.faulty_orders[result.faulty_order_id].total_price is None
        assert db.stock(shelf.id, mug.id).reserved_quantity == 0

    def test_non_finite_line_price_is_invalid_data(self):
        db, shelf, mug, handler = self._setup()
        put_stock(db, shelf, mug, 5)

        result = handler.handle(
            _payload(lines=[{"barcode": "MUG-1", "quantity": 1, "lineUnitPrice": "-Infinity"}])
        )

        assert result.error_reason == "INVALID_DATA"

    def test_duplicate_clears_stale_quarantine_row(self):
        db, shelf, mug, handler = self._setup()
        put_stock(db, shelf, mug, 5)
        created = handler.handle(_payload(), store_id="TY1")
        stale = FaultyOrder(None, "TY1", "PKG-1", _payload(), ["MUG-1"])
        db.faulty_orders[stale.id] = stale

        result = RetryFaultyOrderHandler(uow_factory_for(db), ingest=handler).handle(stale.id)

        assert result.status == IngestStatus.DUPLICATE
        assert result.order_id == created.order_id
        assert db.faulty_orders == {}
