import pytest

from wms.application.dto import IngestStatus
from wms.application.faulty_orders import DiscardFaultyOrderHandler, ListFaultyOrdersHandler
from wms.application.ingest_order import IngestOrderHandler
from wms.application.retry_faulty_order import RetryFaultyOrderHandler
from wms.domain.exceptions import EntityNotFoundError
from tests.fakes import InMemoryDatabase, put_stock, seed_product, seed_shelf, uow_factory_for


def _package(package_id, barcode="MUG-1", qty=2):
    return {"shipmentPackageId": package_id, "lines": [{"barcode": barcode, "quantity": qty}]}


class TestRetryFaultyOrder:

    def _setup(self):
        db = InMemoryDatabase()
        shelf = seed_shelf(db, "A-01")
        mug = seed_product(db, "Mug", "MUG-1")
        factory = uow_factory_for(db)
        ingest = IngestOrderHandler(factory)
        return db, shelf, mug, factory, ingest

    def test_retry_after_stock_arrives_creates_order(self):
        db, shelf, mug, factory, ingest = self._setup()
        parked = ingest.handle(_package("PKG-1"), store_id="TY1")
        put_stock(db, shelf, mug, 2)

        result = RetryFaultyOrderHandler(factory, ingest).handle(parked.faulty_order_id)

        assert result.status == IngestStatus.CREATED
        assert db.orders[result.order_id].store_id == "TY1"
        assert db.faulty_orders == {}

    def test_failed_retry_counts(self):
        db, _, _, factory, ingest = self._setup()
        parked = ingest.handle(_package("PKG-1"))

        RetryFaultyOrderHandler(factory, ingest).handle(parked.faulty_order_id)

        assert db.faulty_orders[parked.faulty_order_id].retry_count == 1

    def test_retry_all_for_one_store(self):
        db, shelf, mug, factory, ingest = self._setup()
        ingest.handle(_package("PKG-1"), store_id="TY1")
        ingest.handle(_package("PKG-2"), store_id="HB1")
        put_stock(db, shelf, mug, 10)

        results = RetryFaultyOrderHandler(factory, ingest).handle_all(store_id="TY1")

        assert [r.package_id for r in results] == ["PKG-1"]
        assert [f.package_id for f in db.faulty_orders.values()] == ["PKG-2"]

    def test_unknown_faulty_order(self):
        _, _, _, factory, ingest = self._setup()
        with pytest.raises(EntityNotFoundError):
            RetryFaultyOrderHandler(factory, ingest).handle("nope")


class TestBrowseAndDiscard:

    def test_list_filters_by_missing_barcode(self):
        db = InMemoryDatabase()
        factory = uow_factory_for(db)
        ingest = IngestOrderHandler(factory)
        ingest.handle(_package("PKG-1", "AAA"))
        ingest.handle(_package("PKG-2", "BBB"))

        rows = ListFaultyOrdersHandler(factory).handle(barcode="BBB")

        assert [r.package_id for r in rows] == ["PKG-2"]
        assert rows[0].missing_barcodes == ["BBB"]

    def test_discard(self):
        db = InMemoryDatabase()
        factory = uow_factory_for(db)
        parked = IngestOrderHandler(factory).handle(_package("PKG-1"))

        dto = DiscardFaultyOrderHandler(factory).handle(parked.faulty_order_id)

        assert dto.package_id == "PKG-1"
        assert db.faulty_orders == {}
