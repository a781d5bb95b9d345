from decimal import Decimal

import pytest

from wms.domain.exceptions import DuplicatePackageError, EntityNotFoundError
from wms.domain.model.faulty_order import FaultyOrderReason
from wms.domain.service.faulty_order_quarantine import FaultyOrderQuarantine
from tests.fakes import FakeUnitOfWork, InMemoryDatabase

PAYLOAD = {
    "orderNumber": 778899,
    "customerFirstName": "Ayse",
    "customerLastName": "Yilmaz",
    "totalPrice": "149.9",
    "currencyCode": "TRY",
}


def _quarantine(db, package_id="PKG-1", missing=("B2", "B1", "B2")):
    with FakeUnitOfWork(db) as uow:
        faulty = FaultyOrderQuarantine(uow).quarantine(
            "INT-1", "TY1", package_id, PAYLOAD, list(missing),
            FaultyOrderReason.MISSING_PRODUCTS,
        )
        uow.commit()
    return faulty


class TestQuarantine:

    def test_copies_order_header_from_payload(self):
        db = InMemoryDatabase()
        faulty = _quarantine(db)

        assert faulty.missing_barcodes == ["B1", "B2"]
        assert faulty.order_number == "778899"
        assert faulty.customer_name == "Ayse Yilmaz"
        assert faulty.total_price == Decimal("149.90")
        assert faulty.retry_count == 0
        assert len(db.faulty_orders) == 1

    def test_unparseable_total_is_dropped(self):
        db = InMemoryDatabase()
        with FakeUnitOfWork(db) as uow:
            faulty = FaultyOrderQuarantine(uow).quarantine(
                None, None, "PKG-9", {"totalPrice": "n/a"}, [], FaultyOrderReason.INVALID_DATA,
            )
        assert faulty.total_price is None
        assert faulty.customer_name is None

    def test_same_package_twice_is_rejected(self):
        db = InMemoryDatabase()
        _quarantine(db)
        with pytest.raises(DuplicatePackageError):
            _quarantine(db)


class TestRetryBookkeeping:

    def test_failed_retry_replaces_missing_barcodes(self):
        db = InMemoryDatabase()
        faulty_id = _quarantine(db).id

        with FakeUnitOfWork(db) as uow:
            quarantine = FaultyOrderQuarantine(uow)
            quarantine.record_failed_retry(uow.faulty_orders.get_by_id(faulty_id), ["B2"],
                                           FaultyOrderReason.MISSING_PRODUCTS)
            uow.commit()

        faulty = db.faulty_orders[faulty_id]
        assert faulty.retry_count == 1
        assert faulty.missing_barcodes == ["B2"]

    def test_resolve_removes_row(self):
        db = InMemoryDatabase()
        _quarantine(db)
        with FakeUnitOfWork(db) as uow:
            assert FaultyOrderQuarantine(uow).resolve("PKG-1") is True
            assert FaultyOrderQuarantine(uow).resolve("PKG-1") is False
            uow.commit()
        assert db.faulty_orders == {}

    def test_discard_unknown(self):
        db = InMemoryDatabase()
        with FakeUnitOfWork(db) as uow:
            with pytest.raises(EntityNotFoundError):
                FaultyOrderQuarantine(uow).discard("nope")
