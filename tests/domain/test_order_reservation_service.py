"""Unit tests for the OrderReservationService domain service."""

from decimal import Decimal

import pytest

from wms.domain.exceptions import ValidationError
from wms.domain.model.order import ItemStatus, Order, OrderItem, OrderStatus
from wms.domain.model.shelf import ShelfType
from wms.domain.model.stock_movement import MovementType
from wms.domain.service.order_reservation_service import OrderReservationService
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


def _order(*items: OrderItem, store_id: str | None = "TY1") -> Order:
    return Order.create("PKG-1", list(items), store_id=store_id)


def _item(product, qty: int, line_no: int = 1) -> OrderItem:
    return OrderItem(product_id=product.id, product_name=product.name, quantity=qty, line_no=line_no)


def _setup():
    db = InMemoryDatabase()
    a = seed_shelf(db, "A-01", sort_order=1)
    b = seed_shelf(db, "B-01", sort_order=2)
    mug = seed_product(db, "Mug", "MUG-1")
    store = seed_store(db)
    seed_listing(db, mug, store)
    return db, a, b, mug


class TestExpandLine:

    def test_simple_line_is_one_item(self):
        db, _, _, mug = _setup()
        with FakeUnitOfWork(db) as uow:
            items = OrderReservationService(uow).expand_line(mug, 2, Decimal("9.90"), 3)
        assert len(items) == 1
        assert (items[0].quantity, items[0].line_no, items[0].barcode) == (2, 3, "MUG-1")

    def test_set_line_expands_to_components(self):
        db, _, _, mug = _setup()
        plate = seed_product(db, "Plate", "PLT-1")
        bundle = seed_set(db, "Breakfast", "SET-1", [(mug, 3, "4.00"), (plate, 1, "6.00")])

        with FakeUnitOfWork(db) as uow:
            items = OrderReservationService(uow).expand_line(bundle, 2, Decimal("20.00"), 2)

        assert [(i.product_id, i.quantity, i.line_no) for i in items] == [
            (mug.id, 6, 200),
            (plate.id, 2, 201),
        ]
        assert all(i.is_set_component and i.set_product_id == bundle.id for i in items)
        assert items[0].unit_price == Decimal("4.00")

    def test_set_without_components_rejected(self):
        db, _, _, _ = _setup()
        bundle = seed_set(db, "Empty", "SET-0", [])
        with FakeUnitOfWork(db) as uow:
            with pytest.raises(ValidationError, match="has no components"):
                OrderReservationService(uow).expand_line(bundle, 1, Decimal("1.00"))


class TestPlan:

    def test_spills_over_shelves_in_selection_order(self):
        db, a, b, mug = _setup()
        put_stock(db, a, mug, 3)
        put_stock(db, b, mug, 5)
        item = _item(mug, 6)

        with FakeUnitOfWork(db) as uow:
            plan = OrderReservationService(uow).plan([item])

        assert plan.is_complete
        assert [(x.shelf_id, x.quantity) for x in plan.allocations[item.id]] == [(a.id, 3), (b.id, 3)]

    def test_items_of_one_product_share_availability(self):
        db, a, _, mug = _setup()
        put_stock(db, a, mug, 5)
        first, second = _item(mug, 3, 1), _item(mug, 3, 2)

        with FakeUnitOfWork(db) as uow:
            plan = OrderReservationService(uow).plan([first, second])

        assert plan.shortages == {mug.id: 1}

    def test_reports_every_shortage(self):
        db, a, _, mug = _setup()
        plate = seed_product(db, "Plate", "PLT-1")
        put_stock(db, a, mug, 1)

        with FakeUnitOfWork(db) as uow:
            plan = OrderReservationService(uow).plan([_item(mug, 2), _item(plate, 4, 2)])

        assert plan.shortages == {mug.id: 1, plate.id: 4}


class TestReserveAndPick:

    def test_reserve_marks_items_and_order(self):
        db, a, _, mug = _setup()
        put_stock(db, a, mug, 5)
        order = _order(_item(mug, 2))

        with FakeUnitOfWork(db) as uow:
            service = OrderReservationService(uow)
            service.reserve(order, service.plan(order.items))
            uow.commit()

        assert order.status == OrderStatus.WAITING_PICKING
        assert order.items[0].allocations == [{"shelf_id": a.id, "quantity": 2}]
        assert db.stock(a.id, mug.id).reserved_quantity == 2

    def test_incomplete_plan_is_refused(self):
        db, _, _, mug = _setup()
        order = _order(_item(mug, 2))
        with FakeUnitOfWork(db) as uow:
            service = OrderReservationService(uow)
            with pytest.raises(ValidationError, match="plan has shortages"):
                service.reserve(order, service.plan(order.items))

    def test_pick_then_ship(self):
        db, a, _, mug = _setup()
        put_stock(db, a, mug, 5)
        order = _order(_item(mug, 2))

        with FakeUnitOfWork(db) as uow:
            service = OrderReservationService(uow)
            service.reserve(order, service.plan(order.items))
            service.pick(order, user_id="picker")
            assert order.status == OrderStatus.PICKED
            listing = uow.product_stores.get(mug.id, "TY1")
            assert listing.committed_quantity == 2
            service.ship(order)
            uow.commit()

        assert order.status == OrderStatus.SHIPPED
        assert db.stock(a.id, mug.id).quantity == 3
        listing = db.product_stores[(mug.id, "TY1")]
        assert (listing.committed_quantity, listing.stock_quantity) == (0, 3)
        picks = [m for m in db.movements if m.type == MovementType.PICKING]
        assert len(picks) == 1 and picks[0].order_id == order.id


class TestCancel:

    def test_cancel_reserved_releases(self):
        db, a, _, mug = _setup()
        put_stock(db, a, mug, 5)
        order = _order(_item(mug, 2))
        with FakeUnitOfWork(db) as uow:
            service = OrderReservationService(uow)
            service.reserve(order, service.plan(order.items))
            service.cancel(order, reason="customer")
            uow.commit()

        assert order.status == OrderStatus.CANCELLED
        assert order.items[0].cancel_reason == "customer"
        assert db.stock(a.id, mug.id).reserved_quantity == 0

    def test_cancel_committed_goes_to_return_shelf(self):
        db, a, _, mug = _setup()
        returns = seed_shelf(db, "RET-01", ShelfType.RETURN)
        put_stock(db, a, mug, 5)
        order = _order(_item(mug, 2))

        with FakeUnitOfWork(db) as uow:
            service = OrderReservationService(uow)
            service.reserve(order, service.plan(order.items))
            service.pick(order)
            service.cancel(order)
            uow.commit()

        assert db.stock(returns.id, mug.id).quantity == 2
        assert db.stock(a.id, mug.id).quantity == 3
        cancel = [m for m in db.movements if m.type == MovementType.CANCEL]
        assert cancel[0].shelf_id == returns.id
        assert db.product_stores[(mug.id, "TY1")].committed_quantity == 0

    def test_cancel_committed_without_return_shelf_restores_original_shelves(self):
        db, a, _, mug = _setup()
        put_stock(db, a, mug, 5)
        order = _order(_item(mug, 2))

        with FakeUnitOfWork(db) as uow:
            service = OrderReservationService(uow)
            service.reserve(order, service.plan(order.items))
            service.pick(order)
            service.cancel(order)
            uow.commit()

        assert db.stock(a.id, mug.id).quantity == 5

    def test_shipped_order_cannot_be_cancelled(self):
        db, a, _, mug = _setup()
        put_stock(db, a, mug, 5)
        order = _order(_item(mug, 1))
        with FakeUnitOfWork(db) as uow:
            service = OrderReservationService(uow)
            service.reserve(order, service.plan(order.items))
            service.pick(order)
            service.ship(order)
            with pytest.raises(ValidationError, match="no items that can be cancelled"):
                service.cancel(order)
        assert order.items[0].status == ItemStatus.SHIPPED
