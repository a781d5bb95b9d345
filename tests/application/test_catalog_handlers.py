import pytest

from wms.application.add_product import AddProductHandler, SetComponentSpec
from wms.application.add_shelf import AddShelfHandler
from wms.application.decommission_shelf import DecommissionShelfHandler
from wms.application.receive_stock import ReceiveStockHandler
from wms.application.register_store import ListProductInStoreHandler, RegisterStoreHandler
from wms.domain.exceptions import EntityNotFoundError, ValidationError
from wms.domain.model.shelf import ShelfType
from wms.domain.model.store import MarketplaceProvider
from tests.fakes import InMemoryDatabase, uow_factory_for


class TestAddProduct:

    def test_simple_product(self):
        db = InMemoryDatabase()
        product = AddProductHandler(uow_factory_for(db)).handle("Mug", "15.5", barcode="MUG-1")
        assert str(db.products[product.id].price) == "15.50"

    def test_duplicate_barcode(self):
        db = InMemoryDatabase()
        handler = AddProductHandler(uow_factory_for(db))
        handler.handle("Mug", "1", barcode="MUG-1")
        with pytest.raises(ValidationError, match="already in use"):
            handler.handle("Other", "1", barcode="MUG-1")

    def test_set_with_components(self):
        db = InMemoryDatabase()
        handler = AddProductHandler(uow_factory_for(db))
        handler.handle("Mug", "10", barcode="MUG-1")

        bundle = handler.handle(
            "Pair", "18", barcode="SET-1",
            components=[SetComponentSpec("MUG-1", quantity=2, price_share="9")],
        )

        assert bundle.is_set
        assert [(i.quantity, str(i.price_share)) for i in db.set_items] == [(2, "9.00")]

    def test_set_cannot_nest(self):
        db = InMemoryDatabase()
        handler = AddProductHandler(uow_factory_for(db))
        handler.handle("Mug", "10", barcode="MUG-1")
        handler.handle("Pair", "18", barcode="SET-1", components=[SetComponentSpec("MUG-1")])
        with pytest.raises(ValidationError, match="cannot contain another SET"):
            handler.handle("Box", "30", components=[SetComponentSpec("SET-1")])
        assert len(db.products) == 2


class TestShelves:

    def test_damaged_shelf_defaults_to_not_sellable(self):
        db = InMemoryDatabase()
        shelf = AddShelfHandler(uow_factory_for(db)).handle("Damaged", "DMG-01", ShelfType.DAMAGED)
        assert shelf.is_sellable is False

    def test_decommission_requires_empty_shelf(self):
        db = InMemoryDatabase()
        factory = uow_factory_for(db)
        AddShelfHandler(factory).handle("Main", "A-01")
        AddProductHandler(factory).handle("Mug", "1", barcode="MUG-1")
        ReceiveStockHandler(factory).handle("A-01", "MUG-1", 1)

        with pytest.raises(ValidationError, match="still holds"):
            DecommissionShelfHandler(factory).handle("A-01")

    def test_decommission_empty_shelf(self):
        db = InMemoryDatabase()
        factory = uow_factory_for(db)
        shelf = AddShelfHandler(factory).handle("Main", "A-01")
        DecommissionShelfHandler(factory).handle("A-01")
        assert db.shelves[shelf.id].is_active is False


class TestStores:

    def test_register_and_list_product(self):
        db = InMemoryDatabase()
        factory = uow_factory_for(db)
        RegisterStoreHandler(factory).handle("TY1", "Trendyol", MarketplaceProvider.TRENDYOL, seller_id="1")
        AddShelfHandler(factory).handle("Main", "A-01")
        AddProductHandler(factory).handle("Mug", "1", barcode="MUG-1")
        ReceiveStockHandler(factory).handle("A-01", "MUG-1", 3)

        listing = ListProductInStoreHandler(factory).handle("MUG-1", "TY1", store_barcode="TY-MUG")

        stored = db.product_stores[(listing.product_id, "TY1")]
        assert (stored.store_barcode, stored.sellable_quantity, stored.stock_quantity) == ("TY-MUG", 3, 3)

    def test_duplicate_store(self):
        db = InMemoryDatabase()
        handler = RegisterStoreHandler(uow_factory_for(db))
        handler.handle("TY1", "Trendyol", MarketplaceProvider.TRENDYOL)
        with pytest.raises(ValidationError):
            handler.handle("TY1", "Again", MarketplaceProvider.TRENDYOL)

    def test_listing_in_unknown_store(self):
        db = InMemoryDatabase()
        factory = uow_factory_for(db)
        AddProductHandler(factory).handle("Mug", "1", barcode="MUG-1")
        with pytest.raises(EntityNotFoundError):
            ListProductInStoreHandler(factory).handle("MUG-1", "NOPE")
