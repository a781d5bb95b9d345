"""Application service: register marketplace stores and product listings."""

from __future__ import annotations

from wms.application.lookups import require_product, require_store
from wms.domain.exceptions import ValidationError
from wms.domain.model.product import ProductStore
from wms.domain.model.store import MarketplaceProvider, Store
from wms.domain.repository.unit_of_work import UnitOfWorkFactory
from wms.domain.service.stock_aggregate_service import StockAggregateService


class RegisterStoreHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(
        self,
        store_id: str,
        name: str,
        provider: MarketplaceProvider,
        seller_id: str | None = None,
        api_key: str | None = None,
        api_secret: str | None = None,
        send_stock: bool = True,
    ) -> Store:
        with self._uow_factory() as uow:
            if uow.stores.get_by_id(store_id) is not None:
                raise ValidationError(f"Store '{store_id}' already exists")
            store = Store(
                id=store_id,
                name=name,
                provider=provider,
                seller_id=seller_id,
                api_key=api_key,
                api_secret=api_secret,
                send_stock=send_stock,
            )
            uow.stores.save(store)
            uow.commit()
        return store


class ListProductInStoreHandler:
    """Create (or reactivate) a product's listing in a store."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(
        self,
        product_ref: str,
        store_id: str,
        store_barcode: str | None = None,
        store_sku: str | None = None,
    ) -> ProductStore:
        with self._uow_factory() as uow:
            product = require_product(uow, product_ref)
            require_store(uow, store_id)
            listing = uow.product_stores.get(product.id, store_id)
            if listing is None:
                listing = ProductStore(product_id=product.id, store_id=store_id)
            listing.store_barcode = store_barcode or listing.store_barcode
            listing.store_sku = store_sku or listing.store_sku
            listing.is_active = True
            uow.product_stores.save(listing)
            if not product.is_set:
                StockAggregateService(uow).refresh(product.id)
            uow.commit()
        return listing
