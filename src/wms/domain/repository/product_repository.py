"""Abstract repositories for products, SET composition and store listings.

Defined in the domain layer so the domain never depends on
infrastructure. Concrete implementations (SQLAlchemy, in-memory) live
elsewhere.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from wms.domain.model.product import Product, ProductSetItem, ProductStore


class ProductRepository(ABC):

    @abstractmethod
    def get_by_id(self, product_id: str) -> Product | None:
        """Return a product by its ID, or None if not found."""

    @abstractmethod
    def get_for_update(self, product_id: str) -> Product | None:
        """Return a product and lock its row for aggregate maintenance."""

    @abstractmethod
    def get_by_barcode(self, barcode: str) -> Product | None:
        """Return a product by its exact barcode, or None if not found."""

    @abstractmethod
    def get_by_sku(self, sku: str) -> Product | None:
        """Return a product by its exact SKU, or None if not found."""

    @abstractmethod
    def list_all(self) -> list[Product]:
        """Return every product in the catalog."""

    @abstractmethod
    def save(self, product: Product) -> None:
        """Persist a new or updated product."""

    @abstractmethod
    def list_set_items(self, set_product_id: str) -> list[ProductSetItem]:
        """Return the components of a SET ordered by ``sort_order``."""

    @abstractmethod
    def list_parent_set_ids(self, component_product_id: str) -> list[str]:
        """Return the IDs of SET products containing a component."""

    @abstractmethod
    def add_set_item(self, item: ProductSetItem) -> None:
        """Attach a component to a SET product."""


class ProductStoreRepository(ABC):

    @abstractmethod
    def get(self, product_id: str, store_id: str) -> ProductStore | None:
        """Return the listing of a product in a store, or None."""

    @abstractmethod
    def list_for_product(self, product_id: str) -> list[ProductStore]:
        """Return every listing of a product, active or not."""

    @abstractmethod
    def save(self, product_store: ProductStore) -> None:
        """Persist a new or updated listing."""
