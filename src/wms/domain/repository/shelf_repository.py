"""Abstract repositories for shelves and their stock rows."""

from __future__ import annotations

from abc import ABC, abstractmethod

from wms.domain.model.shelf import Shelf, ShelfStock, ShelfType


class ShelfRepository(ABC):

    @abstractmethod
    def get_by_id(self, shelf_id: str) -> Shelf | None:
        """Return a shelf by its ID, or None."""

    @abstractmethod
    def get_by_barcode(self, barcode: str) -> Shelf | None:
        """Return a shelf by its unique barcode, or None."""

    @abstractmethod
    def list_by_type(self, shelf_type: ShelfType) -> list[Shelf]:
        """Return active shelves of a type ordered by sort order, then barcode."""

    @abstractmethod
    def list_all(self) -> list[Shelf]:
        """Return every shelf, active or not."""

    @abstractmethod
    def save(self, shelf: Shelf) -> None:
        """Persist a new or updated shelf."""


class ShelfStockRepository(ABC):
    """Stock rows, unique per (shelf, product).

    ``get_for_update`` is the pessimistic lock every ledger mutation
    starts with. The lock is held until the unit of work ends.
    """

    @abstractmethod
    def get_for_update(self, shelf_id: str, product_id: str) -> ShelfStock | None:
        """Return the row (soft-deleted included) and lock it, or None."""

    @abstractmethod
    def list_for_product(self, product_id: str) -> list[ShelfStock]:
        """Return the live (not soft-deleted) rows holding a product."""

    @abstractmethod
    def list_for_shelf(self, shelf_id: str) -> list[ShelfStock]:
        """Return the live rows on a shelf."""

    @abstractmethod
    def add(self, stock: ShelfStock) -> None:
        """Insert a new row."""

    @abstractmethod
    def save(self, stock: ShelfStock) -> None:
        """Persist changes to an existing row."""
