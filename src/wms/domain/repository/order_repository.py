"""Abstract repositories for orders and quarantined orders."""

from __future__ import annotations

from abc import ABC, abstractmethod

from wms.domain.model.faulty_order import FaultyOrder
from wms.domain.model.order import Order


class OrderRepository(ABC):

    @abstractmethod
    def get_by_id(self, order_id: str) -> Order | None:
        """Return an order by its ID, or None if not found."""

    @abstractmethod
    @abstractmethod
    def get_for_update(self, order_id: str) -> Order | None:
        """Return an order with its row locked until the transaction ends.

        Pick, ship and cancel decide stock mutations from item states, so
        they must read those states under the lock.
        """

    def get_by_package_id(self, package_id: str) -> Order | None:
        """Return an order by its marketplace package id, or None."""

    @abstractmethod
    def add(self, order: Order) -> None:
        """Insert a new order with its items.

        Raises DuplicatePackageError if the package id is taken.
        """

    @abstractmethod
    def save(self, order: Order) -> None:
        """Persist changes to an existing order and its items."""


class FaultyOrderRepository(ABC):

    @abstractmethod
    def get_by_id(self, faulty_order_id: str) -> FaultyOrder | None:
        """Return a quarantined order by its ID, or None."""

    @abstractmethod
    def get_by_package_id(self, package_id: str) -> FaultyOrder | None:
        """Return a quarantined order by package id, or None."""

    @abstractmethod
    def add(self, faulty_order: FaultyOrder) -> None:
        """Insert a quarantined order.

        Raises DuplicatePackageError if the package id is already held.
        """

    @abstractmethod
    def save(self, faulty_order: FaultyOrder) -> None:
        """Persist changes to a quarantined order."""

    @abstractmethod
    def delete(self, faulty_order: FaultyOrder) -> None:
        """Remove a quarantined order once it has been resolved."""

    @abstractmethod
    def list(
        self,
        store_id: str | None = None,
        barcode: str | None = None,
    ) -> list[FaultyOrder]:
        """Return quarantined orders newest first, optionally filtered."""
