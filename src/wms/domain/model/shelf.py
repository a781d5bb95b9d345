"""Shelf aggregate and its physical stock rows.

A ShelfStock row is the single serialization point for stock: every
reservation, pick, receipt or transfer touches exactly one row per
(shelf, product) pair while holding a row lock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from wms.domain.exceptions import InsufficientStockError, ValidationError


class ShelfType(Enum):
    NORMAL = "NORMAL"
    DAMAGED = "DAMAGED"
    PACKING = "PACKING"
    PICKING = "PICKING"
    RECEIVING = "RECEIVING"
    RETURN = "RETURN"
    RETURN_DAMAGED = "RETURN_DAMAGED"


# Products on these shelf types count as sellable by default.
SELLABLE_SHELF_TYPES = frozenset({ShelfType.NORMAL, ShelfType.PICKING})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(eq=False)
class Shelf:
    """A physical location in a warehouse."""

    id: str
    name: str
    barcode: str
    type: ShelfType = ShelfType.NORMAL
    warehouse_id: str | None = None
    global_slot: int | None = None
    sort_order: int = 0
    is_sellable: bool | None = None
    is_reservable: bool = True
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.is_sellable is None:
            self.is_sellable = self.type in SELLABLE_SHELF_TYPES

    @staticmethod
    def create(
        name: str,
        barcode: str,
        type: ShelfType = ShelfType.NORMAL,
        **kwargs,
    ) -> Shelf:
        if not name or not name.strip():
            raise ValidationError("Shelf name is required")
        if not barcode or not barcode.strip():
            raise ValidationError("Shelf barcode is required")
        return Shelf(id=str(uuid4()), name=name.strip(), barcode=barcode.strip(), type=type, **kwargs)

    def decommission(self) -> None:
        if not self.is_active:
            raise ValidationError(f"Shelf {self.barcode} is already decommissioned")
        self.is_active = False


@dataclass(eq=False)
class ShelfStock:
    """Physical quantity of one product on one shelf.

    Invariants:
    - ``0 <= reserved_quantity <= quantity``
    - ``available_quantity`` (unreserved, pickable) is always >= 0
    """

    shelf_id: str
    product_id: str
    quantity: int = 0
    reserved_quantity: int = 0
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=_utcnow)
    deleted_at: datetime | None = None

    @property
    def available_quantity(self) -> int:
        return self.quantity - self.reserved_quantity

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def reserve(self, qty: int) -> None:
        """Earmark units for an order. Never partially reserves."""
        _require_positive(qty, "Reservation")
        if qty > self.available_quantity:
            raise InsufficientStockError(
                self.product_id, qty, self.available_quantity, shelf_id=self.shelf_id
            )
        self.reserved_quantity += qty

    def release(self, qty: int) -> None:
        """Give back previously reserved units (e.g. on cancellation)."""
        _require_positive(qty, "Release")
        if qty > self.reserved_quantity:
            raise ValidationError(
                f"Cannot release {qty} of product {self.product_id} on shelf "
                f"{self.shelf_id} - only {self.reserved_quantity} currently reserved"
            )
        self.reserved_quantity -= qty

    def decrement(self, qty: int, consume_reservation: bool = True) -> None:
        """Physically remove units from the shelf.

        With ``consume_reservation`` the reservation shrinks by
        ``min(qty, reserved_quantity)`` and only ``quantity`` must cover
        the request. Without it only unreserved units may leave.
        """
        _require_positive(qty, "Decrement")
        if consume_reservation:
            if qty > self.quantity:
                raise InsufficientStockError(
                    self.product_id, qty, self.quantity, shelf_id=self.shelf_id
                )
            self.reserved_quantity -= min(qty, self.reserved_quantity)
        elif qty > self.available_quantity:
            raise InsufficientStockError(
                self.product_id, qty, self.available_quantity, shelf_id=self.shelf_id
            )
        self.quantity -= qty

    def increment(self, qty: int) -> None:
        _require_positive(qty, "Increment")
        self.quantity += qty
        self.deleted_at = None

    def soft_delete(self) -> None:
        self.deleted_at = _utcnow()


def _require_positive(qty: int, what: str) -> None:
    if isinstance(qty, bool) or not isinstance(qty, int):
        raise ValidationError(f"{what} quantity must be an integer")
    if qty <= 0:
        raise ValidationError(f"{what} quantity must be positive")
