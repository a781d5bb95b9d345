"""Product aggregate, SET composition and per-store stock rollups.

The quantity fields on Product and ProductStore are denormalized
aggregates derived from the shelf ledger. They are written only by the
aggregate service inside the ledger's transaction, never by CRUD code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from wms.domain.exceptions import StockInvariantError, ValidationError
from wms.domain.model.value_objects import Money


class ProductType(Enum):
    SIMPLE = "SIMPLE"
    SET = "SET"


@dataclass(eq=False)
class Product:
    """A catalog product as seen by storefronts."""

    id: str
    name: str
    barcode: str | None = None
    sku: str | None = None
    product_type: ProductType = ProductType.SIMPLE
    price: Decimal = Decimal("0.00")
    stock_quantity: int = 0
    sellable_quantity: int = 0
    reserved_quantity: int = 0

    @property
    def is_set(self) -> bool:
        return self.product_type == ProductType.SET

    @staticmethod
    def create(
        name: str,
        barcode: str | None = None,
        sku: str | None = None,
        product_type: ProductType = ProductType.SIMPLE,
        price: str | Decimal = "0.00",
    ) -> Product:
        if not name or not name.strip():
            raise ValidationError("Product name is required")
        return Product(
            id=str(uuid4()),
            name=name.strip(),
            barcode=barcode,
            sku=sku,
            product_type=product_type,
            price=Money.of(price).quantize().amount,
        )

    def apply_rollup(self, stock: int, reserved: int, sellable: int) -> None:
        if min(stock, reserved, sellable) < 0:
            raise StockInvariantError(
                f"Negative aggregate for product {self.id}: "
                f"stock={stock} reserved={reserved} sellable={sellable}"
            )
        if sellable + reserved > stock:
            raise StockInvariantError(
                f"Aggregate for product {self.id} exceeds physical stock: "
                f"sellable={sellable} + reserved={reserved} > stock={stock}"
            )
        self.stock_quantity = stock
        self.reserved_quantity = reserved
        self.sellable_quantity = sellable


@dataclass(eq=False)
class ProductSetItem:
    """One SET product decomposes into ``quantity`` units of a component."""

    set_product_id: str
    component_product_id: str
    quantity: int = 1
    price_share: Decimal = Decimal("0.00")
    sort_order: int = 0
    id: str = field(default_factory=lambda: str(uuid4()))

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValidationError("SET component quantity must be positive")
        if self.set_product_id == self.component_product_id:
            raise ValidationError("A SET product cannot contain itself")


@dataclass(eq=False)
class ProductStore:
    """Per-store listing of a product with the store-scoped rollup.

    Invariant (never written when violated):
        sellable + reservable + committed <= stock, all fields >= 0
    """

    product_id: str
    store_id: str
    store_barcode: str | None = None
    store_sku: str | None = None
    stock_quantity: int = 0
    sellable_quantity: int = 0
    reservable_quantity: int = 0
    committed_quantity: int = 0
    is_active: bool = True
    id: str = field(default_factory=lambda: str(uuid4()))

    def apply_rollup(
        self,
        physical_stock: int,
        sellable: int,
        reserved_delta: int = 0,
        committed_delta: int = 0,
    ) -> None:
        reservable = self.reservable_quantity + reserved_delta
        committed = self.committed_quantity + committed_delta
        stock = physical_stock + committed
        if min(reservable, committed, sellable) < 0:
            raise StockInvariantError(
                f"Negative store aggregate for product {self.product_id} in store "
                f"{self.store_id}: sellable={sellable} reservable={reservable} "
                f"committed={committed}"
            )
        if sellable + reservable + committed > stock:
            raise StockInvariantError(
                f"Store aggregate for product {self.product_id} in store {self.store_id} "
                f"exceeds stock: {sellable} + {reservable} + {committed} > {stock}"
            )
        self.stock_quantity = stock
        self.sellable_quantity = sellable
        self.reservable_quantity = reservable
        self.committed_quantity = committed
