"""Application service: Add Product use case.

SET products are created together with their components; the
components must already exist as SIMPLE products.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from wms.application.lookups import require_product
from wms.domain.exceptions import ValidationError
from wms.domain.model.product import Product, ProductSetItem, ProductType
from wms.domain.model.value_objects import Money
from wms.domain.repository.unit_of_work import UnitOfWorkFactory


@dataclass(frozen=True)
class SetComponentSpec:
    """Input: one component of a SET (barcode/ID, units per set, price share)."""

    product_ref: str
    quantity: int = 1
    price_share: str = "0.00"


class AddProductHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(
        self,
        name: str,
        price: str,
        barcode: str | None = None,
        sku: str | None = None,
        components: list[SetComponentSpec] | None = None,
    ) -> Product:
        """Add a new product to the catalog."""
        with self._uow_factory() as uow:
            if barcode and uow.products.get_by_barcode(barcode) is not None:
                raise ValidationError(f"Barcode '{barcode}' is already in use")
            if sku and uow.products.get_by_sku(sku) is not None:
                raise ValidationError(f"SKU '{sku}' is already in use")

            product_type = ProductType.SET if components else ProductType.SIMPLE
            product = Product.create(
                name, barcode=barcode, sku=sku, product_type=product_type, price=price,
            )
            uow.products.save(product)

            for sort_order, component in enumerate(components or []):
                part = require_product(uow, component.product_ref)
                if part.is_set:
                    raise ValidationError(f"SET {name} cannot contain another SET ({part.name})")
                uow.products.add_set_item(
                    ProductSetItem(
                        set_product_id=product.id,
                        component_product_id=part.id,
                        quantity=component.quantity,
                        price_share=Money.of(component.price_share).quantize().amount,
                        sort_order=sort_order,
                    )
                )
            uow.commit()
        return product
