"""CLI commands for catalog data: products, shelves, stores and listings."""

from __future__ import annotations

import click

from wms.application.add_product import AddProductHandler, SetComponentSpec
from wms.application.add_shelf import AddShelfHandler
from wms.application.decommission_shelf import DecommissionShelfHandler
from wms.application.register_store import ListProductInStoreHandler, RegisterStoreHandler
from wms.domain.exceptions import DomainException
from wms.domain.model.shelf import ShelfType
from wms.domain.model.store import MarketplaceProvider
from wms.infrastructure.bootstrap import uow_factory


def _parse_components(raw: str) -> list[SetComponentSpec]:
    """Parse 'BC1:2:10.00,BC2:1' into SetComponentSpec list."""
    specs: list[SetComponentSpec] = []
    for part in raw.split(","):
        fields = [f.strip() for f in part.strip().split(":")]
        if not fields[0] or len(fields) > 3:
            raise click.BadParameter(
                f"Invalid component '{part}'. Expected 'Barcode[:Qty[:PriceShare]]'."
            )
        try:
            qty = int(fields[1]) if len(fields) > 1 else 1
        except ValueError:
            raise click.BadParameter(f"Invalid quantity '{fields[1]}' for '{fields[0]}'.")
        share = fields[2] if len(fields) > 2 else "0.00"
        specs.append(SetComponentSpec(product_ref=fields[0], quantity=qty, price_share=share))
    return specs


@click.command("add")
@click.option("--name", required=True, help="Product name.")
@click.option("--price", default="0.00", show_default=True, help="Unit price.")
@click.option("--barcode", default=None, help="Product barcode.")
@click.option("--sku", default=None, help="Merchant SKU.")
@click.option("--components", default=None, help="SET components as 'Barcode:Qty:PriceShare,...'.")
def product_add(name: str, price: str, barcode: str | None, sku: str | None, components: str | None) -> None:
    """Add a product; with --components it becomes a SET."""
    specs = _parse_components(components) if components else None
    handler = AddProductHandler(uow_factory())

    try:
        product = handler.handle(name, price, barcode=barcode, sku=sku, components=specs)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Product {product.id} added  ({product.product_type.value}, barcode={product.barcode})")


@click.command("add")
@click.option("--name", required=True, help="Shelf name.")
@click.option("--barcode", required=True, help="Shelf barcode.")
@click.option("--type", "shelf_type", type=click.Choice([t.value for t in ShelfType]),
              default=ShelfType.NORMAL.value, show_default=True)
@click.option("--sort-order", type=int, default=0, show_default=True)
@click.option("--slot", "global_slot", type=int, default=None, help="Warehouse-wide pick slot.")
@click.option("--sellable/--not-sellable", default=None, help="Override the shelf type default.")
@click.option("--reservable/--not-reservable", default=True, show_default=True)
def shelf_add(
    name: str,
    barcode: str,
    shelf_type: str,
    sort_order: int,
    global_slot: int | None,
    sellable: bool | None,
    reservable: bool,
) -> None:
    """Add a shelf."""
    handler = AddShelfHandler(uow_factory())

    try:
        shelf = handler.handle(
            name, barcode, ShelfType(shelf_type),
            sort_order=sort_order, global_slot=global_slot,
            is_sellable=sellable, is_reservable=reservable,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Shelf {shelf.barcode} added  (type={shelf.type.value}, "
        f"sellable={shelf.is_sellable}, reservable={shelf.is_reservable})"
    )


@click.command("decommission")
@click.argument("shelf_ref")
def shelf_decommission(shelf_ref: str) -> None:
    """Take an empty shelf out of service."""
    handler = DecommissionShelfHandler(uow_factory())

    try:
        shelf = handler.handle(shelf_ref)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Shelf {shelf.barcode} decommissioned.")


@click.command("add")
@click.option("--id", "store_id", required=True, help="Store ID.")
@click.option("--name", required=True, help="Store name.")
@click.option("--provider", type=click.Choice([p.value for p in MarketplaceProvider]), required=True)
@click.option("--seller-id", default=None)
@click.option("--api-key", default=None)
@click.option("--api-secret", default=None)
@click.option("--send-stock/--no-send-stock", default=True, show_default=True)
def store_add(
    store_id: str,
    name: str,
    provider: str,
    seller_id: str | None,
    api_key: str | None,
    api_secret: str | None,
    send_stock: bool,
) -> None:
    """Register a marketplace store."""
    handler = RegisterStoreHandler(uow_factory())

    try:
        store = handler.handle(
            store_id, name, MarketplaceProvider(provider),
            seller_id=seller_id, api_key=api_key, api_secret=api_secret, send_stock=send_stock,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Store {store.id} registered  ({store.provider.value})")


@click.command("list-product")
@click.option("--store", "store_id", required=True, help="Store ID.")
@click.option("--product", "product_ref", required=True, help="Product barcode, SKU or ID.")
@click.option("--store-barcode", default=None, help="Barcode the marketplace knows it by.")
@click.option("--store-sku", default=None)
def store_list_product(
    store_id: str,
    product_ref: str,
    store_barcode: str | None,
    store_sku: str | None,
) -> None:
    """List a product in a store so its stock gets pushed there."""
    handler = ListProductInStoreHandler(uow_factory())

    try:
        listing = handler.handle(product_ref, store_id, store_barcode=store_barcode, store_sku=store_sku)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Listed in {listing.store_id}: stock={listing.stock_quantity} "
        f"sellable={listing.sellable_quantity}"
    )
