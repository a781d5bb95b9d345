"""CLI commands for shelf stock."""

from __future__ import annotations

import click

from wms.application.adjust_stock import AdjustStockHandler
from wms.application.dto import MovementDTO
from wms.application.receive_stock import ReceiveStockHandler
from wms.application.show_stock import ShowStockHandler
from wms.application.transfer_stock import TransferStockHandler
from wms.domain.exceptions import DomainException
from wms.domain.model.stock_movement import MovementType
from wms.infrastructure.bootstrap import uow_factory


def _display_movement(m: MovementDTO) -> None:
    click.echo(
        f"  {m.created_at:<24} {m.type:<12} {m.direction:<4} {m.quantity:>5} "
        f"{m.quantity_before:>6} -> {m.quantity_after:<6} {m.reference_number or ''}"
    )


@click.command("receive")
@click.option("--shelf", "shelf_ref", required=True, help="Shelf barcode or ID.")
@click.option("--product", "product_ref", required=True, help="Product barcode, SKU or ID.")
@click.option("--qty", "quantity", required=True, type=int, help="Units received.")
@click.option("--return", "is_return", is_flag=True, default=False, help="Customer return, not goods-in.")
@click.option("--ref", "reference_number", default=None, help="Delivery note or return number.")
@click.option("--user", "user_id", default=None)
def stock_receive(
    shelf_ref: str,
    product_ref: str,
    quantity: int,
    is_return: bool,
    reference_number: str | None,
    user_id: str | None,
) -> None:
    """Put received units on a shelf."""
    handler = ReceiveStockHandler(uow_factory())
    movement_type = MovementType.RETURN if is_return else MovementType.RECEIVING

    try:
        m = handler.handle(
            shelf_ref, product_ref, quantity, movement_type,
            reference_number=reference_number, user_id=user_id,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Received {m.quantity} units  (shelf now {m.quantity_after})")


@click.command("transfer")
@click.option("--from", "source_ref", required=True, help="Source shelf barcode or ID.")
@click.option("--to", "target_ref", required=True, help="Target shelf barcode or ID.")
@click.option("--product", "product_ref", required=True)
@click.option("--qty", "quantity", required=True, type=int)
@click.option("--notes", default=None)
@click.option("--user", "user_id", default=None)
def stock_transfer(
    source_ref: str,
    target_ref: str,
    product_ref: str,
    quantity: int,
    notes: str | None,
    user_id: str | None,
) -> None:
    """Move unreserved units between shelves."""
    handler = TransferStockHandler(uow_factory())

    try:
        out, inbound = handler.handle(source_ref, target_ref, product_ref, quantity, notes=notes, user_id=user_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Moved {quantity} units  (source {out.quantity_before} -> {out.quantity_after}, "
        f"target {inbound.quantity_before} -> {inbound.quantity_after})"
    )


@click.command("adjust")
@click.option("--shelf", "shelf_ref", required=True)
@click.option("--product", "product_ref", required=True)
@click.option("--delta", required=True, type=int, help="Signed correction, e.g. -2.")
@click.option("--notes", default=None)
@click.option("--user", "user_id", default=None)
def stock_adjust(shelf_ref: str, product_ref: str, delta: int, notes: str | None, user_id: str | None) -> None:
    """Correct a shelf count."""
    handler = AdjustStockHandler(uow_factory())

    try:
        m = handler.handle(shelf_ref, product_ref, delta, notes=notes, user_id=user_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Adjusted by {delta:+d}  (shelf now {m.quantity_after})")


@click.command("show")
@click.argument("product_ref")
def stock_show(product_ref: str) -> None:
    """Show a product's stock per shelf."""
    handler = ShowStockHandler(uow_factory())

    try:
        dto = handler.handle(product_ref)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"{dto.product_name}  (barcode={dto.barcode})")
    click.echo(f"Stock: {dto.stock}  Reserved: {dto.reserved}  Sellable: {dto.sellable}")
    click.echo()
    click.echo(f"  {'Shelf':<20} {'Type':<15} {'Qty':>6} {'Reserved':>9} {'Available':>10}")
    click.echo(f"  {'-'*64}")
    for line in dto.shelves:
        click.echo(
            f"  {line.shelf_barcode:<20} {line.shelf_type:<15} {line.quantity:>6} "
            f"{line.reserved:>9} {line.available:>10}"
        )


@click.command("movements")
@click.argument("product_ref")
@click.option("--limit", type=int, default=50, show_default=True)
def stock_movements(product_ref: str, limit: int) -> None:
    """Show the latest stock movements of a product."""
    handler = ShowStockHandler(uow_factory())

    try:
        rows = handler.movements(product_ref, limit=limit)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not rows:
        click.echo("No movements recorded.")
        return
    for m in rows:
        _display_movement(m)
