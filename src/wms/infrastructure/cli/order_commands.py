"""CLI commands for the Order aggregate."""

from __future__ import annotations

import json

import click

from wms.application.cancel_order import CancelOrderHandler
from wms.application.dto import IngestStatus, OrderDTO
from wms.application.pick_order import PickOrderHandler
from wms.application.ship_order import ShipOrderHandler
from wms.application.show_order import ShowOrderHandler
from wms.domain.exceptions import DomainException
from wms.infrastructure.bootstrap import ingest_order_handler, uow_factory


def _display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order {dto.id}  (package={dto.package_id}, status={dto.status})")
    click.echo(f"Store:   {dto.store_id or '-'}")
    click.echo(f"Created: {dto.created_at}")
    click.echo()
    click.echo(f"  {'#':>4} {'Product':<24} {'Qty':>4} {'Price':>14} {'Status':<11} Shelves")
    click.echo(f"  {'-'*72}")
    for item in dto.items:
        click.echo(
            f"  {item.line_no:>4} {item.product_name[:24]:<24} {item.quantity:>4} "
            f"{item.unit_price:>14} {item.status:<11} {item.shelves}"
        )
    click.echo(f"  {'-'*72}")
    click.echo(f"  {'Order Total':<30} {dto.total:>20}")


@click.command("ingest")
@click.argument("payload_file", type=click.File("r"))
@click.option("--store", "store_id", default=None, help="Store the package came from.")
@click.option("--integration", "integration_id", default=None)
def order_ingest(payload_file, store_id: str | None, integration_id: str | None) -> None:
    """Ingest a marketplace package from a JSON file ('-' for stdin)."""
    try:
        payload = json.load(payload_file)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Invalid JSON: {exc}")

    handler = ingest_order_handler()

    try:
        result = handler.handle(payload, store_id=store_id, integration_id=integration_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if result.status == IngestStatus.CREATED:
        click.echo(f"Package {result.package_id} reserved as order {result.order_id}")
    elif result.status == IngestStatus.DUPLICATE:
        click.echo(f"Package {result.package_id} already ingested")
    else:
        click.echo(
            f"Package {result.package_id} quarantined ({result.error_reason}): "
            f"{', '.join(result.missing_barcodes) or 'invalid data'}"
        )


@click.command("show")
@click.argument("order_ref")
def order_show(order_ref: str) -> None:
    """Show an order by ID or package ID."""
    handler = ShowOrderHandler(uow_factory())

    try:
        dto = handler.handle(order_ref)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_order(dto)


@click.command("pick")
@click.argument("order_id")
@click.option("--user", "user_id", default=None)
def order_pick(order_id: str, user_id: str | None) -> None:
    """Pick every reserved item of an order off its shelves."""
    handler = PickOrderHandler(uow_factory())

    try:
        dto = handler.handle(order_id, user_id=user_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {dto.id} picked  (status={dto.status})")


@click.command("ship")
@click.argument("order_id")
@click.option("--tracking", "cargo_tracking_number", default=None)
def order_ship(order_id: str, cargo_tracking_number: str | None) -> None:
    """Hand a picked order to the carrier."""
    handler = ShipOrderHandler(uow_factory())

    try:
        dto = handler.handle(order_id, cargo_tracking_number=cargo_tracking_number)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {dto.id} shipped  (status={dto.status})")


@click.command("cancel")
@click.argument("order_id")
@click.option("--reason", default=None)
@click.option("--return-shelf", "return_shelf_ref", default=None,
              help="Shelf for already picked units (default: first RETURN shelf).")
@click.option("--user", "user_id", default=None)
def order_cancel(order_id: str, reason: str | None, return_shelf_ref: str | None, user_id: str | None) -> None:
    """Cancel an order, releasing or returning its stock."""
    handler = CancelOrderHandler(uow_factory())

    try:
        dto = handler.handle(order_id, reason=reason, return_shelf_ref=return_shelf_ref, user_id=user_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {dto.id} cancelled  (status={dto.status})")
