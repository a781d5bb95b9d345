"""CLI commands for waybills."""

from __future__ import annotations

import click

from wms.domain.exceptions import DomainException
from wms.domain.model.waybill import WaybillType
from wms.infrastructure.bootstrap import create_waybill_handler


@click.command("create")
@click.option("--order", "order_id", default=None, help="Order the waybill covers.")
@click.option("--type", "waybill_type", type=click.Choice([t.value for t in WaybillType]),
              default=WaybillType.DISPATCH.value, show_default=True)
@click.option("--notes", default=None)
def waybill_create(order_id: str | None, waybill_type: str, notes: str | None) -> None:
    """Allocate the next waybill number."""
    handler = create_waybill_handler()

    try:
        dto = handler.handle(order_id=order_id, waybill_type=WaybillType(waybill_type), notes=notes)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Waybill {dto.waybill_number} created")
