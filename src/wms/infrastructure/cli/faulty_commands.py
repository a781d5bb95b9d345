"""CLI commands for quarantined (faulty) orders."""

from __future__ import annotations

import click

from wms.application.dto import IngestResult
from wms.application.faulty_orders import DiscardFaultyOrderHandler, ListFaultyOrdersHandler
from wms.domain.exceptions import DomainException
from wms.infrastructure.bootstrap import retry_faulty_order_handler, uow_factory


def _echo_result(result: IngestResult) -> None:
    detail = result.order_id or ", ".join(result.missing_barcodes) or result.error_reason or ""
    click.echo(f"  {result.package_id:<20} {result.status.value:<12} {detail}")


@click.command("list")
@click.option("--store", "store_id", default=None)
@click.option("--barcode", default=None, help="Only packages missing this barcode.")
def faulty_list(store_id: str | None, barcode: str | None) -> None:
    """List quarantined packages, newest first."""
    rows = ListFaultyOrdersHandler(uow_factory()).handle(store_id=store_id, barcode=barcode)
    if not rows:
        click.echo("No quarantined orders.")
        return

    click.echo(f"  {'Package':<20} {'Reason':<18} {'Retries':>7} {'Updated':<22} Missing")
    click.echo(f"  {'-'*80}")
    for f in rows:
        click.echo(
            f"  {f.package_id:<20} {f.error_reason:<18} {f.retry_count:>7} "
            f"{f.updated_at:<22} {', '.join(f.missing_barcodes)}"
        )


@click.command("retry")
@click.argument("faulty_order_id", required=False)
@click.option("--all", "retry_all", is_flag=True, default=False, help="Retry every quarantined order.")
@click.option("--store", "store_id", default=None, help="With --all, only this store.")
def faulty_retry(faulty_order_id: str | None, retry_all: bool, store_id: str | None) -> None:
    """Re-run ingestion for quarantined orders."""
    if not retry_all and not faulty_order_id:
        raise click.ClickException("Give a faulty order ID or --all")

    handler = retry_faulty_order_handler()

    try:
        results = handler.handle_all(store_id=store_id) if retry_all else [handler.handle(faulty_order_id)]
    except DomainException as exc:
        raise click.ClickException(str(exc))

    for result in results:
        _echo_result(result)


@click.command("discard")
@click.argument("faulty_order_id")
def faulty_discard(faulty_order_id: str) -> None:
    """Drop a quarantined package without creating an order."""
    handler = DiscardFaultyOrderHandler(uow_factory())

    try:
        dto = handler.handle(faulty_order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Discarded package {dto.package_id}.")
