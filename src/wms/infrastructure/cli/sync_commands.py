"""CLI commands for the stock update queue and marketplace sync."""

from __future__ import annotations

import click

from wms.application.queue_admin import (
    DeleteQueueItemHandler,
    EnqueueStockUpdateHandler,
    ReplayFailedSyncHandler,
    RequeueStuckItemsHandler,
)
from wms.application.sync_reports import QueueStatusHandler, SyncStatsHandler
from wms.domain.exceptions import DomainException
from wms.infrastructure.bootstrap import stock_sync_batcher, stock_sync_scheduler, uow_factory


# --- Queue --------------------------------------------------------------------


@click.command("status")
def queue_status() -> None:
    """Show queue depth per state and store."""
    dto = QueueStatusHandler(uow_factory()).handle()
    click.echo(f"Pending: {dto.pending}  Processing: {dto.processing}  Stuck: {dto.stuck}")
    if dto.oldest_pending_at:
        click.echo(f"Oldest pending: {dto.oldest_pending_at}")
    for store_id, count in sorted(dto.pending_by_store.items()):
        click.echo(f"  {store_id:<20} {count:>6}")


@click.command("enqueue")
@click.argument("product_ref")
@click.option("--store", "store_id", default=None, help="Only this store (default: every listing).")
def queue_enqueue(product_ref: str, store_id: str | None) -> None:
    """Queue a manual stock push for a product."""
    handler = EnqueueStockUpdateHandler(uow_factory())

    try:
        count = handler.handle(product_ref, store_id=store_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Queued {count} stock updates.")


@click.command("requeue-stuck")
@click.option("--store", "store_id", default=None)
def queue_requeue_stuck(store_id: str | None) -> None:
    """Give STUCK rows a fresh set of attempts."""
    count = RequeueStuckItemsHandler(uow_factory()).handle(store_id=store_id)
    click.echo(f"Requeued {count} rows.")


@click.command("delete")
@click.argument("item_id")
def queue_delete(item_id: str) -> None:
    """Tombstone one queue row."""
    handler = DeleteQueueItemHandler(uow_factory())

    try:
        handler.handle(item_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Queue row {item_id} deleted.")


# --- Sync ---------------------------------------------------------------------


@click.command("run")
@click.option("--loop", is_flag=True, default=False, help="Keep running on the configured interval.")
def sync_run(loop: bool) -> None:
    """Drain the queue once, or forever with --loop."""
    if loop:
        stock_sync_scheduler().run_forever()
        return

    report = stock_sync_batcher().run_once()
    click.echo(
        f"Claimed {report.claimed} rows in {report.batches} batches: "
        f"ok={report.succeeded} failed={report.failed} rate_limited={report.rate_limited} "
        f"throttled={report.throttled} skipped={report.skipped} recovered={report.recovered}"
    )


@click.command("stats")
@click.option("--hours", type=int, default=24, show_default=True)
@click.option("--store", "store_id", default=None)
def sync_stats(hours: int, store_id: str | None) -> None:
    """Summarize recent push batches."""
    dto = SyncStatsHandler(uow_factory()).handle(hours=hours, store_id=store_id)
    click.echo(f"Batches: {dto.total_batches}  (success rate {dto.success_rate}%)")
    click.echo(f"  ok={dto.successful} failed={dto.failed} rate_limited={dto.rate_limited}")
    click.echo(f"  items pushed={dto.items_pushed} failed={dto.items_failed}")
    click.echo(f"  average duration {dto.average_duration_ms} ms")
    for provider, count in sorted(dto.by_provider.items()):
        click.echo(f"  {provider:<12} {count:>6}")
    for line in dto.recent_errors:
        click.echo(f"  ! {line}")


@click.command("replay")
@click.argument("log_id", required=False)
@click.option("--all-failed", is_flag=True, default=False)
@click.option("--store", "store_id", default=None, help="With --all-failed, only this store.")
def sync_replay(log_id: str | None, all_failed: bool, store_id: str | None) -> None:
    """Re-queue the products of failed push batches."""
    if not all_failed and not log_id:
        raise click.ClickException("Give a sync log ID or --all-failed")

    handler = ReplayFailedSyncHandler(uow_factory())

    try:
        count = handler.handle_all_failed(store_id=store_id) if all_failed else handler.handle(log_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Re-queued {count} products.")
