import click

from wms.infrastructure.bootstrap import engine
from wms.infrastructure.cli.catalog_commands import (
    product_add,
    shelf_add,
    shelf_decommission,
    store_add,
    store_list_product,
)
from wms.infrastructure.cli.faulty_commands import faulty_discard, faulty_list, faulty_retry
from wms.infrastructure.cli.order_commands import (
    order_cancel,
    order_ingest,
    order_pick,
    order_ship,
    order_show,
)
from wms.infrastructure.cli.stock_commands import (
    stock_adjust,
    stock_movements,
    stock_receive,
    stock_show,
    stock_transfer,
)
from wms.infrastructure.cli.sync_commands import (
    queue_delete,
    queue_enqueue,
    queue_requeue_stuck,
    queue_status,
    sync_replay,
    sync_run,
    sync_stats,
)
from wms.infrastructure.cli.waybill_commands import waybill_create
from wms.infrastructure.logging_setup import setup_logging
from wms.infrastructure.persistence.engine import create_schema


@click.group()
def cli() -> None:
    """Warehouse stock reservation and marketplace sync"""
    setup_logging()


@cli.command("init-db")
def init_db() -> None:
    """Create any missing tables."""
    create_schema(engine())
    click.echo("Database ready.")


@cli.group()
def product() -> None:
    """Manage products."""


@cli.group()
def shelf() -> None:
    """Manage shelves."""


@cli.group()
def store() -> None:
    """Manage marketplace stores."""


@cli.group()
def stock() -> None:
    """Move and inspect shelf stock."""


@cli.group()
def order() -> None:
    """Ingest and process orders."""


@cli.group()
def faulty() -> None:
    """Inspect and retry quarantined orders."""


@cli.group()
def queue() -> None:
    """Inspect and manage the stock update queue."""


@cli.group()
def sync() -> None:
    """Push stock levels to marketplaces."""


@cli.group()
def waybill() -> None:
    """Manage waybills."""


# Register subcommands
product.add_command(product_add)
shelf.add_command(shelf_add)
shelf.add_command(shelf_decommission)
store.add_command(store_add)
store.add_command(store_list_product)
stock.add_command(stock_receive)
stock.add_command(stock_transfer)
stock.add_command(stock_adjust)
stock.add_command(stock_show)
stock.add_command(stock_movements)
order.add_command(order_ingest)
order.add_command(order_show)
order.add_command(order_pick)
order.add_command(order_ship)
order.add_command(order_cancel)
faulty.add_command(faulty_list)
faulty.add_command(faulty_retry)
faulty.add_command(faulty_discard)
queue.add_command(queue_status)
queue.add_command(queue_enqueue)
queue.add_command(queue_requeue_stuck)
queue.add_command(queue_delete)
sync.add_command(sync_run)
sync.add_command(sync_stats)
sync.add_command(sync_replay)
waybill.add_command(waybill_create)
