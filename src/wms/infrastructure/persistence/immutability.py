"""ORM-level guard keeping the stock movement ledger append-only.

Movement rows are audit records: once flushed they may never be
updated or deleted through the ORM. The listeners fire before the SQL
is sent, so the offending flush (and the caller's transaction) fails.
"""

from __future__ import annotations

from sqlalchemy import event

from wms.domain.exceptions import DomainException
from wms.domain.model.stock_movement import StockMovement


class ImmutabilityViolationError(DomainException):
    """An append-only record was about to be modified."""


def _reject_movement_update(mapper, connection, target: StockMovement) -> None:
    raise ImmutabilityViolationError(
        f"Stock movement {target.id} is immutable and cannot be updated"
    )


def _reject_movement_delete(mapper, connection, target: StockMovement) -> None:
    raise ImmutabilityViolationError(
        f"Stock movement {target.id} is immutable and cannot be deleted"
    )


def register_immutability_listeners() -> None:
    """Install the listeners. Call after ``start_mappers()``; idempotent."""
    if not event.contains(StockMovement, "before_update", _reject_movement_update):
        event.listen(StockMovement, "before_update", _reject_movement_update)
    if not event.contains(StockMovement, "before_delete", _reject_movement_delete):
        event.listen(StockMovement, "before_delete", _reject_movement_delete)
