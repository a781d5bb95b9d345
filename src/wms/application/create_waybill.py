"""Application service: Create Waybill use case.

Numbers are ``IRS<year>`` plus a six-digit sequence, gap-free per year
under normal operation. The sequence comes from a locked counter row
incremented inside the insert transaction, so concurrent creators queue
on the counter instead of racing on ``max(number) + 1``. A unique
violation (e.g. a hand-inserted number) is retried a bounded number of
times with a fresh transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from wms.application.dto import WaybillDTO
from wms.domain.exceptions import DuplicateWaybillNumberError, EntityNotFoundError
from wms.domain.model.waybill import (
    SEQUENCE_DIGITS,
    Waybill,
    WaybillType,
    format_waybill_number,
    waybill_prefix,
)
from wms.domain.repository.unit_of_work import UnitOfWorkFactory

logger = logging.getLogger(__name__)

MAX_NUMBERING_ATTEMPTS = 5


class CreateWaybillHandler:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        max_attempts: int = MAX_NUMBERING_ATTEMPTS,
    ) -> None:
        self._uow_factory = uow_factory
        self._max_attempts = max_attempts

    def handle(
        self,
        order_id: str | None = None,
        waybill_type: WaybillType = WaybillType.DISPATCH,
        notes: str | None = None,
        year: int | None = None,
    ) -> WaybillDTO:
        year = year or datetime.now(timezone.utc).year
        counter = f"waybill:{waybill_prefix(year)}"

        attempt = 0
        while True:
            attempt += 1
            try:
                with self._uow_factory() as uow:
                    store_id = None
                    if order_id is not None:
                        order = uow.orders.get_by_id(order_id)
                        if order is None:
                            raise EntityNotFoundError(f"Order '{order_id}' not found")
                        store_id = order.store_id

                    if attempt > 1:
                        # Skip past numbers taken outside the counter.
                        taken = [
                            int(w.waybill_number[-SEQUENCE_DIGITS:])
                            for w in uow.waybills.list_for_prefix(waybill_prefix(year))
                        ]
                        uow.sequences.ensure_at_least(counter, max(taken, default=0))
                    number = format_waybill_number(year, uow.sequences.next_value(counter))
                    waybill = Waybill(
                        waybill_number=number,
                        order_id=order_id,
                        store_id=store_id,
                        type=waybill_type,
                        notes=notes,
                    )
                    uow.waybills.add(waybill)
                    uow.commit()
            except DuplicateWaybillNumberError as exc:
                logger.warning("Waybill number clash on attempt %d: %s", attempt, exc)
                if attempt >= self._max_attempts:
                    raise
                continue

            logger.info("Created waybill %s", waybill.waybill_number)
            return WaybillDTO(
                id=waybill.id,
                waybill_number=waybill.waybill_number,
                order_id=waybill.order_id,
                store_id=waybill.store_id,
                type=waybill.type.value,
                created_at=waybill.created_at.strftime("%Y-%m-%d %H:%M UTC"),
            )
