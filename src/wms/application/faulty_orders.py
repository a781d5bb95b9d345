"""Application services: browse and discard quarantined orders."""

from __future__ import annotations

import logging

from wms.application.dto import FaultyOrderDTO
from wms.domain.model.faulty_order import FaultyOrder
from wms.domain.repository.unit_of_work import UnitOfWorkFactory
from wms.domain.service.faulty_order_quarantine import FaultyOrderQuarantine

logger = logging.getLogger(__name__)


def _to_dto(faulty: FaultyOrder) -> FaultyOrderDTO:
    return FaultyOrderDTO(
        id=faulty.id,
        package_id=faulty.package_id,
        order_number=faulty.order_number,
        store_id=faulty.store_id,
        error_reason=faulty.error_reason.value,
        missing_barcodes=list(faulty.missing_barcodes),
        retry_count=faulty.retry_count,
        customer_name=faulty.customer_name,
        updated_at=faulty.updated_at.strftime("%Y-%m-%d %H:%M UTC"),
    )


class ListFaultyOrdersHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self, store_id: str | None = None, barcode: str | None = None) -> list[FaultyOrderDTO]:
        with self._uow_factory() as uow:
            return [_to_dto(f) for f in uow.faulty_orders.list(store_id=store_id, barcode=barcode)]


class DiscardFaultyOrderHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self, faulty_order_id: str) -> FaultyOrderDTO:
        with self._uow_factory() as uow:
            faulty = FaultyOrderQuarantine(uow).discard(faulty_order_id)
            uow.commit()
        logger.info("Discarded quarantined package %s", faulty.package_id)
        return _to_dto(faulty)
