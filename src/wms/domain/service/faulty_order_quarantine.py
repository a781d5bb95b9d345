"""Domain service: Faulty Order Quarantine.

Orders that cannot be stocked are parked here with their raw payload
so they can be retried once the catalog or the shelves catch up.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from wms.domain.exceptions import EntityNotFoundError
from wms.domain.model.faulty_order import FaultyOrder, FaultyOrderReason
from wms.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class FaultyOrderQuarantine:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def quarantine(
        self,
        integration_id: str | None,
        store_id: str | None,
        package_id: str,
        raw_payload: dict,
        missing_barcodes: list[str],
        reason: FaultyOrderReason,
    ) -> FaultyOrder:
        """Park an order. Raises DuplicatePackageError if already parked."""
        customer = " ".join(
            part for part in (
                raw_payload.get("customerFirstName"),
                raw_payload.get("customerLastName"),
            ) if part
        )
        faulty = FaultyOrder(
            integration_id=integration_id,
            store_id=store_id,
            package_id=package_id,
            raw_data=raw_payload,
            missing_barcodes=sorted(set(missing_barcodes)),
            error_reason=reason,
            order_number=_str_or_none(raw_payload.get("orderNumber")),
            customer_name=customer or None,
            total_price=_decimal_or_none(raw_payload.get("totalPrice")),
            currency_code=raw_payload.get("currencyCode") or "TRY",
        )
        self._uow.faulty_orders.add(faulty)
        logger.warning(
            "Quarantined package %s (%s): missing %s",
            package_id, reason.value, ", ".join(faulty.missing_barcodes) or "-",
        )
        return faulty

    def record_failed_retry(
        self,
        faulty: FaultyOrder,
        missing_barcodes: list[str],
        reason: FaultyOrderReason,
    ) -> FaultyOrder:
        faulty.record_failed_retry(sorted(set(missing_barcodes)), reason)
        self._uow.faulty_orders.save(faulty)
        logger.info(
            "Retry #%d of package %s still failing: %s",
            faulty.retry_count, faulty.package_id, ", ".join(faulty.missing_barcodes) or reason.value,
        )
        return faulty

    def resolve(self, package_id: str) -> bool:
        """Delete the quarantine row for a package if there is one."""
        faulty = self._uow.faulty_orders.get_by_package_id(package_id)
        if faulty is None:
            return False
        self._uow.faulty_orders.delete(faulty)
        logger.info("Package %s left quarantine", package_id)
        return True

    def discard(self, faulty_order_id: str) -> FaultyOrder:
        faulty = self._uow.faulty_orders.get_by_id(faulty_order_id)
        if faulty is None:
            raise EntityNotFoundError(f"Faulty order '{faulty_order_id}' not found")
        self._uow.faulty_orders.delete(faulty)
        return faulty


def _str_or_none(value) -> str | None:
    return None if value is None else str(value)


def _decimal_or_none(value) -> Decimal | None:
    if value is None:
        return None
    try:
        amount = Decimal(str(value))
        return amount.quantize(Decimal("0.01")) if amount.is_finite() else None
    except InvalidOperation:
        return None
