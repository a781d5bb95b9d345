"""FaultyOrder: an incoming order held back because it cannot be stocked."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from uuid import uuid4


class FaultyOrderReason(Enum):
    MISSING_PRODUCTS = "MISSING_PRODUCTS"
    INVALID_DATA = "INVALID_DATA"
    UNKNOWN = "UNKNOWN"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(eq=False)
class FaultyOrder:
    """Quarantined order, unique per ``package_id``.

    ``missing_barcodes`` holds the current shortfall and is replaced on
    every failed retry, so it may shrink as stock arrives.
    """

    integration_id: str | None
    store_id: str | None
    package_id: str
    raw_data: dict
    missing_barcodes: list[str]
    error_reason: FaultyOrderReason = FaultyOrderReason.MISSING_PRODUCTS
    order_number: str | None = None
    retry_count: int = 0
    customer_name: str | None = None
    total_price: Decimal | None = None
    currency_code: str | None = "TRY"
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def record_failed_retry(
        self,
        missing_barcodes: list[str],
        reason: FaultyOrderReason,
    ) -> None:
        self.retry_count += 1
        self.missing_barcodes = list(missing_barcodes)
        self.error_reason = reason
        self.updated_at = _utcnow()
