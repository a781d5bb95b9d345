"""Waybill: a dispatch document numbered sequentially per year."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from wms.domain.exceptions import ValidationError

WAYBILL_PREFIX = "IRS"
SEQUENCE_DIGITS = 6


class WaybillType(Enum):
    DISPATCH = "DISPATCH"
    RETURN = "RETURN"


class WaybillStatus(Enum):
    CREATED = "CREATED"
    PRINTED = "PRINTED"
    CANCELLED = "CANCELLED"


def waybill_prefix(year: int) -> str:
    return f"{WAYBILL_PREFIX}{year}"


def format_waybill_number(year: int, sequence: int) -> str:
    """``IRS<year>`` followed by the sequence zero-padded to 6 digits."""
    if sequence <= 0:
        raise ValidationError("Waybill sequence must be positive")
    if sequence >= 10 ** SEQUENCE_DIGITS:
        raise ValidationError(f"Waybill sequence for {year} is exhausted")
    return f"{waybill_prefix(year)}{sequence:0{SEQUENCE_DIGITS}d}"


@dataclass(eq=False)
class Waybill:
    waybill_number: str
    order_id: str | None
    store_id: str | None
    type: WaybillType = WaybillType.DISPATCH
    status: WaybillStatus = WaybillStatus.CREATED
    notes: str | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
