"""StockMovement: the append-only audit trail of physical quantity deltas."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from wms.domain.exceptions import ValidationError


class MovementType(Enum):
    PICKING = "PICKING"
    PACKING_IN = "PACKING_IN"
    PACKING_OUT = "PACKING_OUT"
    RECEIVING = "RECEIVING"
    TRANSFER = "TRANSFER"
    ADJUSTMENT = "ADJUSTMENT"
    RETURN = "RETURN"
    CANCEL = "CANCEL"


class MovementDirection(Enum):
    IN = "IN"
    OUT = "OUT"


@dataclass(eq=False)
class StockMovement:
    """One row per ledger mutation (two for a transfer).

    Never updated or deleted once written. Use ``record()`` so the
    before/after snapshot is checked against the direction.
    """

    shelf_id: str
    product_id: str
    type: MovementType
    direction: MovementDirection
    quantity: int
    quantity_before: int
    quantity_after: int
    order_id: str | None = None
    route_id: str | None = None
    source_shelf_id: str | None = None
    target_shelf_id: str | None = None
    reference_number: str | None = None
    notes: str | None = None
    user_id: str | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @staticmethod
    def record(
        shelf_id: str,
        product_id: str,
        type: MovementType,
        direction: MovementDirection,
        quantity: int,
        quantity_before: int,
        quantity_after: int,
        **context,
    ) -> StockMovement:
        if quantity <= 0:
            raise ValidationError("Movement quantity must be positive")
        sign = 1 if direction == MovementDirection.IN else -1
        if quantity_after - quantity_before != sign * quantity:
            raise ValidationError(
                f"Movement snapshot {quantity_before} -> {quantity_after} does not "
                f"match {direction.value} {quantity}"
            )
        return StockMovement(
            shelf_id=shelf_id,
            product_id=product_id,
            type=type,
            direction=direction,
            quantity=quantity,
            quantity_before=quantity_before,
            quantity_after=quantity_after,
            **context,
        )

    @property
    def delta(self) -> int:
        return self.quantity_after - self.quantity_before
