"""Abstract append-only repository for stock movements."""

from __future__ import annotations

from abc import ABC, abstractmethod

from wms.domain.model.stock_movement import StockMovement


class StockMovementRepository(ABC):
    """There is deliberately no save/delete: movements are immutable."""

    @abstractmethod
    def add(self, movement: StockMovement) -> None:
        """Append a movement row."""

    @abstractmethod
    def list(
        self,
        product_id: str | None = None,
        shelf_id: str | None = None,
        order_id: str | None = None,
        limit: int | None = None,
    ) -> list[StockMovement]:
        """Return movements oldest first, optionally filtered."""
