"""Deterministic shelf ordering for allocation.

Reservations walk the candidate shelves in a fixed order and consume
them greedily, so the same stock layout always yields the same plan.
"""

from __future__ import annotations

import sys
from typing import Callable

from wms.domain.exceptions import ValidationError
from wms.domain.model.shelf import Shelf, ShelfStock

ShelfCandidate = tuple[Shelf, ShelfStock]


def _slot(shelf: Shelf) -> int:
    # Shelves without a slot go last.
    return sys.maxsize if shelf.global_slot is None else shelf.global_slot


def _by_sort_order(candidate: ShelfCandidate) -> tuple:
    shelf, _ = candidate
    return (shelf.sort_order, _slot(shelf), shelf.barcode)


def _by_global_slot(candidate: ShelfCandidate) -> tuple:
    shelf, _ = candidate
    return (_slot(shelf), shelf.sort_order, shelf.barcode)


def _first_in_first_out(candidate: ShelfCandidate) -> tuple:
    shelf, stock = candidate
    return (stock.created_at, shelf.barcode)


STRATEGIES: dict[str, Callable[[ShelfCandidate], tuple]] = {
    "sort_order": _by_sort_order,
    "global_slot": _by_global_slot,
    "fifo": _first_in_first_out,
}


class ShelfSelector:

    def __init__(self, strategy: str = "sort_order") -> None:
        if strategy not in STRATEGIES:
            raise ValidationError(
                f"Unknown shelf selection strategy '{strategy}'. "
                f"Choose one of: {', '.join(sorted(STRATEGIES))}"
            )
        self.strategy = strategy
        self._key = STRATEGIES[strategy]

    def order(self, candidates: list[ShelfCandidate]) -> list[ShelfCandidate]:
        """Keep only active, sellable and reservable shelves, then sort them."""
        usable = [
            (shelf, stock)
            for shelf, stock in candidates
            if shelf.is_active and shelf.is_sellable and shelf.is_reservable
            and not stock.is_deleted
        ]
        return sorted(usable, key=self._key)
