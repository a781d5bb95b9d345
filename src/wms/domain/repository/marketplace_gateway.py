"""Outbound port: push stock levels to a marketplace.

Implementations raise RateLimitedError for rate-limit signals and
ProviderSyncError for everything else, timeouts included.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from wms.domain.model.store import Store


@dataclass(frozen=True)
class StockPushItem:
    barcode: str
    quantity: int


@dataclass(frozen=True)
class ItemPushResult:
    barcode: str
    success: bool
    error: str | None = None


@dataclass(frozen=True)
class PushResult:
    """Outcome of one accepted batch call, possibly partially failed."""

    items: list[ItemPushResult]
    batch_request_id: str | None = None
    status_code: int | None = 200
    raw_response: str | None = None
    failed_barcodes: frozenset[str] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "failed_barcodes",
            frozenset(r.barcode for r in self.items if not r.success),
        )

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.items if r.success)

    @property
    def failure_count(self) -> int:
        return len(self.failed_barcodes)


class MarketplaceGateway(ABC):

    @abstractmethod
    def endpoint_for(self, store: Store) -> str:
        """Return the URL a push for this store goes to."""

    @abstractmethod
    def push_stock(self, store: Store, items: list[StockPushItem]) -> PushResult:
        """Send one batch and return per-item outcomes."""
