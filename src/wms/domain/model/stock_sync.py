"""Stock update queue rows and stock sync batch logs.

A queue row is a debounced "recompute and push" request for one
(product, store) pair, not a command. Many rows for the same pair may be
served by a single push; the batch id ties them to the log row that
recorded that push.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from wms.domain.exceptions import ValidationError
from wms.domain.model.store import MarketplaceProvider


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StockUpdateReason(Enum):
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    STOCK_ADDED = "STOCK_ADDED"
    STOCK_REMOVED = "STOCK_REMOVED"
    MANUAL = "MANUAL"

    @property
    def priority(self) -> int:
        return _PRIORITIES[self]


_PRIORITIES = {
    StockUpdateReason.ORDER_CREATED: 100,
    StockUpdateReason.ORDER_CANCELLED: 90,
    StockUpdateReason.STOCK_REMOVED: 80,
    StockUpdateReason.STOCK_ADDED: 70,
    StockUpdateReason.MANUAL: 50,
}


class QueueStatus(Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PROCESSED = "PROCESSED"
    STUCK = "STUCK"
    DELETED = "DELETED"


class SyncStatus(Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    RATE_LIMITED = "RATE_LIMITED"


@dataclass(eq=False)
class StockUpdateQueueItem:
    """PENDING -> PROCESSING (claimed) -> PROCESSED.

    A failed push sends the row back to PENDING with ``attempts`` bumped;
    after the configured bound it becomes STUCK for operators to look at.
    DELETED is a tombstone: the row is kept for history but ignored.
    """

    product_id: str
    store_id: str
    reason: StockUpdateReason
    priority: int | None = None
    status: QueueStatus = QueueStatus.PENDING
    attempts: int = 0
    batch_id: str | None = None
    claimed_at: datetime | None = None
    processed_at: datetime | None = None
    created_at: datetime = field(default_factory=_utcnow)
    id: str = field(default_factory=lambda: str(uuid4()))

    def __post_init__(self) -> None:
        if self.priority is None:
            self.priority = self.reason.priority

    def claim(self, now: datetime | None = None) -> None:
        if self.status != QueueStatus.PENDING:
            raise ValidationError(f"Queue row {self.id} is {self.status.value}, not PENDING")
        self.status = QueueStatus.PROCESSING
        self.claimed_at = now or _utcnow()

    def assign_batch(self, batch_id: str) -> None:
        self.batch_id = batch_id

    def mark_processed(self, now: datetime | None = None) -> None:
        self.status = QueueStatus.PROCESSED
        self.processed_at = now or _utcnow()

    def release_claim(self) -> None:
        """Back to PENDING without counting an attempt (throttled, rate limited)."""
        self.status = QueueStatus.PENDING
        self.claimed_at = None

    def record_failure(self, max_attempts: int) -> None:
        self.attempts += 1
        self.claimed_at = None
        self.status = QueueStatus.STUCK if self.attempts >= max_attempts else QueueStatus.PENDING

    def requeue(self) -> None:
        if self.status != QueueStatus.STUCK:
            raise ValidationError(f"Only STUCK rows can be requeued, row {self.id} is {self.status.value}")
        self.status = QueueStatus.PENDING
        self.attempts = 0

    def soft_delete(self) -> None:
        self.status = QueueStatus.DELETED


@dataclass(eq=False)
class StockSyncLog:
    """One row per batch push attempt. Observability only."""

    batch_id: str
    store_id: str
    provider: MarketplaceProvider
    sync_status: SyncStatus = SyncStatus.PENDING
    total_items: int = 0
    success_items: int = 0
    failed_items: int = 0
    endpoint: str | None = None
    method: str | None = "POST"
    request_payload: str | None = None
    response_payload: str | None = None
    status_code: int | None = None
    error_message: str | None = None
    duration_ms: int | None = None
    batch_request_id: str | None = None
    product_details: list[dict] | None = None
    created_at: datetime = field(default_factory=_utcnow)
    id: str = field(default_factory=lambda: str(uuid4()))

    def mark_success(
        self,
        success_items: int,
        failed_items: int,
        duration_ms: int,
        response_payload: str | None = None,
        status_code: int | None = 200,
        batch_request_id: str | None = None,
    ) -> None:
        self.sync_status = SyncStatus.SUCCESS
        self.success_items = success_items
        self.failed_items = failed_items
        self.duration_ms = duration_ms
        self.response_payload = response_payload
        self.status_code = status_code
        self.batch_request_id = batch_request_id

    def mark_failed(
        self,
        error_message: str,
        duration_ms: int,
        status_code: int | None = None,
        response_payload: str | None = None,
    ) -> None:
        self.sync_status = SyncStatus.FAILED
        self.failed_items = self.total_items
        self.error_message = error_message
        self.duration_ms = duration_ms
        self.status_code = status_code
        self.response_payload = response_payload

    def mark_rate_limited(self, error_message: str, duration_ms: int) -> None:
        self.sync_status = SyncStatus.RATE_LIMITED
        self.error_message = error_message
        self.duration_ms = duration_ms
        self.status_code = 429
