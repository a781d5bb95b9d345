"""Abstract repositories for the stock update queue and sync logs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from wms.domain.model.stock_sync import (
    QueueStatus,
    StockSyncLog,
    StockUpdateQueueItem,
    SyncStatus,
)


class StockUpdateQueueRepository(ABC):
    """Rows with status DELETED are invisible to every method but ``get_by_id``."""

    @abstractmethod
    def add(self, item: StockUpdateQueueItem) -> None:
        """Insert a queue row."""

    @abstractmethod
    def get_by_id(self, item_id: str) -> StockUpdateQueueItem | None:
        """Return a row by ID, tombstoned rows included."""

    @abstractmethod
    def lock_pending(self, limit: int) -> list[StockUpdateQueueItem]:
        """Lock up to ``limit`` PENDING rows, ``priority DESC, created_at ASC``.

        Rows already locked by another worker are skipped.
        """

    @abstractmethod
    def list_by_status(self, status: QueueStatus) -> list[StockUpdateQueueItem]:
        """Return rows in a status, oldest first."""

    @abstractmethod
    def list_stale_claims(self, claimed_before: datetime) -> list[StockUpdateQueueItem]:
        """Return PROCESSING rows claimed before a cutoff."""

    @abstractmethod
    def save(self, item: StockUpdateQueueItem) -> None:
        """Persist changes to a row."""


class StockSyncLogRepository(ABC):

    @abstractmethod
    def add(self, log: StockSyncLog) -> None:
        """Insert a log row."""

    @abstractmethod
    def get_by_id(self, log_id: str) -> StockSyncLog | None:
        """Return a log row, or None."""

    @abstractmethod
    def save(self, log: StockSyncLog) -> None:
        """Persist changes to a log row."""

    @abstractmethod
    def list(
        self,
        store_id: str | None = None,
        status: SyncStatus | None = None,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[StockSyncLog]:
        """Return log rows newest first, optionally filtered."""
