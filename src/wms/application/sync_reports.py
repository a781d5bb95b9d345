"""Application services: queue status and sync statistics (queries)."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone

from wms.application.dto import QueueStatusDTO, SyncStatsDTO
from wms.domain.model.stock_sync import QueueStatus, SyncStatus
from wms.domain.repository.unit_of_work import UnitOfWorkFactory


class QueueStatusHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self) -> QueueStatusDTO:
        with self._uow_factory() as uow:
            pending = uow.stock_queue.list_by_status(QueueStatus.PENDING)
            processing = uow.stock_queue.list_by_status(QueueStatus.PROCESSING)
            stuck = uow.stock_queue.list_by_status(QueueStatus.STUCK)

        oldest = min((item.created_at for item in pending), default=None)
        return QueueStatusDTO(
            pending=len(pending),
            processing=len(processing),
            stuck=len(stuck),
            oldest_pending_at=oldest.strftime("%Y-%m-%d %H:%M:%S UTC") if oldest else None,
            pending_by_store=dict(Counter(item.store_id for item in pending)),
        )


class SyncStatsHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self, hours: int = 24, store_id: str | None = None) -> SyncStatsDTO:
        since = datetime.now(timezone.utc) - timedelta(hours=hours)
        with self._uow_factory() as uow:
            logs = uow.sync_logs.list(store_id=store_id, since=since)

        finished = [log for log in logs if log.sync_status != SyncStatus.PROCESSING]
        by_status = Counter(log.sync_status for log in finished)
        durations = [log.duration_ms for log in finished if log.duration_ms is not None]
        total = len(finished)
        return SyncStatsDTO(
            total_batches=total,
            successful=by_status[SyncStatus.SUCCESS],
            failed=by_status[SyncStatus.FAILED],
            rate_limited=by_status[SyncStatus.RATE_LIMITED],
            success_rate=round(by_status[SyncStatus.SUCCESS] / total * 100, 2) if total else 0.0,
            average_duration_ms=round(sum(durations) / len(durations), 1) if durations else 0.0,
            items_pushed=sum(log.success_items for log in finished),
            items_failed=sum(log.failed_items for log in finished),
            by_provider=dict(Counter(log.provider.value for log in finished)),
            recent_errors=[
                f"{log.created_at:%Y-%m-%d %H:%M} {log.store_id}: {log.error_message}"
                for log in finished
                if log.sync_status == SyncStatus.FAILED and log.error_message
            ][:10],
        )
