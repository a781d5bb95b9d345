"""Application services: operator actions on the stock update queue."""

from __future__ import annotations

import logging

from wms.application.lookups import require_product, require_store
from wms.domain.exceptions import EntityNotFoundError, ValidationError
from wms.domain.model.stock_sync import QueueStatus, StockUpdateReason, SyncStatus
from wms.domain.repository.unit_of_work import UnitOfWorkFactory
from wms.domain.service.stock_update_enqueuer import StockUpdateEnqueuer

logger = logging.getLogger(__name__)


class EnqueueStockUpdateHandler:
    """Queue a MANUAL push for one product, in one store or all its stores."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self, product_ref: str, store_id: str | None = None) -> int:
        with self._uow_factory() as uow:
            product = require_product(uow, product_ref)
            enqueuer = StockUpdateEnqueuer(uow)
            if store_id is not None:
                require_store(uow, store_id)
                queued = [enqueuer.enqueue_for_store(product.id, store_id, StockUpdateReason.MANUAL)]
            else:
                queued = enqueuer.enqueue(product.id, StockUpdateReason.MANUAL)
            uow.commit()
        return len(queued)


class ReplayFailedSyncHandler:
    """Re-queue every product of a failed or rate-limited batch."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self, log_id: str) -> int:
        with self._uow_factory() as uow:
            log = uow.sync_logs.get_by_id(log_id)
            if log is None:
                raise EntityNotFoundError(f"Sync log '{log_id}' not found")
            if log.sync_status not in (SyncStatus.FAILED, SyncStatus.RATE_LIMITED):
                raise ValidationError(
                    f"Only failed batches can be replayed, log {log_id} is {log.sync_status.value}"
                )
            enqueuer = StockUpdateEnqueuer(uow)
            product_ids = {d["productId"] for d in log.product_details or []}
            for product_id in sorted(product_ids):
                enqueuer.enqueue_for_store(product_id, log.store_id, StockUpdateReason.MANUAL)
            uow.commit()
        logger.info("Replayed batch %s: %d products re-queued", log.batch_id, len(product_ids))
        return len(product_ids)

    def handle_all_failed(self, store_id: str | None = None, limit: int = 50) -> int:
        with self._uow_factory() as uow:
            ids = [
                log.id
                for log in uow.sync_logs.list(store_id=store_id, status=SyncStatus.FAILED, limit=limit)
            ]
        return sum(self.handle(log_id) for log_id in ids)


class RequeueStuckItemsHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self, store_id: str | None = None) -> int:
        with self._uow_factory() as uow:
            stuck = [
                item for item in uow.stock_queue.list_by_status(QueueStatus.STUCK)
                if store_id is None or item.store_id == store_id
            ]
            for item in stuck:
                item.requeue()
                uow.stock_queue.save(item)
            uow.commit()
        if stuck:
            logger.info("Requeued %d stuck queue rows", len(stuck))
        return len(stuck)


class DeleteQueueItemHandler:
    """Tombstone a queue row; it stays in the table but is never processed."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self, item_id: str) -> None:
        with self._uow_factory() as uow:
            item = uow.stock_queue.get_by_id(item_id)
            if item is None or item.status == QueueStatus.DELETED:
                raise EntityNotFoundError(f"Queue row '{item_id}' not found")
            if item.status == QueueStatus.PROCESSING:
                raise ValidationError(f"Queue row {item_id} is being processed")
            item.soft_delete()
            uow.stock_queue.save(item)
            uow.commit()
