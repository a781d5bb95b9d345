import pytest

from wms.application.queue_admin import (
    DeleteQueueItemHandler,
    EnqueueStockUpdateHandler,
    ReplayFailedSyncHandler,
    RequeueStuckItemsHandler,
)
from wms.application.stock_sync_batcher import StockSyncBatcher
from wms.application.sync_reports import QueueStatusHandler, SyncStatsHandler
from wms.domain.exceptions import EntityNotFoundError, ProviderSyncError, ValidationError
from wms.domain.model.stock_sync import QueueStatus, StockUpdateReason, SyncStatus
from wms.domain.model.store import MarketplaceProvider
from tests.fakes import (
    FakeMarketplaceGateway,
    InMemoryDatabase,
    seed_listing,
    seed_product,
    seed_store,
    uow_factory_for,
)


def _setup(errors=None):
    db = InMemoryDatabase()
    mug = seed_product(db, "Mug", "MUG-1")
    seed_listing(db, mug, seed_store(db, "TY1"))
    seed_listing(db, mug, seed_store(db, "TY2"))
    factory = uow_factory_for(db)
    gateway = FakeMarketplaceGateway(errors=errors)
    batcher = StockSyncBatcher(factory, {MarketplaceProvider.TRENDYOL: gateway}, max_attempts=1)
    return db, mug, factory, batcher


class TestEnqueue:

    def test_manual_enqueue_for_every_listing(self):
        db, _, factory, _ = _setup()

        assert EnqueueStockUpdateHandler(factory).handle("MUG-1") == 2
        assert {q.store_id for q in db.queue_rows()} == {"TY1", "TY2"}
        assert all(q.priority == 50 for q in db.queue_rows())

    def test_manual_enqueue_for_one_store(self):
        db, _, factory, _ = _setup()
        EnqueueStockUpdateHandler(factory).handle("MUG-1", store_id="TY2")
        assert [(q.store_id, q.reason) for q in db.queue_rows()] == [("TY2", StockUpdateReason.MANUAL)]

    def test_unknown_store(self):
        _, _, factory, _ = _setup()
        with pytest.raises(EntityNotFoundError):
            EnqueueStockUpdateHandler(factory).handle("MUG-1", store_id="XX")


class TestStuckAndReplay:

    def test_requeue_stuck_rows_of_one_store(self):
        db, _, factory, batcher = _setup(errors=[ProviderSyncError("down"), ProviderSyncError("down")])
        EnqueueStockUpdateHandler(factory).handle("MUG-1")
        batcher.run_once()
        assert len(db.queue_rows(QueueStatus.STUCK)) == 2

        assert RequeueStuckItemsHandler(factory).handle(store_id="TY1") == 1

        row = next(q for q in db.queue_rows() if q.store_id == "TY1")
        assert (row.status, row.attempts) == (QueueStatus.PENDING, 0)

    def test_replay_failed_batch(self):
        db, mug, factory, batcher = _setup(errors=[ProviderSyncError("down")])
        EnqueueStockUpdateHandler(factory).handle("MUG-1", store_id="TY1")
        batcher.run_once()
        (log,) = db.sync_logs.values()

        assert ReplayFailedSyncHandler(factory).handle(log.id) == 1
        pending = db.queue_rows(QueueStatus.PENDING)
        assert [(q.product_id, q.store_id) for q in pending] == [(mug.id, "TY1")]

    def test_successful_batch_cannot_be_replayed(self):
        db, _, factory, batcher = _setup()
        EnqueueStockUpdateHandler(factory).handle("MUG-1", store_id="TY1")
        batcher.run_once()
        (log,) = db.sync_logs.values()
        with pytest.raises(ValidationError, match="Only failed batches"):
            ReplayFailedSyncHandler(factory).handle(log.id)

    def test_replay_all_failed(self):
        db, _, factory, batcher = _setup(errors=[ProviderSyncError("a"), ProviderSyncError("b")])
        EnqueueStockUpdateHandler(factory).handle("MUG-1")
        batcher.run_once()

        assert ReplayFailedSyncHandler(factory).handle_all_failed() == 2


class TestDelete:

    def test_tombstoned_rows_are_never_claimed(self):
        db, _, factory, batcher = _setup()
        EnqueueStockUpdateHandler(factory).handle("MUG-1", store_id="TY1")
        (row,) = db.queue_rows()

        DeleteQueueItemHandler(factory).handle(row.id)

        assert db.queue[row.id].status == QueueStatus.DELETED
        assert batcher.run_once().claimed == 0
        with pytest.raises(EntityNotFoundError):
            DeleteQueueItemHandler(factory).handle(row.id)


class TestReports:

    def test_queue_status(self):
        db, _, factory, _ = _setup()
        EnqueueStockUpdateHandler(factory).handle("MUG-1")
        EnqueueStockUpdateHandler(factory).handle("MUG-1", store_id="TY1")

        dto = QueueStatusHandler(factory).handle()

        assert (dto.pending, dto.processing, dto.stuck) == (3, 0, 0)
        assert dto.pending_by_store == {"TY1": 2, "TY2": 1}
        assert dto.oldest_pending_at is not None

    def test_sync_stats(self):
        db, _, factory, batcher = _setup(errors=[ProviderSyncError("gateway down", status_code=502)])
        EnqueueStockUpdateHandler(factory).handle("MUG-1")
        batcher.run_once()

        stats = SyncStatsHandler(factory).handle()

        assert (stats.total_batches, stats.successful, stats.failed) == (2, 1, 1)
        assert stats.success_rate == 50.0
        assert stats.by_provider == {"TRENDYOL": 2}
        assert stats.items_pushed == 1
        assert "gateway down" in stats.recent_errors[0]

    def test_sync_stats_for_store_with_no_history(self):
        _, _, factory, _ = _setup()
        stats = SyncStatsHandler(factory).handle(store_id="TY1")
        assert (stats.total_batches, stats.success_rate) == (0, 0.0)
