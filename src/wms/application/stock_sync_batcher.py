"""Application service: Stock Sync Batcher.

Drains the stock update queue and pushes coalesced stock levels to the
marketplaces. One ``run_once()`` call is one drain cycle:

  1. return stale claims (crashed workers) to PENDING
  2. claim PENDING rows in one short transaction
  3. group by store, deduplicate by product, split into provider batches
  4. per batch: build the payload and a PROCESSING log, commit, push
     with no transaction open, then record the outcome

Rows are the unit of bookkeeping; products are the unit of pushing. Any
number of rows for one (product, store) pair in a cycle produce one
pushed item, and every one of those rows shares the batch's outcome.

Push outcomes are recorded, never raised. Throttle and backoff state is
per batcher instance.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable
from uuid import uuid4

from wms.application.dto import SyncRunReport
from wms.domain.exceptions import ProviderSyncError, RateLimitedError
from wms.domain.model.stock_sync import (
    QueueStatus,
    StockSyncLog,
    StockUpdateQueueItem,
    SyncStatus,
)
from wms.domain.model.store import MarketplaceProvider, Store
from wms.domain.repository.marketplace_gateway import (
    MarketplaceGateway,
    PushResult,
    StockPushItem,
)
from wms.domain.repository.unit_of_work import UnitOfWork, UnitOfWorkFactory
from wms.domain.service.stock_aggregate_service import StockAggregateService

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000
MAX_PUSH_QUANTITY = 20000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StockSyncBatcher:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        gateways: dict[MarketplaceProvider, MarketplaceGateway],
        fetch_limit: int = 500,
        claim_ttl_seconds: int = 300,
        batch_sizes: dict[MarketplaceProvider, int] | None = None,
        min_push_intervals: dict[MarketplaceProvider, int] | None = None,
        max_push_quantity: int = MAX_PUSH_QUANTITY,
        max_attempts: int = 5,
        rate_limit_backoff_seconds: int = 60,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._gateways = gateways
        self._fetch_limit = fetch_limit
        self._claim_ttl = timedelta(seconds=claim_ttl_seconds)
        self._batch_sizes = batch_sizes or {}
        self._min_intervals = min_push_intervals or {}
        self._max_push_quantity = max_push_quantity
        self._max_attempts = max_attempts
        self._backoff = timedelta(seconds=rate_limit_backoff_seconds)
        self._clock = clock

        self._last_push: dict[str, datetime] = {}
        self._backoff_until: dict[str, datetime] = {}
        self._cycle_lock = threading.Lock()

    # --- Drain cycle ----------------------------------------------------------

    def run_once(self) -> SyncRunReport:
        report = SyncRunReport()
        if not self._cycle_lock.acquire(blocking=False):
            logger.debug("Previous sync cycle still running, skipping")
            return report
        try:
            report.recovered = self._recover_stale_claims()
            claimed = self._claim()
            report.claimed = len(claimed)

            by_store: dict[str, list[tuple[str, str]]] = {}
            for row_id, product_id, store_id in claimed:
                by_store.setdefault(store_id, []).append((row_id, product_id))
            for store_id, rows in by_store.items():
                self._sync_store(store_id, rows, report)
        finally:
            self._cycle_lock.release()

        if report.claimed:
            logger.info(
                "Sync cycle: claimed=%d batches=%d ok=%d failed=%d rate_limited=%d "
                "throttled=%d skipped=%d",
                report.claimed, report.batches, report.succeeded, report.failed,
                report.rate_limited, report.throttled, report.skipped,
            )
        return report

    def _recover_stale_claims(self) -> int:
        with self._uow_factory() as uow:
            stale = uow.stock_queue.list_stale_claims(self._clock() - self._claim_ttl)
            for item in stale:
                item.release_claim()
                uow.stock_queue.save(item)
            uow.commit()
        if stale:
            logger.warning("Returned %d stale queue claims to PENDING", len(stale))
        return len(stale)

    def _claim(self) -> list[tuple[str, str, str]]:
        now = self._clock()
        with self._uow_factory() as uow:
            items = uow.stock_queue.lock_pending(self._fetch_limit)
            for item in items:
                item.claim(now)
                uow.stock_queue.save(item)
            uow.commit()
        return [(item.id, item.product_id, item.store_id) for item in items]

    def _sync_store(
        self,
        store_id: str,
        rows: list[tuple[str, str]],
        report: SyncRunReport,
    ) -> None:
        row_ids = [row_id for row_id, _ in rows]
        with self._uow_factory() as uow:
            store = uow.stores.get_by_id(store_id)
            if store is None or not store.accepts_stock_push:
                self._settle_rows(uow, row_ids, StockUpdateQueueItem.mark_processed)
                uow.commit()
                report.skipped += len(row_ids)
                logger.info("Store %s does not take stock pushes, %d rows settled", store_id, len(row_ids))
                return
            if self._is_throttled(store):
                self._settle_rows(uow, row_ids, StockUpdateQueueItem.release_claim)
                uow.commit()
                report.throttled += len(row_ids)
                return

        # Coalesce: one pushed item per product, in claim (priority) order.
        rows_by_product: dict[str, list[str]] = {}
        for row_id, product_id in rows:
            rows_by_product.setdefault(product_id, []).append(row_id)

        products = list(rows_by_product)
        size = self._batch_sizes.get(store.provider, DEFAULT_BATCH_SIZE)
        for start in range(0, len(products), size):
            chunk = {pid: rows_by_product[pid] for pid in products[start:start + size]}
            if self._is_backing_off(store):
                with self._uow_factory() as uow:
                    held = [row_id for row_ids in chunk.values() for row_id in row_ids]
                    self._settle_rows(uow, held, StockUpdateQueueItem.release_claim)
                    uow.commit()
                report.throttled += len(held)
                continue
            self._push_batch(store, chunk, report)

    # --- One batch ------------------------------------------------------------

    def _push_batch(
        self,
        store: Store,
        chunk: dict[str, list[str]],
        report: SyncRunReport,
    ) -> None:
        batch_id = str(uuid4())
        gateway = self._gateways.get(store.provider)

        items, barcode_to_product, log_id = self._prepare(store, gateway, batch_id, chunk)
        if not items:
            report.skipped += sum(len(ids) for ids in chunk.values())
            return
        report.batches += 1

        started = time.monotonic()
        result: PushResult | None = None
        error: Exception | None = None
        try:
            if gateway is None:
                raise ProviderSyncError(f"No stock gateway for provider {store.provider.value}")
            result = gateway.push_stock(store, items)
        except (RateLimitedError, ProviderSyncError) as exc:
            error = exc
        except Exception as exc:  # noqa: BLE001 - recorded on the log row
            logger.exception("Unexpected error pushing batch %s", batch_id)
            error = ProviderSyncError(f"{type(exc).__name__}: {exc}")
        duration_ms = int((time.monotonic() - started) * 1000)

        now = self._clock()
        with self._uow_factory() as uow:
            log = uow.sync_logs.get_by_id(log_id)
            pushed_rows = [
                row_id
                for barcode, product_id in barcode_to_product.items()
                for row_id in chunk[product_id]
            ]
            if isinstance(error, RateLimitedError):
                log.mark_rate_limited(str(error), duration_ms)
                self._settle_rows(uow, pushed_rows, StockUpdateQueueItem.release_claim)
                wait = (
                    timedelta(seconds=error.retry_after)
                    if error.retry_after is not None
                    else self._backoff
                )
                self._backoff_until[store.id] = now + wait
                report.rate_limited += 1
                logger.warning(
                    "Store %s rate limited, backing off %ss", store.id, wait.total_seconds(),
                )
            elif error is not None:
                log.mark_failed(
                    str(error),
                    duration_ms,
                    status_code=getattr(error, "status_code", None),
                    response_payload=getattr(error, "response_body", None),
                )
                self._settle_rows(uow, pushed_rows, self._fail)
                self._last_push[store.id] = now
                report.failed += 1
                logger.error("Stock push batch %s for store %s failed: %s", batch_id, store.id, error)
            else:
                log.mark_success(
                    result.success_count,
                    result.failure_count,
                    duration_ms,
                    response_payload=result.raw_response,
                    status_code=result.status_code,
                    batch_request_id=result.batch_request_id,
                )
                for barcode, product_id in barcode_to_product.items():
                    if barcode in result.failed_barcodes:
                        self._settle_rows(uow, chunk[product_id], self._fail)
                    else:
                        self._settle_rows(uow, chunk[product_id], StockUpdateQueueItem.mark_processed)
                self._last_push[store.id] = now
                report.succeeded += 1
                logger.info(
                    "Pushed %d items to store %s (batch %s, %d failed)",
                    len(items), store.id, batch_id, result.failure_count,
                )
            uow.sync_logs.save(log)
            uow.commit()

    def _prepare(
        self,
        store: Store,
        gateway: MarketplaceGateway | None,
        batch_id: str,
        chunk: dict[str, list[str]],
    ) -> tuple[list[StockPushItem], dict[str, str], str | None]:
        """Build push items and the PROCESSING log, settling unpushable rows."""
        items: list[StockPushItem] = []
        barcode_to_product: dict[str, str] = {}
        details = []
        with self._uow_factory() as uow:
            aggregates = StockAggregateService(uow)
            for product_id, row_ids in chunk.items():
                for row_id in row_ids:
                    row = uow.stock_queue.get_by_id(row_id)
                    row.assign_batch(batch_id)
                    uow.stock_queue.save(row)

                product = uow.products.get_by_id(product_id)
                listing = uow.product_stores.get(product_id, store.id)
                barcode = None
                if product is not None and listing is not None and listing.is_active:
                    barcode = listing.store_barcode or product.barcode
                if barcode is None or barcode in barcode_to_product:
                    # Nothing sensible to push for this product.
                    self._settle_rows(uow, row_ids, StockUpdateQueueItem.mark_processed)
                    continue

                quantity = aggregates.push_quantity(product, listing)
                quantity = max(0, min(quantity, self._max_push_quantity))
                items.append(StockPushItem(barcode=barcode, quantity=quantity))
                barcode_to_product[barcode] = product_id
                details.append({"productId": product_id, "barcode": barcode, "quantity": quantity})

            log_id = None
            if items:
                log = StockSyncLog(
                    batch_id=batch_id,
                    store_id=store.id,
                    provider=store.provider,
                    total_items=len(items),
                    endpoint=gateway.endpoint_for(store) if gateway else None,
                    request_payload=json.dumps(
                        [{"barcode": i.barcode, "quantity": i.quantity} for i in items]
                    ),
                    product_details=details,
                    sync_status=SyncStatus.PROCESSING,
                )
                uow.sync_logs.add(log)
                log_id = log.id
            uow.commit()
        return items, barcode_to_product, log_id

    # --- Helpers --------------------------------------------------------------

    def _fail(self, item: StockUpdateQueueItem) -> None:
        item.record_failure(self._max_attempts)
        if item.status == QueueStatus.STUCK:
            logger.warning(
                "Queue row %s (product %s, store %s) is stuck after %d attempts",
                item.id, item.product_id, item.store_id, item.attempts,
            )

    @staticmethod
    def _settle_rows(
        uow: UnitOfWork,
        row_ids: list[str],
        action: Callable[[StockUpdateQueueItem], None],
    ) -> None:
        for row_id in row_ids:
            item = uow.stock_queue.get_by_id(row_id)
            if item is None:
                continue
            action(item)
            uow.stock_queue.save(item)

    def _is_throttled(self, store: Store) -> bool:
        if self._is_backing_off(store):
            return True
        last = self._last_push.get(store.id)
        interval = self._min_intervals.get(store.provider, 0)
        return last is not None and self._clock() - last < timedelta(seconds=interval)

    def _is_backing_off(self, store: Store) -> bool:
        until = self._backoff_until.get(store.id)
        return until is not None and self._clock() < until
