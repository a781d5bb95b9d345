"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from wms.application.create_waybill import CreateWaybillHandler
from wms.application.ingest_order import IngestOrderHandler
from wms.application.retry_faulty_order import RetryFaultyOrderHandler
from wms.application.stock_sync_batcher import StockSyncBatcher
from wms.domain.model.store import MarketplaceProvider
from wms.domain.repository.marketplace_gateway import MarketplaceGateway
from wms.domain.repository.unit_of_work import UnitOfWorkFactory
from wms.domain.service.shelf_selection import ShelfSelector
from wms.infrastructure.config import Settings, get_settings
from wms.infrastructure.marketplace.hepsiburada_gateway import HepsiburadaGateway
from wms.infrastructure.marketplace.trendyol_gateway import TrendyolGateway
from wms.infrastructure.persistence.engine import create_db_engine, create_session_factory
from wms.infrastructure.persistence.sqlalchemy_unit_of_work import SqlAlchemyUnitOfWork
from wms.infrastructure.scheduler import StockSyncScheduler


@lru_cache
def engine() -> Engine:
    settings = get_settings()
    return create_db_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)


@lru_cache
def session_factory() -> sessionmaker[Session]:
    return create_session_factory(engine())


def uow_factory() -> UnitOfWorkFactory:
    factory = session_factory()
    return lambda: SqlAlchemyUnitOfWork(factory)


def shelf_selector(settings: Settings | None = None) -> ShelfSelector:
    settings = settings or get_settings()
    return ShelfSelector(settings.SHELF_SELECTION_STRATEGY)


def marketplace_gateways(settings: Settings | None = None) -> dict[MarketplaceProvider, MarketplaceGateway]:
    # IKAS has no stock endpoint yet; its batches fail with a clear error.
    settings = settings or get_settings()
    return {
        MarketplaceProvider.TRENDYOL: TrendyolGateway(
            settings.TRENDYOL_BASE_URL,
            timeout=settings.PUSH_TIMEOUT_SECONDS,
            user_agent=settings.HTTP_USER_AGENT,
            poll_attempts=settings.TRENDYOL_BATCH_POLL_ATTEMPTS,
            poll_interval=settings.TRENDYOL_BATCH_POLL_SECONDS,
        ),
        MarketplaceProvider.HEPSIBURADA: HepsiburadaGateway(
            settings.HEPSIBURADA_BASE_URL,
            timeout=settings.PUSH_TIMEOUT_SECONDS,
            user_agent=settings.HTTP_USER_AGENT,
        ),
    }


def ingest_order_handler() -> IngestOrderHandler:
    return IngestOrderHandler(uow_factory(), selector=shelf_selector())


def retry_faulty_order_handler() -> RetryFaultyOrderHandler:
    return RetryFaultyOrderHandler(uow_factory(), ingest=ingest_order_handler())


def create_waybill_handler() -> CreateWaybillHandler:
    return CreateWaybillHandler(uow_factory())


def stock_sync_batcher(settings: Settings | None = None) -> StockSyncBatcher:
    settings = settings or get_settings()
    return StockSyncBatcher(
        uow_factory(),
        marketplace_gateways(settings),
        fetch_limit=settings.QUEUE_FETCH_LIMIT,
        claim_ttl_seconds=settings.QUEUE_CLAIM_TTL_SECONDS,
        batch_sizes=settings.PROVIDER_BATCH_SIZES,
        min_push_intervals=settings.PROVIDER_MIN_PUSH_INTERVAL_SECONDS,
        max_push_quantity=settings.MAX_PUSH_QUANTITY,
        max_attempts=settings.MAX_SYNC_ATTEMPTS,
        rate_limit_backoff_seconds=settings.RATE_LIMIT_BACKOFF_SECONDS,
    )


def stock_sync_scheduler(settings: Settings | None = None) -> StockSyncScheduler:
    settings = settings or get_settings()
    return StockSyncScheduler(
        stock_sync_batcher(settings),
        interval_seconds=settings.STOCK_SYNC_INTERVAL_SECONDS,
    )
