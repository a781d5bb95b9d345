"""Unit of work backed by one SQLAlchemy session per ``with`` block."""

from __future__ import annotations

from sqlalchemy.orm import Session, sessionmaker

from wms.domain.repository.unit_of_work import UnitOfWork
from wms.infrastructure.persistence.sqlalchemy_repositories import (
    SqlAlchemyFaultyOrderRepository,
    SqlAlchemyOrderRepository,
    SqlAlchemyProductRepository,
    SqlAlchemyProductStoreRepository,
    SqlAlchemySequenceRepository,
    SqlAlchemyShelfRepository,
    SqlAlchemyShelfStockRepository,
    SqlAlchemyStockMovementRepository,
    SqlAlchemyStockSyncLogRepository,
    SqlAlchemyStockUpdateQueueRepository,
    SqlAlchemyStoreRepository,
    SqlAlchemyWaybillRepository,
)


class SqlAlchemyUnitOfWork(UnitOfWork):

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._session: Session | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        session = self._session = self._session_factory()
        self.shelves = SqlAlchemyShelfRepository(session)
        self.shelf_stocks = SqlAlchemyShelfStockRepository(session)
        self.movements = SqlAlchemyStockMovementRepository(session)
        self.products = SqlAlchemyProductRepository(session)
        self.product_stores = SqlAlchemyProductStoreRepository(session)
        self.stores = SqlAlchemyStoreRepository(session)
        self.orders = SqlAlchemyOrderRepository(session)
        self.faulty_orders = SqlAlchemyFaultyOrderRepository(session)
        self.stock_queue = SqlAlchemyStockUpdateQueueRepository(session)
        self.sync_logs = SqlAlchemyStockSyncLogRepository(session)
        self.waybills = SqlAlchemyWaybillRepository(session)
        self.sequences = SqlAlchemySequenceRepository(session)
        return self

    def __exit__(self, *args) -> None:
        # Closing rolls back anything uncommitted. Unlike rollback() it
        # leaves loaded objects readable, which DTO building relies on.
        if self._session is not None:
            self._session.close()
            self._session = None

    @property
    def session(self) -> Session:
        if self._session is None:
            raise RuntimeError("Unit of work used outside its 'with' block")
        return self._session

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        if self._session is not None:
            self._session.rollback()
