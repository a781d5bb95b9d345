"""Application service: Retry Faulty Order use case.

Re-runs ingestion on the stored payload. Success deletes the quarantine
row; failure bumps its retry count and records the current shortfall.
"""

from __future__ import annotations

from wms.application.dto import IngestResult
from wms.application.ingest_order import IngestOrderHandler
from wms.domain.exceptions import EntityNotFoundError
from wms.domain.repository.unit_of_work import UnitOfWorkFactory


class RetryFaultyOrderHandler:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        ingest: IngestOrderHandler,
    ) -> None:
        self._uow_factory = uow_factory
        self._ingest = ingest

    def handle(self, faulty_order_id: str) -> IngestResult:
        with self._uow_factory() as uow:
            faulty = uow.faulty_orders.get_by_id(faulty_order_id)
            if faulty is None:
                raise EntityNotFoundError(f"Faulty order '{faulty_order_id}' not found")
            payload = faulty.raw_data
            store_id = faulty.store_id
            integration_id = faulty.integration_id

        return self._ingest.handle(payload, store_id=store_id, integration_id=integration_id)

    def handle_all(self, store_id: str | None = None) -> list[IngestResult]:
        """Retry every quarantined order, optionally for one store."""
        with self._uow_factory() as uow:
            ids = [f.id for f in uow.faulty_orders.list(store_id=store_id)]
        return [self.handle(faulty_order_id) for faulty_order_id in ids]
