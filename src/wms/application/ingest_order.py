"""Application service: Ingest Order use case.

Turns one marketplace package into a reserved order, or parks it in
quarantine. Ingestion is all-or-nothing: either every item is reserved
in one transaction, or no shelf row is touched and the package lands in
the faulty order table with every barcode that held it back.
"""

from __future__ import annotations

import logging

from wms.application.dto import IngestResult, IngestStatus
from wms.application.order_payload import (
    OrderLine,
    extract_package_id,
    parse_order_package,
)
from wms.domain.exceptions import (
    DuplicatePackageError,
    EntityNotFoundError,
    InsufficientStockError,
    ValidationError,
)
from wms.domain.model.faulty_order import FaultyOrderReason
from wms.domain.model.order import Order
from wms.domain.model.product import Product
from wms.domain.repository.unit_of_work import UnitOfWork, UnitOfWorkFactory
from wms.domain.service.faulty_order_quarantine import FaultyOrderQuarantine
from wms.domain.service.order_reservation_service import OrderReservationService
from wms.domain.service.shelf_selection import ShelfSelector

logger = logging.getLogger(__name__)


class IngestOrderHandler:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        selector: ShelfSelector | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._selector = selector or ShelfSelector()

    def handle(
        self,
        payload: dict,
        store_id: str | None = None,
        integration_id: str | None = None,
    ) -> IngestResult:
        package_id = extract_package_id(payload) if isinstance(payload, dict) else None
        if not package_id:
            raise ValidationError("Order payload has no package id")

        try:
            return self._ingest(payload, package_id, store_id, integration_id)
        except DuplicatePackageError:
            # Another worker stored or parked the same package first.
            logger.info("Package %s was ingested concurrently, ignoring", package_id)
            return IngestResult(IngestStatus.DUPLICATE, package_id)
        except InsufficientStockError as exc:
            # Stock moved between planning and the locked reservation.
            logger.warning("Reservation race on package %s: %s", package_id, exc)
            with self._uow_factory() as uow:
                product = uow.products.get_by_id(exc.product_id)
                barcode = (product.barcode if product else None) or exc.product_id
                return self._park(
                    uow, payload, package_id, store_id, integration_id,
                    [barcode], FaultyOrderReason.MISSING_PRODUCTS,
                )

    # --- Steps ----------------------------------------------------------------

    def _ingest(
        self,
        payload: dict,
        package_id: str,
        store_id: str | None,
        integration_id: str | None,
    ) -> IngestResult:
        with self._uow_factory() as uow:
            existing = uow.orders.get_by_package_id(package_id)
            if existing is not None:
                logger.debug("Package %s already ingested as order %s", package_id, existing.id)
                if FaultyOrderQuarantine(uow).resolve(package_id):
                    uow.commit()
                return IngestResult(IngestStatus.DUPLICATE, package_id, order_id=existing.id)

            service = OrderReservationService(uow, selector=self._selector)
            try:
                package = parse_order_package(payload)
                matched, missing = self._match_products(uow, package.lines)
                if missing:
                    return self._park(
                        uow, payload, package_id, store_id, integration_id,
                        missing, FaultyOrderReason.MISSING_PRODUCTS,
                    )
                items = []
                for line, product in matched:
                    items.extend(
                        service.expand_line(
                            product,
                            line.quantity,
                            line.unit_price,
                            line.line_no,
                            content_id=line.content_id,
                            vat_rate=line.vat_rate,
                        )
                    )
                order = Order.create(
                    package.package_id,
                    items,
                    store_id=store_id,
                    order_number=package.order_number,
                    integration_id=integration_id,
                    currency=package.currency,
                    customer_name=package.customer_name,
                    total_price=package.total_price,
                    cargo_provider=package.cargo_provider,
                    cargo_tracking_number=package.cargo_tracking_number,
                    shipping_address=package.shipping_address,
                    invoice_address=package.invoice_address,
                )
            except (ValidationError, EntityNotFoundError) as exc:
                logger.warning("Package %s is malformed: %s", package_id, exc)
                return self._park(
                    uow, payload, package_id, store_id, integration_id,
                    [], FaultyOrderReason.INVALID_DATA,
                )

            plan = service.plan(order.items)
            if not plan.is_complete:
                short = sorted(
                    self._barcode_of(uow, product_id) for product_id in plan.shortages
                )
                return self._park(
                    uow, payload, package_id, store_id, integration_id,
                    short, FaultyOrderReason.MISSING_PRODUCTS,
                )

            uow.orders.add(order)
            service.reserve(order, plan)
            uow.orders.save(order)
            FaultyOrderQuarantine(uow).resolve(package_id)
            uow.commit()

        logger.info(
            "Ingested package %s as order %s with %d items",
            package_id, order.id, len(order.items),
        )
        return IngestResult(IngestStatus.CREATED, package_id, order_id=order.id)

    def _park(
        self,
        uow: UnitOfWork,
        payload: dict,
        package_id: str,
        store_id: str | None,
        integration_id: str | None,
        missing: list[str],
        reason: FaultyOrderReason,
    ) -> IngestResult:
        quarantine = FaultyOrderQuarantine(uow)
        faulty = uow.faulty_orders.get_by_package_id(package_id)
        if faulty is None:
            faulty = quarantine.quarantine(
                integration_id, store_id, package_id, payload, missing, reason,
            )
        else:
            faulty.raw_data = payload
            quarantine.record_failed_retry(faulty, missing, reason)
        uow.commit()
        return IngestResult(
            IngestStatus.QUARANTINED,
            package_id,
            faulty_order_id=faulty.id,
            missing_barcodes=list(faulty.missing_barcodes),
            error_reason=reason.value,
        )

    # --- Lookups --------------------------------------------------------------

    @staticmethod
    def _match_products(
        uow: UnitOfWork,
        lines: list[OrderLine],
    ) -> tuple[list[tuple[OrderLine, Product]], list[str]]:
        """Barcode first, then merchant SKU, then product code as SKU."""
        matched, missing = [], []
        for line in lines:
            product = None
            if line.barcode:
                product = uow.products.get_by_barcode(line.barcode)
            if product is None and line.sku:
                product = uow.products.get_by_sku(line.sku)
            if product is None and line.product_code:
                product = uow.products.get_by_sku(line.product_code)
            if product is None:
                missing.append(line.reference)
            else:
                matched.append((line, product))
        return matched, missing

    @staticmethod
    def _barcode_of(uow: UnitOfWork, product_id: str) -> str:
        product = uow.products.get_by_id(product_id)
        return (product.barcode if product else None) or product_id
