"""Hepsiburada stock upload. Accepts a bare JSON array of items."""

from __future__ import annotations

from wms.domain.model.store import Store
from wms.domain.repository.marketplace_gateway import (
    ItemPushResult,
    PushResult,
    StockPushItem,
)
from wms.infrastructure.marketplace.http_gateway import HttpMarketplaceGateway


class HepsiburadaGateway(HttpMarketplaceGateway):
    provider_name = "Hepsiburada"

    def endpoint_for(self, store: Store) -> str:
        return f"{self._base_url}/listings/merchantid/{store.seller_id}/stock-uploads"

    def push_stock(self, store: Store, items: list[StockPushItem]) -> PushResult:
        payload = [{"barcode": i.barcode, "quantity": i.quantity} for i in items]
        response = self._request("POST", self.endpoint_for(store), store, json=payload)
        try:
            data = response.json()
        except ValueError:
            data = {}
        upload_id = data.get("id") if isinstance(data, dict) else None
        return PushResult(
            items=[ItemPushResult(i.barcode, True) for i in items],
            batch_request_id=str(upload_id) if upload_id else None,
            status_code=response.status_code,
            raw_response=response.text[:2000] or None,
        )
